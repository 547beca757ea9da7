from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce user input to a two-place Decimal. Raises ValueError on garbage."""
    if isinstance(value, bool):
        raise ValueError("boolean is not a monetary amount")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            raise ValueError("empty monetary amount")
        try:
            d = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"invalid monetary amount: {value!r}")
    if not d.is_finite():
        raise ValueError(f"invalid monetary amount: {value!r}")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def to_number(value: Decimal | int | float | None) -> int | float:
    """
    Convert a stored Decimal to a plain JSON number.

    Integral amounts become int; amounts with a fractional minor unit become
    float, which round-trips exactly for two decimal places.
    """
    if value is None:
        return 0
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    return value

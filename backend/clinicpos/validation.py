from __future__ import annotations

import json
import re
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from clinicpos.errors import ValidationError
from clinicpos.money import to_decimal
from clinicpos.time_utils import parse_iso_datetime


# Maximum price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")

PHONE_PATTERN = re.compile(r"^[0-9]{8,11}$")
_WHITESPACE = re.compile(r"\s")


class _Unset:
    """Marker for a field the client did not send."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def normalize_phone(raw: Any) -> str:
    """Strip whitespace and require 8 to 11 digits."""
    if raw is None or not str(raw).strip():
        raise ValidationError("phone is required")
    digits = _WHITESPACE.sub("", str(raw))
    if not PHONE_PATTERN.match(digits):
        raise ValidationError("phone must contain 8-11 digits")
    return digits


class PayloadReader:
    """
    Reads and coerces individual fields out of a request payload.

    partial=False: create semantics (required fields must be present)
    partial=True: patch semantics (absent fields come back as UNSET)

    Form posts deliver every value as a string, so empty strings on
    non-text fields are treated as "not sent".
    """

    def __init__(self, payload: dict | None, *, partial: bool):
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        self.payload = payload
        self.partial = partial

    def has(self, key: str) -> bool:
        return key in self.payload

    def _raw(self, key: str, required: bool, message: str | None):
        value = self.payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            # A required field sent empty on a patch is still an error
            if required and (not self.partial or key in self.payload):
                raise ValidationError(message or f"{key} is required")
            return UNSET
        return value

    def text(
        self,
        key: str,
        *,
        required: bool = False,
        nullable: bool = False,
        max_length: int | None = None,
        message: str | None = None,
    ):
        if key not in self.payload:
            if required and not self.partial:
                raise ValidationError(message or f"{key} is required")
            return UNSET
        value = self.payload[key]
        text = "" if value is None else str(value).strip()
        if not text:
            if required:
                raise ValidationError(message or f"{key} is required")
            if nullable:
                return None
            return UNSET
        if max_length and len(text) > max_length:
            raise ValidationError(f"{key} exceeds max length {max_length}")
        return text

    def money(self, key: str, *, required: bool = False, positive: bool = False, message: str | None = None):
        value = self._raw(key, required, message)
        if value is UNSET:
            return UNSET
        try:
            amount = to_decimal(value)
        except ValueError:
            raise ValidationError(message or f"{key} must be a number")
        if positive and amount <= 0:
            raise ValidationError(message or f"{key} must be greater than 0")
        if amount < 0:
            raise ValidationError(message or f"{key} must be >= 0")
        if amount > MAX_AMOUNT:
            raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT}")
        return amount

    def integer(
        self,
        key: str,
        *,
        required: bool = False,
        minimum: int | None = None,
        maximum: int | None = None,
        message: str | None = None,
    ):
        value = self._raw(key, required, message)
        if value is UNSET:
            return UNSET
        if isinstance(value, bool):
            raise ValidationError(message or f"{key} must be an integer")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValidationError(message or f"{key} must be an integer, not a decimal")
            value = int(value)
        if isinstance(value, str):
            stripped = value.strip()
            # Reject scientific notation and decimal points
            if "e" in stripped.lower() or "." in stripped:
                raise ValidationError(message or f"{key} must be a plain integer")
            try:
                value = int(stripped)
            except ValueError:
                raise ValidationError(message or f"{key} must be an integer")
        if not isinstance(value, int):
            raise ValidationError(message or f"{key} must be an integer")
        if minimum is not None and value < minimum:
            raise ValidationError(message or f"{key} must be >= {minimum}")
        if maximum is not None and value > maximum:
            raise ValidationError(message or f"{key} must be <= {maximum}")
        return value

    def boolean(self, key: str, *, required: bool = False):
        value = self._raw(key, required, None)
        if value is UNSET:
            return UNSET
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes", "on"):
                return True
            if lowered in ("false", "0", "no", "off"):
                return False
            raise ValidationError(f"{key} must be true or false")
        return bool(value)

    def timestamp(self, key: str, *, required: bool = False, message: str | None = None):
        value = self._raw(key, required, message)
        if value is UNSET:
            return UNSET
        if isinstance(value, datetime):
            return value
        try:
            dt = parse_iso_datetime(str(value))
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date or datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 date or datetime")
        return dt

    def choice(self, key: str, choices: Iterable[str], *, required: bool = False, message: str | None = None):
        value = self._raw(key, required, message)
        if value is UNSET:
            return UNSET
        normalized = str(value).strip().upper()
        allowed = tuple(choices)
        if normalized not in allowed:
            raise ValidationError(message or f"{key} must be one of: {', '.join(allowed)}")
        return normalized

    def string_list(self, key: str):
        """A list of strings, sent either as a JSON array or a JSON-encoded string."""
        if key not in self.payload:
            return UNSET
        value = self.payload[key]
        if value is None or value == "":
            return []
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                raise ValidationError(f"{key} must be a JSON array of strings")
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f"{key} must be a JSON array of strings")
        return value


@dataclass
class Patch:
    """
    Base for explicit partial updates: one field per mutable attribute,
    UNSET when the client did not send it.
    """

    def changes(self) -> dict:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not UNSET:
                result[f.name] = value
        return result

    def apply_to(self, record) -> None:
        for key, value in self.changes().items():
            setattr(record, key, value)


def enforce_image_cap(count: int, limit: int) -> None:
    if count > limit:
        raise ValidationError(f"Cannot attach more than {limit} images")

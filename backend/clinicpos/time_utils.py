from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Server-side 'now' in local time (naive, canonical)."""
    return datetime.now()


def start_of_day(value: datetime | date) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min)


def end_of_day(value: datetime | date) -> datetime:
    """Last representable instant of the day (23:59:59.999999)."""
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.max)


def day_window(ref: datetime) -> tuple[datetime, datetime]:
    return start_of_day(ref), end_of_day(ref)


def week_window(ref: datetime) -> tuple[datetime, datetime]:
    """
    Sunday 00:00 through Saturday end of day of the week containing ref.

    Weeks always start on Sunday regardless of locale.
    """
    days_since_sunday = (ref.weekday() + 1) % 7
    start = start_of_day(ref) - timedelta(days=days_since_sunday)
    return start, end_of_day(start + timedelta(days=6))


def month_window(ref: datetime) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(ref.year, ref.month)[1]
    start = datetime(ref.year, ref.month, 1)
    return start, end_of_day(date(ref.year, ref.month, last_day))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a date or ISO-8601 datetime string into a naive local datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight of that day
    - "...Z" or "...+/-HH:MM" is converted to local time and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone().replace(tzinfo=None)


def to_iso(dt: Optional[datetime | date]) -> Optional[str]:
    """Serialize a naive local datetime (or date) to ISO-8601 without offset."""
    if dt is None:
        return None
    if isinstance(dt, datetime) and dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.isoformat()

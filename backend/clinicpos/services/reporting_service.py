# Overview: Service-layer operations for revenue reporting.

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import Sale, COUNTED_STATUSES, SALE_STATUSES
from clinicpos.money import to_number
from clinicpos.time_utils import end_of_day, now, parse_iso_datetime, start_of_day, to_iso

STATUS_ALL = "ALL"
REPORT_STATUSES = (STATUS_ALL,) + SALE_STATUSES

PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"
PERIOD_YEARLY = "yearly"
PERIODS = (PERIOD_DAILY, PERIOD_WEEKLY, PERIOD_MONTHLY, PERIOD_YEARLY)

DEFAULT_LOOKBACK_DAYS = 30


def week_number(d: date) -> int:
    """
    Week-of-year with weeks starting on Sunday and week 1 containing Jan 1.

    ceil((day_of_year + weekday_of_jan_1) / 7), weekday counted from
    Sunday=0. This is not ISO-8601: the last days of December never roll
    into week 1 of the next year.
    """
    jan_1 = date(d.year, 1, 1)
    jan_1_weekday = (jan_1.weekday() + 1) % 7
    day_of_year = d.timetuple().tm_yday
    return math.ceil((day_of_year + jan_1_weekday) / 7)


def period_key(ts: datetime, period: str) -> str:
    """Bucket key for a sale timestamp; depends on the local date only."""
    d = ts.date() if isinstance(ts, datetime) else ts
    if period == PERIOD_YEARLY:
        return f"{d.year:04d}"
    if period == PERIOD_MONTHLY:
        return f"{d.year:04d}-{d.month:02d}"
    if period == PERIOD_WEEKLY:
        return f"{d.year:04d}-W{week_number(d):02d}"
    if period == PERIOD_DAILY:
        return d.isoformat()
    raise ValidationError(f"period must be one of: {', '.join(PERIODS)}")


def status_criteria(status: str) -> list:
    """ALL means collected money only: PAID or TRANSFER, never UNPAID."""
    if status == STATUS_ALL:
        return [Sale.status.in_(COUNTED_STATUSES)]
    if status in SALE_STATUSES:
        return [Sale.status == status]
    raise ValidationError(f"status must be one of: {', '.join(REPORT_STATUSES)}")


def _parse_range(
    start: str | datetime | None,
    end: str | datetime | None,
    lookback_days: int,
) -> tuple[datetime, datetime]:
    try:
        start_dt = parse_iso_datetime(start) if isinstance(start, str) else start
        end_dt = parse_iso_datetime(end) if isinstance(end, str) else end
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO-8601 dates")

    current = now()
    if end_dt is None:
        end_dt = current
    if start_dt is None:
        start_dt = start_of_day(current - timedelta(days=lookback_days))

    # The end date is inclusive of its whole day
    end_dt = end_of_day(end_dt)
    if start_dt > end_dt:
        raise ValidationError("start_date must not be after end_date")
    return start_dt, end_dt


def bucket_sales(sales, period: str) -> list[dict]:
    """Group sales into period buckets, preserving first-seen order."""
    grouped: dict[str, dict] = {}
    for sale in sales:
        key = period_key(sale.created_at, period)
        bucket = grouped.setdefault(key, {"revenue": Decimal("0"), "count": 0})
        bucket["revenue"] += sale.total
        bucket["count"] += 1
    return [
        {"period": key, "revenue": to_number(data["revenue"]), "count": data["count"]}
        for key, data in grouped.items()
    ]


def revenue_report(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    status: str | None = STATUS_ALL,
    period: str | None = PERIOD_DAILY,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> dict:
    status = (status or STATUS_ALL).strip().upper()
    period = (period or PERIOD_DAILY).strip().lower()
    if period not in PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(PERIODS)}")

    start_dt, end_dt = _parse_range(start, end, lookback_days)

    sales = db.session.query(Sale).filter(
        Sale.created_at >= start_dt,
        Sale.created_at <= end_dt,
        *status_criteria(status),
    ).order_by(Sale.created_at.asc(), Sale.id.asc()).all()

    total_revenue = sum((sale.total for sale in sales), Decimal("0"))
    total_count = len(sales)
    avg_per_sale = (total_revenue / total_count) if total_count else Decimal("0")

    return {
        "period": period,
        "status": status,
        "start_date": to_iso(start_dt),
        "end_date": to_iso(end_dt),
        "report": bucket_sales(sales, period),
        "summary": {
            "total_revenue": to_number(total_revenue),
            "total_count": total_count,
            "avg_per_sale": to_number(avg_per_sale),
        },
    }

# Overview: Dashboard snapshot for the caller's visible slice of data.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Product, Sale, COUNTED_STATUSES
from .visibility_service import VisibilityScope
from clinicpos.money import to_number
from clinicpos.time_utils import day_window, month_window, now, week_window


def _revenue(base_criteria: list, start: datetime | None = None, end: datetime | None = None):
    query = db.session.query(func.coalesce(func.sum(Sale.total), 0)).filter(
        *base_criteria,
        Sale.status.in_(COUNTED_STATUSES),
    )
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    return to_number(query.scalar())


def low_stock_query():
    """Active products at or below their minimum stock."""
    return db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock <= Product.min_stock,
    )


def count_low_stock_products() -> int:
    return low_stock_query().count()


def dashboard_stats(scope: VisibilityScope, at: datetime | None = None) -> dict:
    """
    Counts and revenue sums for the caller's visible sales and customers.

    Revenue figures include PAID and TRANSFER sales only; total_sales counts
    every status. The today, week and month windows overlap, so the figures
    are independent and must not be added together.
    """
    at = at or now()
    sale_criteria = scope.sale_criteria()
    customer_criteria = scope.customer_criteria()

    today_start, today_end = day_window(at)
    week_start, week_end = week_window(at)
    month_start, month_end = month_window(at)

    return {
        "total_sales": db.session.query(Sale).filter(*sale_criteria).count(),
        "total_revenue": _revenue(sale_criteria),
        "total_customers": db.session.query(Customer).filter(*customer_criteria).count(),
        "low_stock_products": count_low_stock_products(),
        "today_revenue": _revenue(sale_criteria, today_start, today_end),
        "week_revenue": _revenue(sale_criteria, week_start, week_end),
        "month_revenue": _revenue(sale_criteria, month_start, month_end),
    }

# Overview: Flask API routes for revenue reporting and the dashboard snapshot.

from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_admin
from ..responses import ok
from ..services.dashboard_service import dashboard_stats
from ..services.reporting_service import revenue_report
from ..services.visibility_service import current_scope

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")
dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@reports_bp.get("/revenue")
@require_auth
@require_admin
def revenue_report_route():
    """
    Revenue grouped by period.

    Query params:
    - start_date, end_date: ISO-8601 dates (default: last 30 days through today)
    - status: ALL | PAID | UNPAID | TRANSFER (ALL = PAID + TRANSFER)
    - period: daily | weekly | monthly | yearly
    """
    report = revenue_report(
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
        status=request.args.get("status"),
        period=request.args.get("period"),
        lookback_days=current_app.config.get("REVENUE_DEFAULT_LOOKBACK_DAYS", 30),
    )
    return ok(report)


@dashboard_bp.get("/stats")
@require_auth
def dashboard_stats_route():
    return ok(dashboard_stats(current_scope()))

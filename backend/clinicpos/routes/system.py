# backend/clinicpos/routes/system.py
"""
System health endpoint and uploaded image serving.
"""

import time

from flask import Blueprint, current_app, send_from_directory
from sqlalchemy import text

from ..extensions import db
from ..models import Customer, Product, Sale, User
from ..services.file_store import get_file_store

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        details = {
            "users": db.session.query(User).count(),
            "customers": db.session.query(Customer).count(),
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "success": healthy,
        "data": {
            "status": "healthy" if healthy else "unhealthy",
            "database": database,
        },
    }
    return body, 200 if healthy else 503


@system_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    return send_from_directory(get_file_store().root, filename)

# backend/salesledger/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the void path is usable
(SUPERVISOR_CODE configured).
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db
from ..models import Product, Sale, User
from salesledger.time_utils import get_zone, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
            "users": db.session.query(User).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_configuration() -> dict:
    tz_name = current_app.config["REPORT_TIMEZONE"]
    try:
        get_zone(tz_name)
    except ValueError:
        return {"status": "unhealthy", "error": f"Unknown REPORT_TIMEZONE: {tz_name}"}

    if not current_app.config.get("SUPERVISOR_CODE"):
        return {
            "status": "degraded",
            "warning": "SUPERVISOR_CODE is not set; sales cannot be voided",
            "details": {"report_timezone": tz_name},
        }
    return {"status": "healthy", "details": {"report_timezone": tz_name}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    config_health = check_configuration()

    all_checks = [database_health, config_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "configuration": config_health,
        }
    }, http_status

# backend/unitrack/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether roles/permissions are seeded.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Item, Permission, Product, Role
from ..permissions import DEFAULT_ROLES
from unitrack.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        item_count = db.session.query(Item).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "items": item_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_permissions_health() -> dict:
    """Degraded when default roles are missing; the role-table checker would deny everything."""
    start_time = time.time()
    try:
        existing = {name for (name,) in db.session.query(Role.name).all()}
        missing_roles = [name for name in DEFAULT_ROLES if name not in existing]
        permission_count = db.session.query(Permission).count()

        elapsed_ms = (time.time() - start_time) * 1000
        result = {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "external_checker": current_app.config.get("PERMISSION_CHECKER") is not None,
                "permission_count": permission_count,
            }
        }
        if missing_roles and current_app.config.get("PERMISSION_CHECKER") is None:
            result["status"] = "degraded"
            result["warning"] = f"Missing roles: {', '.join(missing_roles)}"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Permission health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Permission tables unavailable"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    permissions_health = check_permissions_health()

    all_checks = [database_health, permissions_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "permissions": permissions_health,
        }
    }
    return response, http_status

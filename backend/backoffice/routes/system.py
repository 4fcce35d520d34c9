# backend/backoffice/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Store
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Count stores as a connectivity probe; returns status and latency."""
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "response_time_ms": round(elapsed_ms, 2),
            "stores": store_count,
        }
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "error": str(exc)}


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "time": to_utc_z(utcnow()),
        "database": database,
    }), 200 if healthy else 503

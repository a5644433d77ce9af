# backend/pos_backend/routes/system.py
"""System health endpoint."""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity. Returns dict with status and details."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "response_time_ms": round(elapsed_ms, 2)}
    except Exception as e:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": str(e)}


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": "ok" if status == 200 else "degraded",
        "checked_at": to_utc_z(utcnow()),
        "database": database,
    }), status

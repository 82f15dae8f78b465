"""
Health Check Routes

Flask blueprint reporting service and schema state.
"""

import logging
import os

from flask import Blueprint, jsonify

from db import db_lock, get_db, get_db_path
from migrations.manager import MigrationManager

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/health")

SYSTEM_NAME = "PERSCOM v1.0"
UNIT_NAME = "26th MEU (SOC)"


@health_bp.route("", methods=["GET"])
def health():
    """Liveness check. Always 200 once the app has started."""
    return jsonify({"status": "ONLINE", "system": SYSTEM_NAME, "unit": UNIT_NAME})


@health_bp.route("/schema", methods=["GET"])
def schema_health():
    """Applied and pending migrations, table count and store size."""
    conn = get_db()
    with db_lock:
        status = MigrationManager(conn).get_status()
        tables = conn.execute(
            "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        ).fetchone()[0]
    db_path = get_db_path()
    db_size = os.path.getsize(db_path) if db_path and os.path.exists(db_path) else 0

    return jsonify(
        {
            "status": "healthy" if status["is_current"] else "degraded",
            "tables": tables,
            "size_mb": round(db_size / (1024 * 1024), 2),
            **status,
        }
    )

"""
PERSCOM backend

The store is migrated and seeded in create_app(), before the server accepts
a single request. If that fails the process does not start.

Usage:
    python3 app.py
"""

import logging
from pathlib import Path
from typing import Optional, Union

from flask import Flask

from config import Config, is_production, require_production_secret, validate_config
from db import ensure_ready
from services.health_routes import health_bp
from services.orbat_routes import orbat_bp

logger = logging.getLogger(__name__)


def create_app(db_path: Optional[Union[str, Path]] = None) -> Flask:
    """Build the Flask app against a ready store.

    In production any invalid setting aborts start-up; elsewhere invalid
    optional settings fall back to their defaults with a warning.
    """
    validate_config(strict=is_production())
    require_production_secret()
    logger.info(f"Effective configuration: {Config.to_dict()}")

    ensure_ready(db_path)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = Config.SECRET_KEY

    app.register_blueprint(health_bp)
    app.register_blueprint(orbat_bp)

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    app = create_app()
    logger.info(f"Backend running on {Config.HOST}:{Config.PORT}")
    logger.info(f"Mode: {'PRODUCTION' if is_production() else 'DEVELOPMENT'}")
    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)

"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints and configuration.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from bulk_import.config import AppConfig, load_settings

# Room for multipart boundaries and form headers on top of the CSV itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(cfg: Optional[AppConfig] = None) -> Flask:
    """Create and configure Flask application."""
    cfg = cfg or load_settings()
    configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["DEMO_MODE"] = cfg.demo_mode
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_file_size_kb * 1024 + MULTIPART_OVERHEAD_BYTES

    from bulk_import.api import errors, health, users

    app.register_blueprint(health.bp)
    app.register_blueprint(users.bp, url_prefix="/admin")
    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    app.logger.info(f"[flask_app] Mode={mode_label}; bulk import registered at /admin/users/bulk-import")
    if cfg.demo_mode:
        app.logger.warning("[flask_app] Demo mode active - do not deploy with demo credentials")

    return app

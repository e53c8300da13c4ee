"""Health check endpoints."""
import logging

import requests
from flask import Blueprint, current_app

from bulk_import.config import build_identity_client
from bulk_import.core.identity_server import IdentityServerError, UserService

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@bp.route("/health")
def health_check():
    """Liveness check."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: the identity server must answer ServiceProviderConfig."""
    cfg = current_app.config["APP_CONFIG"]
    try:
        UserService(build_identity_client(cfg)).service_provider_config()
    except (IdentityServerError, requests.RequestException) as e:
        logger.warning(f"Identity server not ready: {e}")
        return ("identity server unavailable", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})

"""Gunicorn configuration for the bulk import service.

Run with:
    gunicorn -c gunicorn.conf.py

Secrets are read by bulk_import.config.settings in each worker, from
/run/secrets first and the environment second. The post_fork hook only
reports which source the worker will see.
"""
import os
from pathlib import Path

wsgi_app = "bulk_import.flask_app:create_app()"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "120"))
accesslog = "-"

SECRETS_DIR = Path("/run/secrets")


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"
    if demo_mode:
        worker.log.warning("DEMO_MODE=true: demo identity server credentials may be in use")

    if SECRETS_DIR.exists() and SECRETS_DIR.is_dir():
        secret_files = [p for p in SECRETS_DIR.glob("*") if p.is_file()]
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in {SECRETS_DIR} (using mounted secrets)")
            return

    worker.log.info("No mounted secrets found, reading credentials from the environment")

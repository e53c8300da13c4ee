"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SECRETS_DIR = Path("/run/secrets")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from {SECRETS_DIR}")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read {secret_file}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_bool(var_name: str, default: bool) -> bool:
    return os.environ.get(var_name, str(default)).strip().lower() == "true"


def _env_int(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}")


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str

    # Identity server
    identity_server_url: str = ""
    service_client_id: str = ""
    service_client_secret: str = ""
    admin_username: str = ""
    admin_password: str = ""
    request_timeout: int = 10
    verify_tls: bool = True

    # Bearer tokens accepted by the API (empty: derived from identity_server_url)
    token_issuer: str = ""
    jwks_url: str = ""

    # Bulk import
    userstore: str = "PRIMARY"
    max_file_size_kb: int = 500
    max_user_count: int = 100
    claim_fetch_max_workers: int = 8

    # Logging / audit
    log_level: str = "INFO"
    audit_log_signing_key: str = ""

    def __post_init__(self):
        base = self.identity_server_url.rstrip("/")
        if not self.token_issuer:
            self.token_issuer = f"{base}/oauth2/token"
        if not self.jwks_url:
            self.jwks_url = f"{base}/oauth2/jwks"

    @property
    def uses_client_credentials(self) -> bool:
        return bool(self.service_client_id and self.service_client_secret)


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets.

    Raises:
        RuntimeError: If required values are missing outside demo mode
    """
    demo_mode = _env_bool("DEMO_MODE", False)

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if not demo_mode:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        print("[demo-mode] Generated temporary FLASK_SECRET_KEY")

    identity_server_url = os.environ.get("IDENTITY_SERVER_URL", "").strip()
    if not identity_server_url:
        if not demo_mode:
            raise RuntimeError("Environment variable IDENTITY_SERVER_URL is required in production mode.")
        identity_server_url = "https://localhost:9443"
        print(f"[demo-mode] Using default IDENTITY_SERVER_URL={identity_server_url}")

    service_client_id = os.environ.get("IS_SERVICE_CLIENT_ID", "").strip()
    service_client_secret = _load_secret_from_file("is_service_client_secret", "IS_SERVICE_CLIENT_SECRET") or ""

    admin_username = os.environ.get("IS_ADMIN_USERNAME", "").strip()
    admin_password = _load_secret_from_file("is_admin_password", "IS_ADMIN_PASSWORD") or ""
    if demo_mode:
        admin_username = admin_username or "admin"
        admin_password = admin_password or "admin"

    if not (service_client_id and service_client_secret) and not (admin_username and admin_password):
        raise RuntimeError(
            "Identity server credentials missing: set IS_SERVICE_CLIENT_ID/IS_SERVICE_CLIENT_SECRET "
            "or IS_ADMIN_USERNAME/IS_ADMIN_PASSWORD."
        )

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and demo_mode:
        audit_log_signing_key = os.environ.get(
            "AUDIT_LOG_SIGNING_KEY_DEMO", "demo-audit-signing-key-change-in-production"
        )
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key

    cfg = AppConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        identity_server_url=identity_server_url.rstrip("/"),
        service_client_id=service_client_id,
        service_client_secret=service_client_secret,
        admin_username=admin_username,
        admin_password=admin_password,
        request_timeout=_env_int("IS_REQUEST_TIMEOUT", 10),
        verify_tls=_env_bool("IS_VERIFY_TLS", True),
        token_issuer=os.environ.get("TOKEN_ISSUER", "").strip(),
        jwks_url=os.environ.get("JWKS_URL", "").strip(),
        userstore=os.environ.get("BULK_IMPORT_USERSTORE", "PRIMARY").strip() or "PRIMARY",
        max_file_size_kb=_env_int("BULK_IMPORT_MAX_FILE_SIZE_KB", 500),
        max_user_count=_env_int("BULK_IMPORT_MAX_USER_COUNT", 100),
        claim_fetch_max_workers=_env_int("CLAIM_FETCH_MAX_WORKERS", 8),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        audit_log_signing_key=audit_log_signing_key,
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    auth_label = "client_credentials" if cfg.uses_client_credentials else "basic"
    print(f"[settings] Mode={mode_label}; identity_server={cfg.identity_server_url}; auth={auth_label}; "
          f"userstore={cfg.userstore}")
    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return cfg


def build_identity_client(cfg: AppConfig, url: Optional[str] = None):
    """Authenticated identity server client for the configured credentials."""
    from bulk_import.core.identity_server import create_client

    return create_client(
        url or cfg.identity_server_url,
        client_id=cfg.service_client_id or None,
        client_secret=cfg.service_client_secret or None,
        username=cfg.admin_username or None,
        password=cfg.admin_password or None,
        timeout=cfg.request_timeout,
        verify=cfg.verify_tls,
    )

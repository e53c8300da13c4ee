"""Signed audit trail for bulk user import events."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import Any, Literal

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "bulk-import-events.jsonl"

EventType = Literal[
    "bulk_import_user",      # one operation reported by the identity server
    "bulk_import_rejected",  # file failed validation
    "bulk_import_failed",    # mapping resolution or submission failed
]


def _get_signing_key() -> bytes:
    """Signing key from the environment, read on every call so rotation applies."""
    key_file = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
    if key_file and Path(key_file).exists():
        try:
            return Path(key_file).read_text(encoding="utf-8").strip().encode("utf-8")
        except OSError:
            pass
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _ensure_audit_dir() -> None:
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """HMAC-SHA256 over the canonical JSON form, or "" without a key."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_import_event(
    event_type: EventType,
    username: str,
    *,
    operator: str = "system",
    userstore: str = "PRIMARY",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append one import event to the audit trail.

    Args:
        event_type: Kind of import event
        username: Imported username, or "-" for file-level events
        operator: Who ran the import (console user, "cli", ...)
        userstore: Target userstore domain
        details: Status code, message key, validation descriptor, ...
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "userstore": userstore,
        "username": username,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_import_event(
    event_type: EventType,
    username: str,
    *,
    operator: str = "system",
    userstore: str = "PRIMARY",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an import event, reporting audit failures on stderr instead of raising.

    Returns:
        True if the event was written
    """
    try:
        log_import_event(
            event_type,
            username,
            operator=operator,
            userstore=userstore,
            details=details,
            success=success,
        )
        return True
    except OSError as e:
        print(f"[audit] Warning: Failed to log {event_type} event for {username}: {e}", file=sys.stderr)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            stored_sig = event.pop("signature", "")
            if stored_sig and hmac.compare_digest(stored_sig, _sign_event(event)):
                valid += 1

    return total, valid


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)

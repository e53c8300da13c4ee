"""Bulk user import endpoint.

POST /admin/users/bulk-import
    Auth: ``Authorization: Bearer <JWT>`` issued by the identity server, with
    the user-creation scope. The audit operator is taken from the token.
    Body: multipart form with a ``file`` field, or a raw ``text/csv`` body.
    Query: ``dry_run=true`` validates and returns the assembled BulkRequest
    without submitting it.

Errors are raised as BulkImportError subclasses and rendered by the
application error handlers (400 validation, 502 identity server).
"""

from __future__ import annotations
import logging

from flask import Blueprint, abort, current_app, g, jsonify, request

from bulk_import.api.decorators import require_oauth_token
from bulk_import.config import build_identity_client
from bulk_import.core.import_service import BulkUserImportService

bp = Blueprint("users", __name__)

logger = logging.getLogger(__name__)

BULK_IMPORT_SCOPE = "internal_user_mgt_create"


def _build_service(operator: str) -> BulkUserImportService:
    cfg = current_app.config["APP_CONFIG"]
    return BulkUserImportService.from_settings(cfg, build_identity_client(cfg), operator=operator)


def _uploaded_csv() -> bytes:
    upload = request.files.get("file")
    if upload is not None:
        return upload.read()
    if (request.mimetype or "") in ("text/csv", "application/csv", "text/plain"):
        data = request.get_data()
        if data:
            return data
    abort(400, "Upload a CSV file in the 'file' form field or as a text/csv body.")


@bp.route("/users/bulk-import", methods=["POST"])
@require_oauth_token(scopes=[BULK_IMPORT_SCOPE])
def bulk_import_users():
    """Import users from a CSV file."""
    operator = g.operator
    dry_run = request.args.get("dry_run", "false").lower() == "true"
    raw = _uploaded_csv()

    service = _build_service(operator)
    parsed = service.read(raw)

    if dry_run:
        mapping, envelope = service.prepare(parsed)
        return jsonify({
            "valid": True,
            "mappedAttributes": len(mapping),
            "request": envelope.to_dict(),
        }), 200

    logger.info(f"Bulk import of {len(parsed.rows)} rows requested by {operator}")
    report = service.import_users(parsed)
    return jsonify(report.to_dict()), 200

"""Error taxonomy for a bulk import attempt."""
from __future__ import annotations
from typing import Any, Dict, Optional

from .models import ValidationErrorDescriptor


class BulkImportError(Exception):
    """Base exception for all bulk import failures."""
    status = 500

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class RemoteFetchError(BulkImportError):
    """Claim mapping resolution failed; no partial mapping is usable.

    Attributes:
        status_code: HTTP status from the identity server, if any
        endpoint: Endpoint that failed, if known
    """
    status = 502

    def __init__(self, message: str, status_code: Optional[int] = None, endpoint: Optional[str] = None):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ValidationError(BulkImportError):
    """CSV file rejected; the user fixes the file and retries."""
    status = 400

    def __init__(self, descriptor: ValidationErrorDescriptor):
        self.descriptor = descriptor
        super().__init__(descriptor.message_key)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update(self.descriptor.to_dict())
        return payload


class SubmissionError(BulkImportError):
    """The bulk request as a whole failed; no per-row results exist."""
    status = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

"""Data model for a single bulk import attempt.

All objects are scoped to one import session; nothing here is persisted.
"""
from __future__ import annotations
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import (
    BULK_ID_DELIMITER,
    BULK_ID_PREFIX,
    BULK_REQUEST_SCHEMA,
    USERS_PATH,
)


@dataclass(frozen=True)
class AttributeMapping:
    """One known claim, as resolved from the identity server.

    Attributes:
        attribute_name: Lowercased local claim name (CSV header form)
        mapped_local_claim_uri: Full local claim URI
        mapped_scim_attribute_uri: Full SCIM attribute URI (dialect + ":" + path)
        mapped_scim_claim_dialect_uri: SCIM dialect owning the attribute
    """
    attribute_name: str
    mapped_local_claim_uri: str
    mapped_scim_attribute_uri: str
    mapped_scim_claim_dialect_uri: str

    @property
    def scim_attribute(self) -> str:
        """SCIM attribute path with the dialect prefix removed."""
        return self.mapped_scim_attribute_uri.replace(f"{self.mapped_scim_claim_dialect_uri}:", "")

    def to_dict(self) -> Dict[str, str]:
        return {
            "attributeName": self.attribute_name,
            "mappedLocalClaimURI": self.mapped_local_claim_uri,
            "mappedSCIMAttributeURI": self.mapped_scim_attribute_uri,
            "mappedSCIMClaimDialectURI": self.mapped_scim_claim_dialect_uri,
        }


@dataclass
class ParsedCSV:
    """Header row plus data rows, as read from the uploaded file."""
    headers: List[str]
    rows: List[List[str]]


@dataclass(frozen=True)
class ValidationErrorDescriptor:
    """Locale-agnostic validation failure, rendered by the caller."""
    message_key: str
    description_key: str
    description_values: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "messageKey": self.message_key,
            "descriptionKey": self.description_key,
        }
        if self.description_values:
            payload["descriptionValues"] = dict(self.description_values)
        return payload


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[ValidationErrorDescriptor] = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class CorrelationId:
    """Structured bulk operation id, serialized only at the wire boundary.

    The wire form is ``bulkId:<username>:<nonce>``. Parsing takes the prefix
    from the first field and the nonce from the last one, so usernames that
    contain the delimiter survive a round trip.
    """
    username: str
    nonce: str
    prefix: str = BULK_ID_PREFIX

    @classmethod
    def new(cls, username: str) -> "CorrelationId":
        return cls(username=username, nonce=str(uuid.uuid4()))

    @classmethod
    def parse(cls, raw: str) -> "CorrelationId":
        """Parse a wire-form correlation id.

        Raises:
            ValueError: If the id does not have prefix, username and nonce fields
        """
        head, sep, rest = (raw or "").partition(BULK_ID_DELIMITER)
        username, sep2, nonce = rest.rpartition(BULK_ID_DELIMITER)
        if not sep or not sep2 or not head or not nonce:
            raise ValueError(f"Malformed bulk id: {raw!r}")
        return cls(username=username, nonce=nonce, prefix=head)

    def serialize(self) -> str:
        return BULK_ID_DELIMITER.join((self.prefix, self.username, self.nonce))

    def __str__(self) -> str:
        return self.serialize()


@dataclass
class ScimOperation:
    """One SCIM bulk operation (creates one user)."""
    correlation_id: CorrelationId
    data: Dict[str, Any]
    method: str = "POST"
    path: str = USERS_PATH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bulkId": self.correlation_id.serialize(),
            "data": self.data,
            "method": self.method,
            "path": self.path,
        }


@dataclass
class BulkRequestEnvelope:
    """SCIM BulkRequest wrapper; operation order follows the CSV rows."""
    operations: List[ScimOperation]
    fail_on_errors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Operations": [operation.to_dict() for operation in self.operations],
            "failOnErrors": self.fail_on_errors,
            "schemas": [BULK_REQUEST_SCHEMA],
        }


class OutcomeClass(str, Enum):
    """Display state of one bulk operation."""
    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not OutcomeClass.FAILED


@dataclass(frozen=True)
class BulkOperationResult:
    """Interpreted outcome of one bulk operation.

    ``status_message`` is the short English text for the status code
    ("created", "accepted", "invalid data", "already exists", "internal
    error"); ``message_key`` names it for callers that translate.
    """
    username: str
    http_status_code: Optional[int]
    outcome: OutcomeClass
    message_key: str
    status_message: str

    @property
    def succeeded(self) -> bool:
        return self.outcome.succeeded

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "statusCode": self.http_status_code,
            "outcome": self.outcome.value,
            "succeeded": self.succeeded,
            "messageKey": self.message_key,
            "statusMessage": self.status_message,
        }


class ImportSummary:
    """Running success/failure tally, updated once per interpreted operation."""

    def __init__(self):
        self._lock = threading.Lock()
        self._success_count = 0
        self._failed_count = 0

    @property
    def success_count(self) -> int:
        return self._success_count

    @property
    def failed_count(self) -> int:
        return self._failed_count

    @property
    def total(self) -> int:
        with self._lock:
            return self._success_count + self._failed_count

    def record(self, succeeded: bool) -> Dict[str, int]:
        """Increment one counter atomically and return the new snapshot."""
        with self._lock:
            if succeeded:
                self._success_count += 1
            else:
                self._failed_count += 1
            return {"successCount": self._success_count, "failedCount": self._failed_count}

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {"successCount": self._success_count, "failedCount": self._failed_count}


@dataclass
class ImportReport:
    """Outcome of a completed import: per-row results in response order.

    ``expected`` is the number of operations submitted. The import is done
    only once every one of them has a counted result.
    """
    results: List[BulkOperationResult]
    summary: ImportSummary
    expected: int

    @property
    def done(self) -> bool:
        return len(self.results) == self.expected and self.summary.total == self.expected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "summary": self.summary.snapshot(),
            "done": self.done,
        }

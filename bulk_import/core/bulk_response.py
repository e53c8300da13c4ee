"""Interpret SCIM BulkResponse operations into per-user outcomes."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional

from .constants import DEFAULT_STATUS_MESSAGE, STATUS_MESSAGES
from .models import BulkOperationResult, CorrelationId, ImportSummary, OutcomeClass

logger = logging.getLogger(__name__)


def outcome_for(status_code: Optional[int]) -> OutcomeClass:
    """201 is a success, 202 a success shown as a warning, anything else a failure."""
    if status_code == 201:
        return OutcomeClass.SUCCESS
    if status_code == 202:
        return OutcomeClass.WARNING
    return OutcomeClass.FAILED


def _status_code(operation: Dict[str, Any]) -> Optional[int]:
    status = operation.get("status")
    code = status.get("code") if isinstance(status, dict) else status
    try:
        return int(code)
    except (TypeError, ValueError):
        return None


def _username(operation: Dict[str, Any]) -> str:
    bulk_id = operation.get("bulkId", "")
    try:
        return CorrelationId.parse(bulk_id).username
    except ValueError:
        logger.warning(f"Unparseable bulkId in bulk response: {bulk_id!r}")
        return bulk_id


class BulkResponseInterpreter:
    """Maps each bulk operation response to a result and updates the summary.

    Identity is recovered from the correlation id in each response item, never
    from its position, since the server may report operations in any order.
    """

    def __init__(self, summary: Optional[ImportSummary] = None):
        self.summary = summary if summary is not None else ImportSummary()

    def interpret(self, operation: Dict[str, Any]) -> BulkOperationResult:
        """Interpret one response operation and count it exactly once."""
        status_code = _status_code(operation)
        message_key, message = STATUS_MESSAGES.get(status_code, DEFAULT_STATUS_MESSAGE)
        result = BulkOperationResult(
            username=_username(operation),
            http_status_code=status_code,
            outcome=outcome_for(status_code),
            message_key=message_key,
            status_message=message,
        )
        self.summary.record(result.succeeded)

        if result.succeeded:
            logger.info(f"Bulk import of '{result.username}': {status_code} {result.outcome.value}")
        else:
            logger.warning(f"Bulk import of '{result.username}' failed: {status_code} {message_key}")
        return result

    def interpret_all(self, operations: Iterable[Dict[str, Any]]) -> List[BulkOperationResult]:
        return [self.interpret(operation) for operation in operations]

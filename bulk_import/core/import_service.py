"""
Bulk User Import Service

Runs one import attempt end to end, used by both the HTTP API and the CLI:

    CSV bytes -> ParsedCSV -> claim mapping -> validation -> BulkRequest
              -> POST /scim2/Bulk -> per-user results + running summary

Failure policy:
    - RemoteFetchError / SubmissionError abort the attempt
    - ValidationError aborts before anything is sent
    - Per-user failures reported by the server never abort; every operation
      gets a result and the import is done once all are interpreted
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from scripts import audit

from .bulk_request import BulkRequestAssembler
from .bulk_response import BulkResponseInterpreter
from .claim_mapping import DEFAULT_MAX_WORKERS, ClaimMappingResolver, attribute_names
from .constants import PRIMARY_USERSTORE
from .csv_reader import DEFAULT_MAX_FILE_SIZE_KB, DEFAULT_MAX_USER_COUNT, read_csv
from .exceptions import RemoteFetchError, SubmissionError, ValidationError
from .identity_server import (
    ClaimService,
    IdentityServerAPIError,
    IdentityServerClient,
    IdentityServerError,
    UserService,
)
from .models import (
    AttributeMapping,
    BulkOperationResult,
    BulkRequestEnvelope,
    ImportReport,
    ImportSummary,
    ParsedCSV,
)
from .scim_transformer import ScimTransformer
from .validators import CSVValidator

logger = logging.getLogger(__name__)

ResultCallback = Callable[[BulkOperationResult, Dict[str, int]], None]


class BulkUserImportService:
    """Coordinates resolver, validator, assembler, submission and interpretation."""

    def __init__(
        self,
        client: IdentityServerClient,
        *,
        userstore: str = PRIMARY_USERSTORE,
        operator: str = "system",
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_file_size_kb: int = DEFAULT_MAX_FILE_SIZE_KB,
        max_user_count: int = DEFAULT_MAX_USER_COUNT,
        validator: Optional[CSVValidator] = None,
    ):
        self.userstore = userstore
        self.operator = operator
        self.max_file_size_kb = max_file_size_kb
        self.max_user_count = max_user_count
        self.resolver = ClaimMappingResolver(ClaimService(client), max_workers=max_workers)
        self.user_service = UserService(client)
        self.validator = validator or CSVValidator()
        self.assembler = BulkRequestAssembler(ScimTransformer(userstore=userstore))

    @classmethod
    def from_settings(cls, cfg, client: IdentityServerClient, operator: str = "system") -> "BulkUserImportService":
        return cls(
            client,
            userstore=cfg.userstore,
            operator=operator,
            max_workers=cfg.claim_fetch_max_workers,
            max_file_size_kb=cfg.max_file_size_kb,
            max_user_count=cfg.max_user_count,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────────────────

    def read(self, raw: bytes) -> ParsedCSV:
        """Parse uploaded bytes with the configured limits."""
        try:
            return read_csv(raw, self.max_file_size_kb, self.max_user_count)
        except ValidationError as e:
            self._audit_rejected(e)
            raise

    def resolve_mapping(self) -> List[AttributeMapping]:
        try:
            return self.resolver.resolve()
        except RemoteFetchError as e:
            audit.safe_log_import_event(
                "bulk_import_failed", "-", operator=self.operator, userstore=self.userstore,
                details={"stage": "claim_mapping", "error": str(e)}, success=False,
            )
            raise

    def prepare(self, parsed: ParsedCSV) -> Tuple[List[AttributeMapping], BulkRequestEnvelope]:
        """Resolve the mapping, validate the file and assemble the request.

        Raises:
            RemoteFetchError: Mapping could not be resolved
            ValidationError: File rejected
        """
        mapping = self.resolve_mapping()
        try:
            self.validator.validate_or_raise(parsed, attribute_names(mapping))
        except ValidationError as e:
            self._audit_rejected(e)
            raise
        return mapping, self.assembler.assemble(parsed, mapping)

    def submit(self, envelope: BulkRequestEnvelope) -> List[Dict[str, Any]]:
        """Send the bulk request and return the response operations.

        Raises:
            SubmissionError: Transport failure or non-200 envelope status
        """
        try:
            response = self.user_service.bulk_add_users(envelope.to_dict())
        except IdentityServerAPIError as e:
            raise self._submission_failed(f"Failed to import users: {e.message}", e.status_code) from e
        except (IdentityServerError, requests.RequestException) as e:
            raise self._submission_failed(f"Failed to import users: {e}") from e

        if response.status_code != 200:
            raise self._submission_failed("Failed to import users.", response.status_code)

        try:
            operations = response.json()["Operations"]
        except (ValueError, KeyError, TypeError) as e:
            raise self._submission_failed(f"Malformed bulk response: {e}", response.status_code) from e
        return list(operations)

    def interpret(
        self,
        operations: List[Dict[str, Any]],
        on_result: Optional[ResultCallback] = None,
        expected: Optional[int] = None,
    ) -> ImportReport:
        """Fold the response operations into results and a summary, in response order.

        ``expected`` is the number of submitted operations; it defaults to the
        number of response operations.
        """
        summary = ImportSummary()
        interpreter = BulkResponseInterpreter(summary)
        results: List[BulkOperationResult] = []
        for operation in operations:
            result = interpreter.interpret(operation)
            results.append(result)
            audit.safe_log_import_event(
                "bulk_import_user", result.username, operator=self.operator, userstore=self.userstore,
                details={"status_code": result.http_status_code, "message_key": result.message_key},
                success=result.succeeded,
            )
            if on_result is not None:
                on_result(result, summary.snapshot())
        if expected is None:
            expected = len(operations)
        if len(results) != expected:
            logger.warning(f"Bulk response has {len(results)} operations for {expected} submitted users")
        return ImportReport(results=results, summary=summary, expected=expected)

    # ─────────────────────────────────────────────────────────────────────────
    # Entry points
    # ─────────────────────────────────────────────────────────────────────────

    def import_users(self, parsed: ParsedCSV, on_result: Optional[ResultCallback] = None) -> ImportReport:
        """Run a full import attempt for an already-parsed file."""
        _, envelope = self.prepare(parsed)
        logger.info(f"Submitting {len(envelope.operations)} users to userstore {self.userstore}")
        operations = self.submit(envelope)
        report = self.interpret(operations, on_result, expected=len(envelope.operations))
        summary = report.summary.snapshot()
        logger.info(
            f"Bulk import finished: {summary['successCount']} succeeded, {summary['failedCount']} failed"
        )
        return report

    def import_file(self, raw: bytes, on_result: Optional[ResultCallback] = None) -> ImportReport:
        return self.import_users(self.read(raw), on_result)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _audit_rejected(self, error: ValidationError) -> None:
        logger.info(f"Bulk import file rejected: {error.descriptor.message_key}")
        audit.safe_log_import_event(
            "bulk_import_rejected", "-", operator=self.operator, userstore=self.userstore,
            details=error.descriptor.to_dict(), success=False,
        )

    def _submission_failed(self, message: str, status_code: Optional[int] = None) -> SubmissionError:
        logger.error(f"Bulk submission failed: {message}")
        audit.safe_log_import_event(
            "bulk_import_failed", "-", operator=self.operator, userstore=self.userstore,
            details={"stage": "submission", "status_code": status_code, "error": message}, success=False,
        )
        return SubmissionError(message, status_code=status_code)

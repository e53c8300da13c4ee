"""Header and shape validation for bulk import CSV files.

Checks run in a fixed order and stop at the first failure, so structural
problems are reported before semantic ones:

    1. emptyRowError             - no headers or no rows
    2. columnMismatchError       - a row length differs from the header count
    3. emptyHeaderError          - a blank header cell
    4. missingRequiredHeaderError
    5. blockedHeaderError
    6. duplicateHeaderError      - case-insensitive
    7. invalidHeaderError        - header unknown to the claim mapping
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .constants import BLOCKED_ATTRIBUTES, REQUIRED_ATTRIBUTES
from .exceptions import ValidationError
from .models import ParsedCSV, ValidationErrorDescriptor, ValidationResult


@dataclass(frozen=True)
class ValidationRule:
    check: Callable[[], bool]
    error: ValidationErrorDescriptor


def join_with_and(items: Sequence[str]) -> str:
    """Join items as "a, b and c".

    >>> join_with_and(["email", "mobile", "country"])
    'email, mobile and country'
    """
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " and " + items[-1]


def is_empty_attribute(attribute: Optional[str]) -> bool:
    return not attribute or attribute.strip() == ""


def get_duplicate_entries(headers: Iterable[str]) -> List[str]:
    """Lowercased headers that occur more than once, in first-seen order."""
    counts: Dict[str, int] = {}
    for header in headers:
        key = header.lower()
        counts[key] = counts.get(key, 0) + 1
    return [key for key, count in counts.items() if count > 1]


def get_missing_fields(headers: Sequence[str], required_fields: Iterable[str]) -> List[str]:
    lowered = {header.lower() for header in headers}
    return [field for field in required_fields if field.lower() not in lowered]


def get_blocked_attributes(headers: Sequence[str], blocked_attributes: Iterable[str]) -> List[str]:
    blocked = {attribute.lower() for attribute in blocked_attributes}
    return [header for header in headers if header.lower() in blocked]


def get_invalid_header_attributes(headers: Sequence[str], known_attributes: Iterable[str]) -> List[str]:
    known = {attribute.lower() for attribute in known_attributes}
    return [header for header in headers if header.lower() not in known]


def _descriptor(key: str, headers: Optional[Sequence[str]] = None) -> ValidationErrorDescriptor:
    values = {"headers": join_with_and(list(headers))} if headers is not None else {}
    return ValidationErrorDescriptor(
        message_key=f"{key}.message",
        description_key=f"{key}.description",
        description_values=values,
    )


class CSVValidator:
    """Fail-fast validator for a parsed CSV against the known attribute names."""

    def __init__(
        self,
        required_attributes: Iterable[str] = REQUIRED_ATTRIBUTES,
        blocked_attributes: Iterable[str] = BLOCKED_ATTRIBUTES,
    ):
        self.required_attributes = tuple(required_attributes)
        self.blocked_attributes = tuple(blocked_attributes)

    def rules(self, parsed: ParsedCSV, known_attribute_names: Iterable[str]) -> List[ValidationRule]:
        """Validation rules in priority order."""
        headers = parsed.headers
        rows = parsed.rows

        missing = get_missing_fields(headers, self.required_attributes)
        blocked = get_blocked_attributes(headers, self.blocked_attributes)
        duplicates = get_duplicate_entries(headers)
        invalid = get_invalid_header_attributes(headers, known_attribute_names)

        return [
            ValidationRule(
                check=lambda: bool(headers) and bool(rows),
                error=_descriptor("emptyRowError"),
            ),
            ValidationRule(
                check=lambda: all(len(row) == len(headers) for row in rows),
                error=_descriptor("columnMismatchError"),
            ),
            ValidationRule(
                check=lambda: not any(is_empty_attribute(header) for header in headers),
                error=_descriptor("emptyHeaderError"),
            ),
            ValidationRule(
                check=lambda: not missing,
                error=_descriptor("missingRequiredHeaderError", missing),
            ),
            ValidationRule(
                check=lambda: not blocked,
                error=_descriptor("blockedHeaderError", blocked),
            ),
            ValidationRule(
                check=lambda: not duplicates,
                error=_descriptor("duplicateHeaderError", duplicates),
            ),
            ValidationRule(
                check=lambda: not invalid,
                error=_descriptor("invalidHeaderError", invalid),
            ),
        ]

    def validate(self, parsed: ParsedCSV, known_attribute_names: Iterable[str]) -> ValidationResult:
        """Run the rules, stopping at the first failure.

        Args:
            parsed: Headers and rows read from the file
            known_attribute_names: Attribute names from the resolved claim mapping

        Returns:
            ValidationResult carrying the first failing rule's descriptor
        """
        for rule in self.rules(parsed, known_attribute_names):
            if not rule.check():
                return ValidationResult(valid=False, error=rule.error)
        return ValidationResult(valid=True)

    def validate_or_raise(self, parsed: ParsedCSV, known_attribute_names: Iterable[str]) -> None:
        """Like :meth:`validate` but raises ``ValidationError`` on failure."""
        result = self.validate(parsed, known_attribute_names)
        if not result.valid:
            raise ValidationError(result.error)

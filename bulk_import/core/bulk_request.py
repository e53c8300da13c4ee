"""Assemble a SCIM BulkRequest from a validated CSV."""
from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .constants import ASK_PASSWORD_ATTRIBUTE, USERNAME_ATTRIBUTE
from .models import AttributeMapping, BulkRequestEnvelope, CorrelationId, ParsedCSV, ScimOperation
from .scim_transformer import ScimTransformer, cell_value

logger = logging.getLogger(__name__)


def find_attribute(mapping: Sequence[AttributeMapping], name: str) -> Optional[AttributeMapping]:
    """First mapping entry whose attribute name matches, case-insensitively."""
    lowered = name.lower()
    return next((attribute for attribute in mapping if attribute.attribute_name.lower() == lowered), None)


def filter_attributes(
    headers: Sequence[str],
    mapping: Sequence[AttributeMapping],
) -> List[Optional[AttributeMapping]]:
    """Mapping entries for the headers present, plus the pinned askPassword entry.

    The pinned entry is appended even when the mapping lacks it; it is then
    ``None`` and skipped by the transformer.
    """
    filtered: List[Optional[AttributeMapping]] = []
    for header in headers:
        attribute = find_attribute(mapping, header)
        if attribute is not None:
            filtered.append(attribute)

    ask_password = find_attribute(mapping, ASK_PASSWORD_ATTRIBUTE)
    if ask_password is None:
        logger.warning(f"Attribute '{ASK_PASSWORD_ATTRIBUTE}' missing from claim mapping")
    filtered.append(ask_password)
    return filtered


class BulkRequestAssembler:
    """Turns every CSV row into one POST /Users operation."""

    def __init__(self, transformer: Optional[ScimTransformer] = None):
        self.transformer = transformer or ScimTransformer()

    def build_operation(
        self,
        row: Sequence[str],
        filtered_mapping: Sequence[Optional[AttributeMapping]],
        headers: Sequence[str],
    ) -> ScimOperation:
        username = cell_value(row, headers, USERNAME_ATTRIBUTE) or ""
        return ScimOperation(
            correlation_id=CorrelationId.new(username),
            data=self.transformer.row_to_scim(row, filtered_mapping, headers),
        )

    def assemble(self, parsed: ParsedCSV, mapping: Sequence[AttributeMapping]) -> BulkRequestEnvelope:
        """Build the BulkRequest envelope, one operation per row in row order.

        ``failOnErrors`` stays 0 so the server processes every operation
        regardless of earlier failures in the batch.
        """
        headers = [header.lower() for header in parsed.headers]
        filtered_mapping = filter_attributes(headers, mapping)
        operations = [self.build_operation(row, filtered_mapping, headers) for row in parsed.rows]
        logger.info(f"Assembled bulk request with {len(operations)} operations")
        return BulkRequestEnvelope(operations=operations)

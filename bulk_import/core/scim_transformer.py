"""CSV row -> SCIM 2.0 User resource transformation.

Each row is folded into a fresh attribute tree. Keys at the top level are
either core User attributes or extension dialect URIs holding their own
sub-tree; values are strings, nested objects or ordered lists.

Usage:
    transformer = ScimTransformer(userstore="PRIMARY")
    user = transformer.row_to_scim(row, filtered_mapping, headers)
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

from .constants import (
    ASK_PASSWORD_ATTRIBUTE,
    ASK_PASSWORD_VALUE,
    HOME_ADDRESS_PREFIX,
    MULTI_VALUED_CORE_ATTRIBUTES,
    MULTI_VALUED_MARKER,
    PRIMARY_USERSTORE,
    SCIM2_USER_SCHEMA,
    SPECIAL_MULTI_VALUED_COMPLEX_ATTRIBUTES,
    USERNAME_ATTRIBUTE,
)
from .models import AttributeMapping

logger = logging.getLogger(__name__)

Tree = Dict[str, Any]


def special_family(scim_attribute: str) -> Optional[str]:
    """Return the multi-valued complex family a plain attribute path belongs to.

    >>> special_family("phoneNumbers.mobile")
    'phoneNumbers'
    >>> special_family("nickName") is None
    True
    """
    for family in SPECIAL_MULTI_VALUED_COMPLEX_ATTRIBUTES:
        if scim_attribute == family or scim_attribute.startswith(f"{family}."):
            return family
    return None


def cell_value(row: Sequence[str], headers: Sequence[str], attribute_name: str) -> Optional[str]:
    """Value of the column whose (lowercased) header equals ``attribute_name``."""
    try:
        return row[list(headers).index(attribute_name.lower())]
    except (ValueError, IndexError):
        return None


class ScimTransformer:
    """Transforms validated CSV rows into SCIM User resources."""

    def __init__(self, userstore: Optional[str] = None):
        self.userstore = userstore

    def username_value(self, value: str) -> str:
        """Prefix the username with a secondary userstore domain."""
        if self.userstore and self.userstore.lower() != PRIMARY_USERSTORE.lower():
            return f"{self.userstore}/{value}"
        return value

    def row_to_scim(
        self,
        row: Sequence[str],
        filtered_mapping: Sequence[Optional[AttributeMapping]],
        headers: Sequence[str],
    ) -> Tree:
        """Build the SCIM User body for one row.

        Exactly one rule applies per attribute, in this order: userName,
        askPassword flag, special multi-valued complex family, home address
        field, simple attribute, complex dotted attribute.

        Args:
            row: Cell values aligned with ``headers``
            filtered_mapping: Mapping entries for the present headers; ``None``
                entries (an unresolved pinned attribute) are skipped
            headers: Lowercased CSV headers

        Returns:
            SCIM User resource with a ``schema`` list of every dialect used
        """
        tree: Tree = {}
        schemas: List[str] = [SCIM2_USER_SCHEMA]

        for attribute in filtered_mapping:
            if attribute is None:
                continue

            dialect = attribute.mapped_scim_claim_dialect_uri
            scim_attribute = attribute.scim_attribute
            is_ask_password = attribute.attribute_name.lower() == ASK_PASSWORD_ATTRIBUTE.lower()
            value = cell_value(row, headers, attribute.attribute_name)

            if value is None and not is_ask_password:
                logger.debug(f"No column for attribute '{attribute.attribute_name}', skipping")
                continue

            if dialect not in schemas:
                schemas.append(dialect)

            if scim_attribute == USERNAME_ATTRIBUTE:
                tree[USERNAME_ATTRIBUTE] = self.username_value(value)
            elif is_ask_password:
                _set_ask_password(tree, dialect, scim_attribute)
            elif MULTI_VALUED_MARKER not in scim_attribute and special_family(scim_attribute):
                _append_special(tree, scim_attribute, value)
            elif scim_attribute.startswith(HOME_ADDRESS_PREFIX):
                field = scim_attribute[len(HOME_ADDRESS_PREFIX):]
                tree.setdefault("addresses", []).append({"type": "home", field: value})
            else:
                _set_attribute(tree, dialect, scim_attribute, value)

        return {"schema": schemas, **tree}


def _dialect_target(tree: Tree, dialect: str) -> Tree:
    """Core attributes live on the root; extension attributes under their dialect."""
    if dialect == SCIM2_USER_SCHEMA:
        return tree
    target = tree.get(dialect)
    if not isinstance(target, dict):
        target = tree[dialect] = {}
    return target


def _set_ask_password(tree: Tree, dialect: str, scim_attribute: str) -> None:
    existing = tree.get(dialect)
    tree[dialect] = {**(existing if isinstance(existing, dict) else {}), scim_attribute: ASK_PASSWORD_VALUE}


def _append_special(tree: Tree, scim_attribute: str, value: str) -> None:
    family = special_family(scim_attribute)
    if scim_attribute.startswith(f"{family}."):
        entry: Dict[str, Any] = {"type": scim_attribute.split(".", 1)[1], "value": value}
    else:
        entry = {"primary": True, "value": value}
    tree.setdefault(family, []).append(entry)


def _append_multi_valued(target: Tree, key: str, entry: Any) -> None:
    """Append to a multi-valued attribute, promoting bare values once objects appear.

    ``emails`` holds plain strings until a typed entry (``emails.work``) joins
    it; from then on every entry is an object and the first bare value is the
    primary one.
    """
    existing = target.get(key)
    values = list(existing) if isinstance(existing, list) else []
    values.append(entry)

    if any(isinstance(item, dict) for item in values) and any(isinstance(item, str) for item in values):
        has_primary = any(isinstance(item, dict) and item.get("primary") for item in values)
        promoted = []
        for item in values:
            if isinstance(item, str):
                item = {"value": item}
                if not has_primary:
                    item["primary"] = True
                    has_primary = True
            promoted.append(item)
        values = promoted
    target[key] = values


def _set_attribute(tree: Tree, dialect: str, scim_attribute: str, value: str) -> None:
    """Simple (``name``) or complex (``parent.child``) attribute, possibly multi-valued."""
    is_multi_valued = MULTI_VALUED_MARKER in scim_attribute
    cleaned = scim_attribute.split(MULTI_VALUED_MARKER)[0] if is_multi_valued else scim_attribute
    target = _dialect_target(tree, dialect)
    is_core_multi_valued = dialect == SCIM2_USER_SCHEMA and cleaned.split(".", 1)[0] in MULTI_VALUED_CORE_ATTRIBUTES

    if "." not in cleaned:
        if is_multi_valued or is_core_multi_valued:
            _append_multi_valued(target, cleaned, value)
        else:
            target[cleaned] = value
        return

    parent, child = cleaned.split(".", 1)
    if is_core_multi_valued and not is_multi_valued:
        # emails.work -> {"type": "work", "value": ...}
        _append_multi_valued(target, parent, {"type": child, "value": value})
    elif is_multi_valued:
        _append_multi_valued(target, parent, {child: value})
    else:
        node = target.get(parent)
        if not isinstance(node, dict):
            node = target[parent] = {}
        node[child] = value

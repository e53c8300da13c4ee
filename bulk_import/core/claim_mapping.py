"""Claim-mapping resolution: CSV attribute name -> SCIM attribute URI.

The mapping is rebuilt for every import attempt from three lookups:

    1. SCIM resource types   -> schema URIs of the ``User`` resource
    2. claim dialects        -> only the dialects whose URI is one of those schemas
    3. external claims       -> fetched per dialect, concurrently

Any failure discards the partial result and raises ``RemoteFetchError``.

Attribute-name collisions are kept in fetch order; lookups downstream take the
first entry, so the dialect order reported by the server decides the winner.
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List

import requests

from .constants import LOCAL_CLAIM_DIALECT, USER_RESOURCE_TYPE
from .exceptions import RemoteFetchError
from .identity_server import ClaimService, IdentityServerAPIError, IdentityServerError
from .models import AttributeMapping

DEFAULT_MAX_WORKERS = 8

logger = logging.getLogger(__name__)


def attribute_name_from_local_claim(local_claim_uri: str) -> str:
    """Strip the local claim dialect and lowercase the remainder.

    >>> attribute_name_from_local_claim("http://wso2.org/claims/emailaddress")
    'emailaddress'
    """
    return local_claim_uri.replace(f"{LOCAL_CLAIM_DIALECT}/", "").lower()


def to_attribute_mapping(claim: Dict[str, Any]) -> AttributeMapping:
    local_claim_uri = claim["mappedLocalClaimURI"]
    return AttributeMapping(
        attribute_name=attribute_name_from_local_claim(local_claim_uri),
        mapped_local_claim_uri=local_claim_uri,
        mapped_scim_attribute_uri=claim["claimURI"],
        mapped_scim_claim_dialect_uri=claim["claimDialectURI"],
    )


def attribute_names(mapping: Iterable[AttributeMapping]) -> List[str]:
    """Known attribute names, in mapping order."""
    return [attribute.attribute_name for attribute in mapping]


class ClaimMappingResolver:
    """Builds the attribute mapping table for one import session."""

    def __init__(self, claim_service: ClaimService, max_workers: int = DEFAULT_MAX_WORKERS):
        self.claim_service = claim_service
        self.max_workers = max(1, max_workers)

    def resolve(self) -> List[AttributeMapping]:
        """Fetch and flatten every SCIM user claim.

        Returns:
            AttributeMapping list in dialect order, then claim order

        Raises:
            RemoteFetchError: If any of the remote lookups fails
        """
        try:
            schemas = self._user_schemas()
            dialects = self._scim_dialects(schemas)
            claim_lists = self._fetch_external_claims(dialects)
            mapping = [to_attribute_mapping(claim) for claims in claim_lists for claim in claims]
        except IdentityServerAPIError as e:
            logger.error(f"Claim mapping resolution failed: {e}")
            raise RemoteFetchError(e.message, status_code=e.status_code, endpoint=e.endpoint) from e
        except (IdentityServerError, requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.error(f"Claim mapping resolution failed: {e}")
            raise RemoteFetchError(f"Failed to resolve claim mapping: {e}") from e

        self._warn_on_collisions(mapping)
        logger.info(f"Resolved {len(mapping)} claim mappings from {len(dialects)} SCIM dialects")
        return mapping

    def _user_schemas(self) -> List[str]:
        """Base schema plus extension schemas of the User resource type."""
        response = self.claim_service.get_scim_resource_types()
        for resource in response.get("Resources") or []:
            if resource.get("id") == USER_RESOURCE_TYPE:
                schemas = [ext["schema"] for ext in resource.get("schemaExtensions") or []]
                schemas.append(resource["schema"])
                return schemas
        raise RemoteFetchError(f"SCIM resource type '{USER_RESOURCE_TYPE}' not advertised")

    def _scim_dialects(self, schemas: List[str]) -> List[Dict[str, Any]]:
        dialects = self.claim_service.get_claim_dialects()
        return [dialect for dialect in dialects if dialect.get("dialectURI") in schemas]

    def _fetch_external_claims(self, dialects: List[Dict[str, Any]]) -> List[List[Dict[str, Any]]]:
        """Fan out one request per dialect; the first failure propagates."""
        if not dialects:
            return []
        workers = min(self.max_workers, len(dialects))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="claim-fetch") as pool:
            futures = [pool.submit(self.claim_service.get_external_claims, d["id"]) for d in dialects]
            return [future.result() for future in futures]

    @staticmethod
    def _warn_on_collisions(mapping: List[AttributeMapping]) -> None:
        seen: Dict[str, AttributeMapping] = {}
        for attribute in mapping:
            first = seen.setdefault(attribute.attribute_name, attribute)
            if first is not attribute:
                logger.warning(
                    f"Attribute '{attribute.attribute_name}' maps to both "
                    f"{first.mapped_scim_attribute_uri} and {attribute.mapped_scim_attribute_uri}; "
                    f"using the first"
                )

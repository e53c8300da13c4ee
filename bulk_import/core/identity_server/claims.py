"""Claim metadata lookups (SCIM resource types, dialects, external claims)."""
from __future__ import annotations
from typing import Any, Dict, List

from .client import IdentityServerClient

SCIM_RESOURCE_TYPES_PATH = "/scim2/ResourceTypes"
CLAIM_DIALECTS_PATH = "/api/server/v1/claim-dialects"


class ClaimService:
    """Read-only access to the identity server's claim configuration."""

    def __init__(self, client: IdentityServerClient):
        self.client = client

    def get_scim_resource_types(self) -> Dict[str, Any]:
        """Return the SCIM ResourceTypes list response."""
        resp = self.client.get(SCIM_RESOURCE_TYPES_PATH, headers={"Accept": "application/scim+json"})
        return resp.json()

    def get_claim_dialects(self) -> List[Dict[str, Any]]:
        """Return every claim dialect as ``{id, dialectURI}`` items."""
        resp = self.client.get(CLAIM_DIALECTS_PATH)
        return resp.json()

    def get_external_claims(self, dialect_id: str) -> List[Dict[str, Any]]:
        """Return the claims of one dialect with their local claim mapping.

        Args:
            dialect_id: Dialect identifier from :meth:`get_claim_dialects`
        """
        resp = self.client.get(f"{CLAIM_DIALECTS_PATH}/{dialect_id}/claims")
        return resp.json()

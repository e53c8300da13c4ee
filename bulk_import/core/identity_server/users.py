"""SCIM user endpoints used by the bulk import."""
from __future__ import annotations
from typing import Any, Dict

import requests

from .client import IdentityServerClient

SCIM_BULK_PATH = "/scim2/Bulk"
SCIM_SERVICE_PROVIDER_CONFIG_PATH = "/scim2/ServiceProviderConfig"
SCIM_CONTENT_TYPE = "application/scim+json"


class UserService:
    """Service for SCIM user provisioning on the identity server."""

    def __init__(self, client: IdentityServerClient):
        self.client = client

    def bulk_add_users(self, envelope: Dict[str, Any]) -> requests.Response:
        """Submit a SCIM BulkRequest in one round trip.

        Args:
            envelope: Serialized BulkRequest body

        Returns:
            Raw response; callers inspect the envelope status
        """
        return self.client.post(
            SCIM_BULK_PATH,
            json=envelope,
            headers={"Content-Type": SCIM_CONTENT_TYPE, "Accept": SCIM_CONTENT_TYPE},
        )

    def service_provider_config(self) -> Dict[str, Any]:
        resp = self.client.get(SCIM_SERVICE_PROVIDER_CONFIG_PATH, headers={"Accept": SCIM_CONTENT_TYPE})
        return resp.json()

"""Identity server REST API client library.

Architecture:
- client.py: HTTP client with authentication and token refresh
- claims.py: SCIM resource types, claim dialects and external claims
- users.py: SCIM bulk user provisioning
- exceptions.py: Typed exceptions for error handling

Usage:
    from bulk_import.core.identity_server import create_client, ClaimService

    client = create_client("https://localhost:9443", username="admin", password="admin")
    dialects = ClaimService(client).get_claim_dialects()
"""
from .client import (
    IdentityServerClient,
    create_client,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    IdentityServerError,
    IdentityServerAPIError,
    NotAuthenticatedError,
)
from .claims import ClaimService
from .users import UserService

__all__ = [
    "IdentityServerClient",
    "create_client",
    "REQUEST_TIMEOUT",
    "IdentityServerError",
    "IdentityServerAPIError",
    "NotAuthenticatedError",
    "ClaimService",
    "UserService",
]

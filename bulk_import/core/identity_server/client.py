"""Low-level HTTP client for the identity server REST APIs.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any, Iterable
from datetime import datetime, timedelta

import requests

from .exceptions import IdentityServerAPIError, NotAuthenticatedError

REQUEST_TIMEOUT = 10
TOKEN_PATH = "/oauth2/token"
DEFAULT_SCOPES = (
    "internal_claim_meta_view",
    "internal_user_mgt_create",
    "internal_user_mgt_list",
)

logger = logging.getLogger(__name__)


class IdentityServerClient:
    """HTTP client for the identity server with automatic token management.

    Features:
    - OAuth2 client credentials with refresh before expiry
    - HTTP basic authentication for admin accounts
    - Centralized error handling

    Usage:
        client = IdentityServerClient("https://localhost:9443")
        client.authenticate_service_account("bulk-import", "secret")
        response = client.get("/scim2/ResourceTypes")
    """

    def __init__(self, base_url: str, timeout: int = REQUEST_TIMEOUT, verify: bool = True):
        """Initialize identity server client.

        Args:
            base_url: Identity server base URL, including any tenant path
            timeout: Per-request timeout in seconds
            verify: Verify TLS certificates
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify = verify
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._basic_auth: Optional[tuple[str, str]] = None
        self._auth_params: Dict[str, Any] = {}

    @property
    def is_authenticated(self) -> bool:
        return bool(self._basic_auth or self._token)

    def authenticate_basic(self, username: str, password: str) -> None:
        """Use HTTP basic authentication for every request."""
        self._basic_auth = (username, password)
        self._token = None
        self._token_expires_at = None

    def authenticate_service_account(
        self,
        client_id: str,
        client_secret: str,
        scopes: Iterable[str] = DEFAULT_SCOPES,
    ) -> str:
        """Authenticate with client credentials and store them for auto-refresh.

        Args:
            client_id: OAuth2 client ID
            client_secret: OAuth2 client secret
            scopes: Scopes requested for the token

        Returns:
            Access token
        """
        self._basic_auth = None
        self._auth_params = {
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": " ".join(scopes),
        }
        self._refresh_token()
        return self._token

    def _refresh_token(self) -> None:
        url = f"{self.base_url}{TOKEN_PATH}"
        data = {"grant_type": "client_credentials", **self._auth_params}
        resp = requests.post(url, data=data, timeout=self.timeout, verify=self.verify)
        if resp.status_code != 200:
            raise IdentityServerAPIError(resp.status_code, resp.text, url)
        payload = resp.json()
        self._token = payload["access_token"]
        # Refresh 10 seconds ahead of the advertised lifetime
        expires_in = int(payload.get("expires_in", 60))
        self._token_expires_at = datetime.now() + timedelta(seconds=max(expires_in - 10, 0))
        logger.debug(f"Obtained identity server token for client {self._auth_params['client_id']}")

    def _auth_kwargs(self, headers: Dict[str, str]) -> Dict[str, Any]:
        """Return request kwargs carrying the current credentials."""
        if self._basic_auth:
            return {"auth": self._basic_auth}
        if not self._token or not self._token_expires_at:
            raise NotAuthenticatedError(
                "Not authenticated - call authenticate_basic or authenticate_service_account first"
            )
        if datetime.now() >= self._token_expires_at:
            self._refresh_token()
        headers["Authorization"] = f"Bearer {self._token}"
        return {}

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            IdentityServerAPIError: On HTTP error
        """
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers.setdefault("Accept", "application/json")
        auth = self._auth_kwargs(headers)

        resp = requests.get(
            url, params=params, headers=headers, timeout=self.timeout, verify=self.verify, **auth, **kwargs
        )
        self._handle_error(resp, url)
        return resp

    def post(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Raises:
            IdentityServerAPIError: On HTTP error
        """
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers.setdefault("Accept", "application/json")
        auth = self._auth_kwargs(headers)

        resp = requests.post(
            url, json=json, headers=headers, timeout=self.timeout, verify=self.verify, **auth, **kwargs
        )
        self._handle_error(resp, url)
        return resp

    def _handle_error(self, resp: requests.Response, url: str) -> None:
        if resp.status_code >= 400:
            raise IdentityServerAPIError(resp.status_code, resp.text, url)


def create_client(
    base_url: str,
    *,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    timeout: int = REQUEST_TIMEOUT,
    verify: bool = True,
) -> IdentityServerClient:
    """Build an authenticated client, preferring client credentials over basic auth.

    Raises:
        NotAuthenticatedError: If neither credential pair is complete
    """
    client = IdentityServerClient(base_url, timeout=timeout, verify=verify)
    if client_id and client_secret:
        client.authenticate_service_account(client_id, client_secret)
    elif username and password:
        client.authenticate_basic(username, password)
    else:
        raise NotAuthenticatedError("Provide client credentials or admin username/password")
    return client

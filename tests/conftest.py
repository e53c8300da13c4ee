"""Pytest shared fixtures for bulk import tests."""
import os
import pathlib
import sys
import json
import time
from types import SimpleNamespace
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("IDENTITY_SERVER_URL", "https://is.test")
os.environ.setdefault("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")

import pytest
import requests

from bulk_import.core.constants import SCIM2_USER_SCHEMA
from scripts import audit

ENTERPRISE_SCHEMA = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"
WSO2_SCHEMA = "urn:scim:wso2:schema"
GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"


def _claim(local: str, dialect: str, attribute: str) -> dict:
    return {
        "id": f"{dialect}:{attribute}",
        "mappedLocalClaimURI": f"http://wso2.org/claims/{local}",
        "claimURI": f"{dialect}:{attribute}",
        "claimDialectURI": dialect,
    }


RESOURCE_TYPES = {
    "totalResults": 2,
    "Resources": [
        {
            "id": "User",
            "schema": SCIM2_USER_SCHEMA,
            "schemaExtensions": [
                {"schema": ENTERPRISE_SCHEMA, "required": False},
                {"schema": WSO2_SCHEMA, "required": False},
            ],
        },
        {"id": "Group", "schema": GROUP_SCHEMA, "schemaExtensions": []},
    ],
}

DIALECTS = [
    {"id": "local", "dialectURI": "http://wso2.org/claims"},
    {"id": "scim-core", "dialectURI": SCIM2_USER_SCHEMA},
    {"id": "scim-enterprise", "dialectURI": ENTERPRISE_SCHEMA},
    {"id": "scim-wso2", "dialectURI": WSO2_SCHEMA},
    {"id": "oidc", "dialectURI": "http://wso2.org/oidc/claim"},
]

EXTERNAL_CLAIMS = {
    "scim-core": [
        _claim("username", SCIM2_USER_SCHEMA, "userName"),
        _claim("email", SCIM2_USER_SCHEMA, "emails"),
        _claim("otheremail", SCIM2_USER_SCHEMA, "emails#other"),
        _claim("givenname", SCIM2_USER_SCHEMA, "name.givenName"),
        _claim("lastname", SCIM2_USER_SCHEMA, "name.familyName"),
        _claim("mobile", SCIM2_USER_SCHEMA, "phoneNumbers.mobile"),
        _claim("telephone", SCIM2_USER_SCHEMA, "phoneNumbers.work"),
        _claim("im", SCIM2_USER_SCHEMA, "ims"),
        _claim("streetaddress", SCIM2_USER_SCHEMA, "addresses#home.streetAddress"),
        _claim("country", SCIM2_USER_SCHEMA, "addresses#home.country"),
        _claim("userid", SCIM2_USER_SCHEMA, "id"),
    ],
    "scim-enterprise": [
        _claim("department", ENTERPRISE_SCHEMA, "department"),
        _claim("organization", ENTERPRISE_SCHEMA, "organization"),
        _claim("manager", ENTERPRISE_SCHEMA, "manager.displayName"),
    ],
    "scim-wso2": [
        _claim("identity/askPassword", WSO2_SCHEMA, "askPassword"),
        _claim("nickname", WSO2_SCHEMA, "nickNames#home"),
    ],
    "oidc": [
        {
            "mappedLocalClaimURI": "http://wso2.org/claims/username",
            "claimURI": "preferred_username",
            "claimDialectURI": "http://wso2.org/oidc/claim",
        },
    ],
}


class StubResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, payload, status_code: int = 200, url: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload)
        self.url = url

    def json(self):
        return self._payload


class FakeIdentityServerClient:
    """In-memory identity server answering the claim and bulk endpoints."""

    def __init__(self, bulk_response: Optional[StubResponse] = None):
        self.bulk_response = bulk_response
        self.submitted: list[dict] = []
        self.get_calls: list[str] = []
        self.failing_paths: dict[str, Exception] = {}

    def get(self, path, params=None, **kwargs):
        self.get_calls.append(path)
        if path in self.failing_paths:
            raise self.failing_paths[path]
        if path == "/scim2/ResourceTypes":
            return StubResponse(RESOURCE_TYPES)
        if path == "/api/server/v1/claim-dialects":
            return StubResponse(DIALECTS)
        if path.startswith("/api/server/v1/claim-dialects/") and path.endswith("/claims"):
            dialect_id = path.split("/")[-2]
            return StubResponse(EXTERNAL_CLAIMS.get(dialect_id, []))
        if path == "/scim2/ServiceProviderConfig":
            return StubResponse({"bulk": {"supported": True}})
        raise AssertionError(f"Unexpected GET {path}")

    def post(self, path, json=None, **kwargs):
        assert path == "/scim2/Bulk", f"Unexpected POST {path}"
        self.submitted.append(json)
        if self.bulk_response is not None:
            return self.bulk_response
        operations = [
            {"bulkId": op["bulkId"], "method": "POST", "status": {"code": 201}}
            for op in json["Operations"]
        ]
        return StubResponse({"Operations": operations})


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Fail loudly if a unit test reaches the real network."""

    def _stub(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected network access in tests: {url}")

    monkeypatch.setattr(requests, "get", _stub)
    monkeypatch.setattr(requests, "post", _stub)


@pytest.fixture(autouse=True)
def audit_log(monkeypatch, tmp_path):
    """Write audit events to an isolated file for each test."""
    audit_dir = tmp_path / "audit"
    audit_file = audit_dir / "bulk-import-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_file)
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit_file


@pytest.fixture()
def fake_client():
    return FakeIdentityServerClient()


@pytest.fixture()
def attribute_mapping(fake_client):
    """Resolved mapping for the stub identity server."""
    from bulk_import.core.claim_mapping import ClaimMappingResolver
    from bulk_import.core.identity_server import ClaimService

    return ClaimMappingResolver(ClaimService(fake_client)).resolve()


@pytest.fixture()
def bearer_token(monkeypatch):
    """Issue RS256 tokens accepted by the API, signed with a throwaway key."""
    import jwt
    from cryptography.hazmat.primitives.asymmetric import rsa

    from bulk_import.api import decorators

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    signing_key = SimpleNamespace(key=private_key.public_key())
    jwks_client = SimpleNamespace(get_signing_key_from_jwt=lambda token: signing_key)
    monkeypatch.setattr(decorators, "get_jwks_client", lambda jwks_url: jwks_client)

    def issue(key=private_key, expires_in=300, **claims):
        now = int(time.time())
        payload = {
            "iss": "https://is.test/oauth2/token",
            "sub": "alice",
            "iat": now,
            "exp": now + expires_in,
            "scope": "internal_user_mgt_create internal_user_mgt_list",
        }
        payload.update(claims)
        payload = {name: value for name, value in payload.items() if value is not None}
        return jwt.encode(payload, key, algorithm="RS256")

    return issue

"""
Flask decorators for authentication and authorization.

Bulk import requests must carry an OAuth 2.0 Bearer token (RFC 6750) issued
by the identity server. The token is a JWT verified against the server's
JWKS endpoint; the operator recorded in the audit trail comes from its claims.
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)
from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

# JWKS clients cached per URL
_jwks_clients: Dict[str, PyJWKClient] = {}


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client(jwks_url: str) -> PyJWKClient:
    """Cached JWKS client for the identity server's signing keys."""
    client = _jwks_clients.get(jwks_url)
    if client is None:
        logger.info(f"Initializing JWKS client for: {jwks_url}")
        client = PyJWKClient(jwks_url, cache_keys=True, max_cached_keys=16, lifespan=3600)
        _jwks_clients[jwks_url] = client
    return client


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate a JWT Bearer token.

    Checks the RS256 signature via JWKS, expiry, not-before and issuer.

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client(cfg.jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.token_issuer,
            options={"verify_aud": False, "require": ["exp", "iat"]},
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except (InvalidTokenError, PyJWKClientError) as e:
        raise TokenValidationError(f"Token validation failed: {e}")


def token_scopes(claims: Dict[str, Any]) -> List[str]:
    """Scopes from a space-separated ``scope`` claim or a ``scp`` list."""
    scope = claims.get("scope")
    if isinstance(scope, str):
        return scope.split()
    scp = claims.get("scp")
    if isinstance(scp, list):
        return [str(s) for s in scp]
    return []


def token_operator(claims: Dict[str, Any]) -> str:
    """Identity to record as the operator of an import."""
    return claims.get("username") or claims.get("sub") or claims.get("client_id") or "unknown"


def _unauthorized(detail: str, error: str = "invalid_token"):
    response = jsonify({"error": "Unauthorized", "message": detail})
    response.headers["WWW-Authenticate"] = f'Bearer error="{error}"'
    return response, 401


def require_oauth_token(scopes: Optional[List[str]] = None):
    """
    Decorator requiring a valid Bearer token carrying the given scopes.

    On success the claims are stored in ``g.token_claims`` and the operator
    name in ``g.operator``.

    Returns:
        401 Unauthorized: Missing, malformed, invalid or expired token
        403 Forbidden: Token lacks a required scope
    """
    required = list(scopes or [])

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")
            if not auth_header:
                logger.warning("Bulk import request missing Authorization header")
                return _unauthorized("Authorization header required. Use 'Authorization: Bearer <token>'",
                                     error="invalid_request")

            scheme, _, token = auth_header.partition(" ")
            if scheme.lower() != "bearer" or not token.strip():
                logger.warning("Bulk import request with invalid Authorization format")
                return _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'",
                                     error="invalid_request")

            try:
                claims = validate_jwt_token(token.strip())
            except TokenValidationError as e:
                logger.warning(f"JWT validation failed: {e}")
                return _unauthorized(str(e))

            granted = token_scopes(claims)
            missing = [scope for scope in required if scope not in granted]
            if missing:
                logger.warning(f"Token for {token_operator(claims)} missing scopes: {missing}")
                response = jsonify({
                    "error": "Forbidden",
                    "message": f"Insufficient scope. Required: {', '.join(required)}",
                })
                response.headers["WWW-Authenticate"] = 'Bearer error="insufficient_scope"'
                return response, 403

            g.token_claims = claims
            g.operator = token_operator(claims)
            return fn(*args, **kwargs)

        return wrapper

    return decorator

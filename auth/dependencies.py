"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer authentication.

The only accepted credential is an "Authorization: Bearer <token>" header.
There are no cookies and no server-side sessions; every request carries its
own token.

try_get_token_claims() is the soft variant (returns None on failure).
require_token() wraps it and raises Unauthorized, which api/main.py maps to
HTTP 401.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.tokens import TokenService
from core.errors import Unauthorized

_BEARER_PREFIX = "Bearer "


def bearer_token(request: Request) -> str | None:
    """Return the raw token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def try_get_token_claims(request: Request) -> dict | None:
    """Return the verified claims of the request's bearer token, or None.

    Never raises -- callers that need a hard 401 should use require_token().
    """
    tokens: TokenService = request.app.state.tokens
    return tokens.decode(bearer_token(request))


def require_token(request: Request) -> dict:
    """Require a valid bearer token. Raises Unauthorized otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: dict = Depends(require_token)): ...
    """
    claims = try_get_token_claims(request)
    if claims is None:
        raise Unauthorized("Authentication required.")
    return claims

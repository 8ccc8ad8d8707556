"""
auth/dependencies.py -- FastAPI Depends() helper for bearer-token auth.

get_current_user() is the first stage of every authenticated route's
pipeline (auth -> rate limit -> body validation -> handler). It either
returns a verified TokenPayload or raises AuthenticationError; there is no
"partially authenticated" state for later stages to reason about.

The verified identity is also stored on request.state.auth_user so the rate
limiter can key on the user id instead of the client IP.

The token is trusted on signature + expiry alone -- no DB lookup. Routes
that need the stored account (GET /auth/me) resolve it through AuthService.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import TokenPayload
from auth.tokens import verify_token
from core.errors import AuthenticationError

_BEARER_PREFIX = "Bearer "


def get_current_user(request: Request) -> TokenPayload:
    """Require a valid `Authorization: Bearer <token>` header.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: TokenPayload = Depends(get_current_user)): ...

    Raises:
        AuthenticationError: header missing or not a Bearer header
            ("No token provided"), or token invalid/expired
            ("Invalid or expired token").
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        raise AuthenticationError("No token provided")
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise AuthenticationError("No token provided")

    payload = verify_token(token)
    request.state.auth_user = payload
    return payload

"""
Request authentication: resolve the caller from the session cookie or bearer token.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request

from afterwave.core.errors import UnauthenticatedError
from afterwave.dependencies.clients import get_token_signer
from afterwave.services.token_signer import SessionClaims, SessionTokenSigner

SESSION_COOKIE = "session_token"
REFRESH_COOKIE = "refresh_token"
_BEARER_PREFIX = "Bearer "


def session_token_from_request(request: Request) -> Optional[str]:
    """Session token from the cookie, falling back to ``Authorization: Bearer``."""
    cookie = request.cookies.get(SESSION_COOKIE)
    if cookie:
        return cookie
    header = request.headers.get("authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    return header[len(_BEARER_PREFIX) :].strip() or None


def refresh_token_from_request(request: Request, body_value: Optional[str]) -> Optional[str]:
    """Refresh token from the cookie, falling back to the request body."""
    return request.cookies.get(REFRESH_COOKIE) or (body_value or "").strip() or None


def get_session_claims(
    request: Request,
    signer: Annotated[SessionTokenSigner, Depends(get_token_signer)],
) -> SessionClaims:
    token = session_token_from_request(request)
    if not token:
        raise UnauthenticatedError("missing or invalid authorization")
    return signer.verify(token)


CurrentSession = Annotated[SessionClaims, Depends(get_session_claims)]

__all__ = [
    "CurrentSession",
    "REFRESH_COOKIE",
    "SESSION_COOKIE",
    "get_session_claims",
    "refresh_token_from_request",
    "session_token_from_request",
]

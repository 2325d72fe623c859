"""Session cookie helpers: httpOnly, SameSite=Strict, Secure when configured."""

from __future__ import annotations

from fastapi import Response

from afterwave.dependencies.auth import REFRESH_COOKIE, SESSION_COOKIE
from afterwave.models.auth import TokenPair

_EPOCH = "Thu, 01 Jan 1970 00:00:00 GMT"


def set_session_cookies(response: Response, pair: TokenPair, *, secure: bool) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        pair.session_token,
        max_age=pair.expires_in,
        path="/",
        secure=secure,
        httponly=True,
        samesite="strict",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=pair.refresh_expires_in,
        path="/",
        secure=secure,
        httponly=True,
        samesite="strict",
    )


def clear_session_cookies(response: Response, *, secure: bool) -> None:
    for name in (SESSION_COOKIE, REFRESH_COOKIE):
        response.set_cookie(
            name,
            "",
            max_age=-1,
            expires=_EPOCH,
            path="/",
            secure=secure,
            httponly=True,
            samesite="strict",
        )


__all__ = ["clear_session_cookies", "set_session_cookies"]

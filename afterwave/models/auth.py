"""
Domain models for session credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class ClientTTLs:
    """Session and refresh lifetimes registered for one auth client."""

    client_id: str
    session_ttl_seconds: int
    refresh_ttl_seconds: int


@dataclass(slots=True)
class Session:
    session_id: str
    user_id: str
    refresh_id: str
    expires_at: datetime


@dataclass(slots=True)
class RefreshToken:
    refresh_id: str
    user_id: str
    session_id: str
    expires_at: datetime


@dataclass(slots=True)
class AuthCode:
    """One-time PKCE authorization code."""

    code: str
    code_challenge: str
    code_challenge_method: str
    user_id: str
    client_id: str
    expires_at: datetime
    consumed_at: Optional[datetime] = None


@dataclass(slots=True)
class TokenPair:
    session_token: str
    refresh_token: str
    expires_at: datetime
    expires_in: int
    refresh_expires_in: int


@dataclass(slots=True)
class IssuedAuthCode:
    authorization_code: str
    expires_in: int


__all__ = [
    "AuthCode",
    "ClientTTLs",
    "IssuedAuthCode",
    "RefreshToken",
    "Session",
    "TokenPair",
]

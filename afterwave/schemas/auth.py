"""Schemas for the authorization-code + PKCE endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class _CodeRequest(BaseModel):
    client_id: str = Field(..., min_length=1, description="Registered client (web, ios, ...).")
    code_challenge: str = Field(..., min_length=1, description="base64url(SHA-256(verifier)).")
    code_challenge_method: Optional[str] = Field(
        None, description="Only S256 is supported; defaults to S256."
    )


class CredentialsRequest(_CodeRequest):
    """Signup or password login followed by an authorization code."""

    email: str = Field(..., description="Account email; normalized to lowercase.")
    password: str = Field(..., description="Account password.")


class FederatedLoginRequest(_CodeRequest):
    id_token: str = Field(..., min_length=1, description="ID token from the identity provider.")


class AuthorizationCodeResponse(BaseModel):
    authorization_code: str
    expires_in: int = Field(..., description="Seconds until the code expires.")


class TokenRequest(BaseModel):
    grant_type: Literal["authorization_code"]
    client_id: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    code_verifier: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(
        None, description="Used only when no refresh cookie is present."
    )


class TokenPairResponse(BaseModel):
    session_token: str
    refresh_token: str
    expires_at: datetime
    expires_in: int = Field(..., description="Seconds until the session token expires.")
    refresh_expires_in: int = Field(..., description="Seconds until the refresh token expires.")


__all__ = [
    "AuthorizationCodeResponse",
    "CredentialsRequest",
    "FederatedLoginRequest",
    "RefreshRequest",
    "TokenPairResponse",
    "TokenRequest",
]

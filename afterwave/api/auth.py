"""
Authorization-code + PKCE endpoints.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Header, Request, Response

from afterwave.api.cookies import clear_session_cookies, set_session_cookies
from afterwave.core.errors import UnauthenticatedError
from afterwave.dependencies import (
    CurrentSession,
    SecureCookies,
    get_auth_service,
    get_user_service,
)
from afterwave.dependencies.auth import refresh_token_from_request
from afterwave.models.auth import IssuedAuthCode, TokenPair
from afterwave.schemas import (
    AuthorizationCodeResponse,
    CredentialsRequest,
    FederatedLoginRequest,
    RefreshRequest,
    TokenPairResponse,
    TokenRequest,
)
from afterwave.services import AuthService, UserService

router = APIRouter(prefix="/auth", tags=["auth"])

AuthDependency = Annotated[AuthService, Depends(get_auth_service)]
UserDependency = Annotated[UserService, Depends(get_user_service)]


def _code_response(issued: IssuedAuthCode) -> AuthorizationCodeResponse:
    return AuthorizationCodeResponse(
        authorization_code=issued.authorization_code,
        expires_in=issued.expires_in,
    )


def _token_response(pair: TokenPair) -> TokenPairResponse:
    return TokenPairResponse(
        session_token=pair.session_token,
        refresh_token=pair.refresh_token,
        expires_at=pair.expires_at,
        expires_in=pair.expires_in,
        refresh_expires_in=pair.refresh_expires_in,
    )


@router.post("/signup", status_code=HTTPStatus.CREATED, response_model=AuthorizationCodeResponse)
async def signup(
    payload: CredentialsRequest, auth: AuthDependency, users: UserDependency
) -> AuthorizationCodeResponse:
    """Create an account and return an authorization code for the token exchange."""
    await auth.validate_code_request(
        payload.client_id, payload.code_challenge, payload.code_challenge_method
    )
    user_id = await users.signup(payload.email, payload.password)
    issued = await auth.create_auth_code(
        user_id, payload.client_id, payload.code_challenge, payload.code_challenge_method
    )
    return _code_response(issued)


@router.post("/login", status_code=HTTPStatus.OK, response_model=AuthorizationCodeResponse)
async def login(
    payload: CredentialsRequest, auth: AuthDependency, users: UserDependency
) -> AuthorizationCodeResponse:
    await auth.validate_code_request(
        payload.client_id, payload.code_challenge, payload.code_challenge_method
    )
    user_id = await users.login(payload.email, payload.password)
    issued = await auth.create_auth_code(
        user_id, payload.client_id, payload.code_challenge, payload.code_challenge_method
    )
    return _code_response(issued)


@router.post("/federated", status_code=HTTPStatus.OK, response_model=AuthorizationCodeResponse)
async def federated_login(
    payload: FederatedLoginRequest, auth: AuthDependency, users: UserDependency
) -> AuthorizationCodeResponse:
    """Exchange an identity-provider ID token for an authorization code."""
    await auth.validate_code_request(
        payload.client_id, payload.code_challenge, payload.code_challenge_method
    )
    user_id = await users.federated_sign_in(payload.id_token)
    issued = await auth.create_auth_code(
        user_id, payload.client_id, payload.code_challenge, payload.code_challenge_method
    )
    return _code_response(issued)


@router.post("/token", status_code=HTTPStatus.OK, response_model=TokenPairResponse)
async def exchange_token(
    payload: TokenRequest,
    response: Response,
    auth: AuthDependency,
    secure_cookies: SecureCookies,
) -> TokenPairResponse:
    pair = await auth.exchange_code(payload.code, payload.code_verifier, payload.client_id)
    set_session_cookies(response, pair, secure=secure_cookies)
    return _token_response(pair)


@router.post("/refresh", status_code=HTTPStatus.OK, response_model=TokenPairResponse)
async def refresh_session(
    request: Request,
    response: Response,
    auth: AuthDependency,
    secure_cookies: SecureCookies,
    payload: Annotated[Optional[RefreshRequest], Body()] = None,
    client_id: Annotated[Optional[str], Header(alias="X-Client-ID")] = None,
) -> TokenPairResponse:
    """Rotate the refresh token. The cookie wins over a token in the body."""
    if not client_id:
        raise UnauthenticatedError("X-Client-ID header is required")
    ttls = await auth.require_client(client_id)
    token = refresh_token_from_request(request, payload.refresh_token if payload else None)
    pair = await auth.refresh(token or "", ttls)
    set_session_cookies(response, pair, secure=secure_cookies)
    return _token_response(pair)


@router.post("/logout", status_code=HTTPStatus.NO_CONTENT)
async def logout(
    session: CurrentSession, auth: AuthDependency, secure_cookies: SecureCookies
) -> Response:
    await auth.logout(session.session_id)
    response = Response(status_code=HTTPStatus.NO_CONTENT)
    clear_session_cookies(response, secure=secure_cookies)
    return response


__all__ = ["router"]

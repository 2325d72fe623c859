"""
Session and credential lifecycle.

Authorization-code + PKCE exchange, rolling refresh tokens, logout and bulk
revocation, with per-client TTL policies. Every race is settled by a
conditional write in ``CredentialStore``; this service only maps the
rejected precondition onto the matching client error.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Dict, Optional, Tuple

from afterwave.core.errors import (
    AuthCodeInvalidError,
    InvalidInputError,
    InvalidRefreshTokenError,
    PreconditionFailed,
    UnauthenticatedError,
)
from afterwave.models.auth import AuthCode, ClientTTLs, IssuedAuthCode, TokenPair
from afterwave.services.pkce import METHOD_S256, verify_s256
from afterwave.services.token_signer import SessionClaims, SessionTokenSigner
from afterwave.stores.activity import ActivityStore
from afterwave.stores.base import utc_now
from afterwave.stores.credentials import CredentialStore

logger = logging.getLogger(__name__)

AUTH_CODE_TTL = timedelta(minutes=5)


def normalize_client_id(client_id: Optional[str]) -> str:
    return (client_id or "").strip().lower()


class AuthService:
    """Issues, rotates and revokes session credentials."""

    def __init__(
        self,
        store: CredentialStore,
        signer: SessionTokenSigner,
        *,
        activity: Optional[ActivityStore] = None,
        auth_code_ttl: timedelta = AUTH_CODE_TTL,
    ) -> None:
        self._store = store
        self._signer = signer
        self._activity = activity
        self._auth_code_ttl = auth_code_ttl

    async def seed_clients(self, policies: Dict[str, Tuple[int, int]]) -> None:
        """Register the configured clients; safe to run on every start."""
        self._store.ensure_clients(policies)

    async def get_client_ttls(self, client_id: str) -> Optional[ClientTTLs]:
        """Registered TTLs for a client, or ``None`` for unknown clients."""
        client_id = normalize_client_id(client_id)
        if not client_id:
            return None
        return self._store.get_client_ttls(client_id)

    async def require_client(self, client_id: str) -> ClientTTLs:
        ttls = await self.get_client_ttls(client_id)
        if ttls is None:
            raise UnauthenticatedError("unknown client")
        return ttls

    async def validate_code_request(
        self,
        client_id: str,
        code_challenge: str,
        code_challenge_method: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        """Check an authorization request before any account is touched.

        Returns the normalized ``(client_id, code_challenge, method)``.
        """
        method = (code_challenge_method or METHOD_S256).strip()
        if method != METHOD_S256:
            raise InvalidInputError("code_challenge_method must be S256")
        challenge = (code_challenge or "").strip()
        if not challenge:
            raise InvalidInputError("code_challenge is required")
        if not challenge.isascii():
            raise InvalidInputError("code_challenge must be base64url")
        client_id = normalize_client_id(client_id)
        if await self.get_client_ttls(client_id) is None:
            raise InvalidInputError("unknown client_id")
        return client_id, challenge, method

    async def create_auth_code(
        self,
        user_id: str,
        client_id: str,
        code_challenge: str,
        code_challenge_method: Optional[str] = None,
    ) -> IssuedAuthCode:
        """Persist a single-use code bound to the client and PKCE challenge."""
        client_id, challenge, method = await self.validate_code_request(
            client_id, code_challenge, code_challenge_method
        )
        code = AuthCode(
            code=secrets.token_urlsafe(32),
            code_challenge=challenge,
            code_challenge_method=method,
            user_id=user_id,
            client_id=client_id,
            expires_at=utc_now() + self._auth_code_ttl,
        )
        self._store.create_auth_code(code)
        return IssuedAuthCode(
            authorization_code=code.code,
            expires_in=int(self._auth_code_ttl.total_seconds()),
        )

    async def exchange_code(self, code: str, code_verifier: str, client_id: str) -> TokenPair:
        """Consume a code and issue a session for its user.

        The code is consumed before any other check, so a failed attempt still
        burns it and only one caller can ever succeed.
        """
        ttls = await self.require_client(client_id)
        if not code or not code_verifier:
            raise AuthCodeInvalidError()
        try:
            stored = self._store.consume_auth_code(code)
        except PreconditionFailed as exc:
            raise AuthCodeInvalidError() from exc
        if stored.expires_at <= utc_now():
            raise AuthCodeInvalidError()
        if stored.client_id != ttls.client_id:
            raise AuthCodeInvalidError()
        if stored.code_challenge_method != METHOD_S256 or not verify_s256(
            code_verifier, stored.code_challenge
        ):
            raise AuthCodeInvalidError()
        return await self.new_session(stored.user_id, ttls)

    async def new_session(self, user_id: str, ttls: ClientTTLs) -> TokenPair:
        """Create a session/refresh pair and sign the session token."""
        session_ttl = timedelta(seconds=ttls.session_ttl_seconds)
        refresh_ttl = timedelta(seconds=ttls.refresh_ttl_seconds)
        issued_at = utc_now()
        session, refresh = self._store.create_session(user_id, session_ttl, refresh_ttl)
        token = self._signer.sign(
            user_id=user_id,
            session_id=session.session_id,
            issued_at=issued_at,
            expires_at=session.expires_at,
        )
        logger.info("Issued session %s for client %s", session.session_id, ttls.client_id)
        if self._activity is not None and self._activity.record_if_new(user_id):
            logger.info("First activity this month for user %s", user_id)
        return TokenPair(
            session_token=token,
            refresh_token=refresh.refresh_id,
            expires_at=session.expires_at,
            expires_in=ttls.session_ttl_seconds,
            refresh_expires_in=ttls.refresh_ttl_seconds,
        )

    async def refresh(self, refresh_token: str, ttls: ClientTTLs) -> TokenPair:
        """Rotate a refresh token: revoke the old pair, then issue a new one."""
        if not refresh_token:
            raise InvalidRefreshTokenError()
        current = self._store.get_refresh(refresh_token)
        if current is None:
            raise InvalidRefreshTokenError()
        try:
            self._store.consume_refresh(current)
        except PreconditionFailed as exc:
            raise InvalidRefreshTokenError() from exc
        return await self.new_session(current.user_id, ttls)

    async def logout(self, session_id: str) -> bool:
        """Revoke the session and its refresh token."""
        revoked = bool(session_id) and self._store.revoke_session(session_id)
        if revoked:
            logger.info("Revoked session %s", session_id)
        return revoked

    async def revoke_all_sessions_for_user(self, user_id: str) -> int:
        count = self._store.revoke_all_for_user(user_id)
        logger.info("Revoked %d sessions for user %s", count, user_id)
        return count

    def verify_session_token(self, token: str) -> SessionClaims:
        return self._signer.verify(token)


__all__ = ["AUTH_CODE_TTL", "AuthService", "normalize_client_id"]

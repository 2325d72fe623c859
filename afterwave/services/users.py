"""
Account management: password signup/login through the identity provider,
federated sign-in, identity linking and account deletion.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Protocol

from afterwave.clients.jwks import IDTokenValidator
from afterwave.core.errors import (
    ConflictError,
    IdentityNotConfiguredError,
    InvalidInputError,
    NotFoundError,
    PreconditionFailed,
    UnauthenticatedError,
)
from afterwave.models.users import User
from afterwave.services.auth import AuthService
from afterwave.stores.base import isoformat, utc_now
from afterwave.stores.users import UserStore, normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SIGNUP_FAILED = "signup failed"


class IdentityProvider(Protocol):
    def sign_up(self, email: str, password: str) -> str: ...

    def initiate_auth(self, email: str, password: str) -> str: ...

    def admin_delete_user(self, email: str) -> None: ...


def _validate_email(email: str) -> str:
    email = normalize_email(email)
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        raise InvalidInputError("a valid email is required")
    return email


class UserService:
    def __init__(
        self,
        store: UserStore,
        auth: AuthService,
        *,
        identity: Optional[IdentityProvider] = None,
        id_token_validator: Optional[IDTokenValidator] = None,
    ) -> None:
        self._store = store
        self._auth = auth
        self._identity = identity
        self._validator = id_token_validator

    def _require_identity(self) -> IdentityProvider:
        if self._identity is None:
            raise IdentityNotConfiguredError()
        return self._identity

    def _require_validator(self) -> IDTokenValidator:
        if self._validator is None:
            raise IdentityNotConfiguredError()
        return self._validator

    async def signup(self, email: str, password: str) -> str:
        """Register a new account and return its user id.

        Every duplicate-account path answers with the same generic error so the
        response never confirms that an email is registered.
        """
        email = _validate_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        identity = self._require_identity()
        if self._store.get_by_email(email) is not None:
            raise InvalidInputError(SIGNUP_FAILED)
        try:
            subject = identity.sign_up(email, password)
        except ConflictError as exc:
            raise InvalidInputError(SIGNUP_FAILED) from exc

        user = User(
            user_id=str(uuid.uuid4()),
            email=email,
            created_at=isoformat(utc_now()),
            cognito_sub=subject,
        )
        try:
            self._store.put_user(user)
        except PreconditionFailed as exc:
            identity.admin_delete_user(email)
            raise InvalidInputError(SIGNUP_FAILED) from exc
        logger.info("Created user %s", user.user_id)
        return user.user_id

    async def login(self, email: str, password: str) -> str:
        """Verify credentials with the identity provider and resolve the user id."""
        email = normalize_email(email)
        if not email or not password:
            raise UnauthenticatedError("invalid email or password")
        subject = self._require_identity().initiate_auth(email, password)
        user = self._store.get_by_subject(subject)
        if user is not None:
            return user.user_id
        user = self._store.get_by_email(email)
        if user is None:
            raise UnauthenticatedError("invalid email or password")
        await self._link(user.user_id, subject)
        return user.user_id

    async def federated_sign_in(self, id_token: str) -> str:
        """Resolve or create the user behind a federated ID token."""
        claims = await self._require_validator().validate(id_token)
        user = self._store.get_by_subject(claims.subject)
        if user is not None:
            return user.user_id
        if claims.email:
            user = self._store.get_by_email(claims.email)
            if user is not None:
                await self._link(user.user_id, claims.subject)
                return user.user_id
        else:
            raise InvalidInputError("id token carries no email")
        user = User(
            user_id=str(uuid.uuid4()),
            email=claims.email,
            created_at=isoformat(utc_now()),
            cognito_sub=claims.subject,
        )
        try:
            self._store.put_user(user)
        except PreconditionFailed as exc:
            raise ConflictError("account already exists") from exc
        logger.info("Created user %s from federated sign-in", user.user_id)
        return user.user_id

    async def link_identity(self, user_id: str, id_token: str) -> None:
        """Attach a federated identity to an existing account."""
        claims = await self._require_validator().validate(id_token)
        if self._store.get_by_id(user_id) is None:
            raise NotFoundError("user not found")
        await self._link(user_id, claims.subject)

    async def _link(self, user_id: str, subject: str) -> None:
        owner = self._store.subject_owner(subject)
        if owner == user_id:
            return
        if owner is not None:
            raise ConflictError("identity is linked to another account")
        try:
            self._store.link_subject(user_id, subject)
        except PreconditionFailed as exc:
            if self._store.subject_owner(subject) == user_id:
                return
            raise ConflictError("identity is linked to another account") from exc

    async def get_user(self, user_id: str) -> User:
        user = self._store.get_by_id(user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def delete_account(self, user_id: str) -> None:
        """Revoke all sessions, delete every user row, then the provider account."""
        user = await self.get_user(user_id)
        await self._auth.revoke_all_sessions_for_user(user_id)
        self._store.delete_user(user_id)
        if self._identity is not None:
            self._identity.admin_delete_user(user.email)
        logger.info("Deleted account %s", user_id)


__all__ = ["IdentityProvider", "MIN_PASSWORD_LENGTH", "UserService"]

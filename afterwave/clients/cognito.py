"""Wrapper around the Cognito user pool admin API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from afterwave.core.config import AWSSettings, CognitoSettings
from afterwave.core.errors import (
    ConflictError,
    InvalidInputError,
    UnauthenticatedError,
    UnavailableError,
)

logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = {"NotAuthorizedException", "UserNotFoundException"}
_INVALID_INPUT = {"InvalidPasswordException", "InvalidParameterException"}


def _attribute(attributes: Iterable[Dict[str, str]], name: str) -> Optional[str]:
    for attribute in attributes or []:
        if attribute.get("Name") == name:
            return attribute.get("Value")
    return None


class CognitoClient:
    """Sign users up, verify passwords and delete accounts in a user pool.

    Usernames are the normalized email address. Every call returns or uses the
    pool's ``sub`` claim as the stable subject identifier.
    """

    def __init__(
        self,
        cognito: CognitoSettings,
        aws: AWSSettings,
        *,
        client: Any = None,
    ) -> None:
        if not cognito.enabled:
            raise ValueError("COGNITO_USER_POOL_ID and COGNITO_CLIENT_ID are required")
        self._pool_id = cognito.user_pool_id
        self._client_id = cognito.client_id
        self._client = client or boto3.client("cognito-idp", region_name=aws.region_name)

    def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == "UsernameExistsException":
                raise ConflictError("account already exists") from exc
            if code in _INVALID_CREDENTIALS:
                raise UnauthenticatedError("invalid email or password") from exc
            if code in _INVALID_INPUT:
                raise InvalidInputError(
                    exc.response.get("Error", {}).get("Message", "invalid input")
                ) from exc
            logger.error("Cognito %s failed: %s", operation, code)
            raise UnavailableError() from exc
        except BotoCoreError as exc:
            logger.error("Cognito %s transport failure: %s", operation, exc)
            raise UnavailableError() from exc

    def _lookup_subject(self, username: str) -> str:
        response = self._call(
            "admin_get_user", UserPoolId=self._pool_id, Username=username
        )
        subject = _attribute(response.get("UserAttributes", []), "sub")
        if not subject:
            logger.error("Cognito user %s has no sub attribute", username)
            raise UnavailableError()
        return subject

    def sign_up(self, email: str, password: str) -> str:
        """Create a confirmed user with a permanent password; return its subject."""
        created = self._call(
            "admin_create_user",
            UserPoolId=self._pool_id,
            Username=email,
            UserAttributes=[
                {"Name": "email", "Value": email},
                {"Name": "email_verified", "Value": "true"},
            ],
            MessageAction="SUPPRESS",
        )
        self._call(
            "admin_set_user_password",
            UserPoolId=self._pool_id,
            Username=email,
            Password=password,
            Permanent=True,
        )
        subject = _attribute(created.get("User", {}).get("Attributes", []), "sub")
        return subject or self._lookup_subject(email)

    def initiate_auth(self, email: str, password: str) -> str:
        """Verify the password and return the user's subject."""
        self._call(
            "admin_initiate_auth",
            UserPoolId=self._pool_id,
            ClientId=self._client_id,
            AuthFlow="ADMIN_USER_PASSWORD_AUTH",
            AuthParameters={"USERNAME": email, "PASSWORD": password},
        )
        return self._lookup_subject(email)

    def admin_delete_user(self, email: str) -> None:
        """Delete the pool user. Unknown users are ignored."""
        if not email:
            return
        try:
            self._call("admin_delete_user", UserPoolId=self._pool_id, Username=email)
        except UnauthenticatedError:
            logger.info("Cognito user already absent during delete")


__all__ = ["CognitoClient"]

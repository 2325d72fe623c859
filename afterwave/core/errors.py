"""
Domain error taxonomy shared by stores, services and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is safe to
show to clients. Store-level conditional-write rejections use
``PreconditionFailed`` and are translated by services, never surfaced as is.
"""

from __future__ import annotations

from http import HTTPStatus


class DomainError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DomainError):
    status_code = HTTPStatus.NOT_FOUND
    default_message = "not found"


class ForbiddenError(DomainError):
    status_code = HTTPStatus.FORBIDDEN
    default_message = "forbidden"


class ConflictError(DomainError):
    status_code = HTTPStatus.CONFLICT
    default_message = "conflict"


class InvalidInputError(DomainError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "invalid input"


class UnauthenticatedError(DomainError):
    status_code = HTTPStatus.UNAUTHORIZED
    default_message = "unauthorized"


class UnavailableError(DomainError):
    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    default_message = "service unavailable"


class IdentityNotConfiguredError(DomainError):
    status_code = HTTPStatus.NOT_IMPLEMENTED
    default_message = "identity provider is not configured"


class AuthCodeInvalidError(UnauthenticatedError):
    default_message = "invalid or expired authorization code"


class InvalidRefreshTokenError(UnauthenticatedError):
    default_message = "invalid or expired refresh token"


class CannotRemoveOwnerError(InvalidInputError):
    default_message = "cannot remove the page owner"


class OwnerRolesImmutableError(InvalidInputError):
    default_message = "the owner's roles cannot be changed"


class PreconditionFailed(Exception):
    """A conditional write was rejected because its precondition did not hold."""


__all__ = [
    "AuthCodeInvalidError",
    "CannotRemoveOwnerError",
    "ConflictError",
    "DomainError",
    "ForbiddenError",
    "IdentityNotConfiguredError",
    "InvalidInputError",
    "InvalidRefreshTokenError",
    "NotFoundError",
    "OwnerRolesImmutableError",
    "PreconditionFailed",
    "UnauthenticatedError",
    "UnavailableError",
]

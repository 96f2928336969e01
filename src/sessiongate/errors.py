from abc import ABC
from enum import StrEnum


class ErrorKind(StrEnum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class SessionGateError(Exception):
    """Base class for errors raised by the session core.

    The kind is carried as data so callers can branch on it without
    matching exception classes.
    """

    kind: ErrorKind = ErrorKind.INTERNAL


class UserError(ABC, SessionGateError):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class InternalError(SessionGateError):
    """Raised when a profile store or session store operation fails.

    The message is logged but never shown to the user.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)


class CacheError(Exception):
    """Raised when the backing cache cannot execute a batch."""


class IdentityVerificationError(Exception):
    """Raised when the identity provider rejects an ID token."""

"""
Exceptions raised by the Checkvist client.

Every failure surfaced by this package is a CheckvistError. The set of
kinds is closed; callers can match either on the exception class or on the
``kind`` attribute.

Exception Hierarchy:
    CheckvistError (base)
    ├── ResourceNotFoundError (list or parent task missing / not visible)
    ├── AuthRefreshFailedError (401 and the token refresh failed too)
    ├── TransportError (network failures, unclassified HTTP statuses)
    ├── DecodeError (body was not the expected JSON shape)
    ├── UnknownApiError (server message matching no known pattern)
    └── StorageError (local cache failures)

The original exception is preserved via ``__cause__`` (``raise ... from``).

Example:
    >>> from cvapi.core.exceptions import ErrorKind, classify_api_message
    >>> err = classify_api_message("Invalid parent_id: 5")
    >>> err.kind is ErrorKind.RESOURCE_NOT_FOUND
    True
    >>> err.resource
    'parent_task'
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTH_REFRESH_FAILED = "auth_refresh_failed"
    TRANSPORT = "transport"
    DECODE = "decode"
    UNKNOWN = "unknown"
    STORAGE = "storage"


class CheckvistError(Exception):
    """
    Base exception for all Checkvist client errors.

    Attributes:
        kind: Failure kind
        message: Human-readable error message
        context: Additional context (url, status_code, ...)
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ResourceNotFoundError(CheckvistError):
    """
    The referenced list or parent task does not exist or is not visible.

    Attributes:
        resource: ``"list"`` or ``"parent_task"``
    """

    kind = ErrorKind.RESOURCE_NOT_FOUND

    def __init__(self, resource: str, message: str, **context: object) -> None:
        super().__init__(message, resource=resource, **context)
        self.resource = resource


class AuthRefreshFailedError(CheckvistError):
    """
    Authentication failed and the token could not be refreshed.

    The session is dead: any stored token should be discarded and the user
    asked to log in again.
    """

    kind = ErrorKind.AUTH_REFRESH_FAILED

    def __init__(self, message: str = "Could not refresh token", **context: object) -> None:
        super().__init__(message, **context)


class TransportError(CheckvistError):
    """
    Network failure or an HTTP status that was not otherwise classified.

    Attributes:
        status_code: HTTP status, or None when no response was received
    """

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: int | None = None, **context: object) -> None:
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code


class DecodeError(CheckvistError):
    """The response body could not be decoded into the expected shape."""

    kind = ErrorKind.DECODE


class UnknownApiError(CheckvistError):
    """A server-reported message that matches no known pattern."""

    kind = ErrorKind.UNKNOWN


class StorageError(CheckvistError):
    """The local cache database failed."""

    kind = ErrorKind.STORAGE


# Checkvist reports these conditions only as free text.
LIST_NOT_FOUND_MESSAGE = "The list doesn't exist or is not available to you"
INVALID_PARENT_MESSAGE = "Invalid parent_id"


def match_not_found(message: str) -> str | None:
    """
    Return the missing resource named by a server message, if any.

    Args:
        message: Message from the server's error envelope

    Returns:
        ``"list"``, ``"parent_task"``, or None when the message is not a
        known not-found message
    """
    if LIST_NOT_FOUND_MESSAGE in message:
        return "list"
    if INVALID_PARENT_MESSAGE in message:
        return "parent_task"
    return None


def classify_api_message(message: str, **context: object) -> CheckvistError:
    """
    Map a server error message to an error kind.

    This is the only place that interprets server wording. Messages that do
    not match a known pattern are kept verbatim as UnknownApiError.

    Args:
        message: Message from the server's error envelope
        **context: Extra context attached to the returned error

    Returns:
        ResourceNotFoundError or UnknownApiError (not raised)
    """
    resource = match_not_found(message)
    if resource is not None:
        return ResourceNotFoundError(resource, message, **context)

    logger.warning("Unrecognised Checkvist error message: %s", message)
    return UnknownApiError(message, **context)


__all__ = [
    "AuthRefreshFailedError",
    "CheckvistError",
    "DecodeError",
    "ErrorKind",
    "ResourceNotFoundError",
    "StorageError",
    "TransportError",
    "UnknownApiError",
    "classify_api_message",
    "match_not_found",
]

# storefront/models/errors.py

"""Error taxonomy shared by the catalog client, stores and view states."""

import json
import sqlite3
from enum import Enum

from curl_cffi.requests import exceptions as curl_exceptions


class ErrorKind(Enum):
    """User-facing failure categories."""

    NETWORK_UNAVAILABLE = "network_unavailable"
    SERVER_ERROR = "server_error"
    INVALID_DATA = "invalid_data"
    UNKNOWN = "unknown"
    PERSISTENCE_FAILURE = "persistence_failure"

    @property
    def title(self) -> str:
        """Short heading for an error dialog or status line."""
        return _TITLES[self]

    @property
    def message(self) -> str:
        """Generic explanation suitable for display."""
        return _MESSAGES[self]

    @property
    def can_retry(self) -> bool:
        """Whether re-issuing the same request may succeed."""
        return self in (
            ErrorKind.NETWORK_UNAVAILABLE,
            ErrorKind.SERVER_ERROR,
        )


_TITLES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK_UNAVAILABLE: "Connection Error",
    ErrorKind.SERVER_ERROR: "Server Error",
    ErrorKind.INVALID_DATA: "Data Error",
    ErrorKind.UNKNOWN: "Unknown Error",
    ErrorKind.PERSISTENCE_FAILURE: "Storage Error",
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK_UNAVAILABLE: (
        "Please check your internet connection and try again."
    ),
    ErrorKind.SERVER_ERROR: (
        "Something went wrong on our end. Please try again later."
    ),
    ErrorKind.INVALID_DATA: (
        "The data couldn't be loaded. Please try again."
    ),
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
    ErrorKind.PERSISTENCE_FAILURE: (
        "Your cart or favorites could not be saved."
    ),
}


class CatalogError(Exception):
    """Base class for every categorized storefront failure."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    @property
    def can_retry(self) -> bool:
        """Shortcut for ``self.kind.can_retry``."""
        return self.kind.can_retry


class NetworkUnavailableError(CatalogError):
    """No connectivity to the catalog host."""

    kind = ErrorKind.NETWORK_UNAVAILABLE


class ServerError(CatalogError):
    """Timeout, unreachable host or a non-200 response."""

    kind = ErrorKind.SERVER_ERROR


class InvalidDataError(CatalogError):
    """The catalog answered with a payload that could not be decoded."""

    kind = ErrorKind.INVALID_DATA


class UnknownCatalogError(CatalogError):
    """Anything that does not fit another category."""

    kind = ErrorKind.UNKNOWN


class PersistenceError(CatalogError):
    """A cart or favorite store operation failed."""

    kind = ErrorKind.PERSISTENCE_FAILURE


def classify_error(exc: BaseException) -> CatalogError:
    """Map an arbitrary exception onto the storefront taxonomy.

    Already-categorized errors are returned unchanged; others are wrapped
    with the original chained as ``__cause__``.
    """
    if isinstance(exc, CatalogError):
        return exc

    error: CatalogError
    # Timeout first: some timeout types also derive from ConnectionError
    if isinstance(exc, curl_exceptions.Timeout | TimeoutError):
        error = ServerError(f"Request timed out: {exc}")
    elif isinstance(exc, curl_exceptions.HTTPError):
        error = ServerError(f"Bad response: {exc}")
    elif isinstance(exc, curl_exceptions.ConnectionError | ConnectionError):
        error = NetworkUnavailableError(f"Connection failed: {exc}")
    elif isinstance(exc, json.JSONDecodeError | UnicodeDecodeError):
        error = InvalidDataError(f"Could not decode response: {exc}")
    elif isinstance(exc, sqlite3.Error):
        error = PersistenceError(f"Storage failure: {exc}")
    else:
        error = UnknownCatalogError(str(exc) or type(exc).__name__)
    error.__cause__ = exc
    return error


def describe_error(exc: BaseException) -> str:
    """One-line user-facing text for any failure."""
    kind = classify_error(exc).kind
    return f"{kind.title}: {kind.message}"

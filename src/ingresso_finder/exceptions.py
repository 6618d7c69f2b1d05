"""Custom exception hierarchy for ingresso-finder.

All exceptions that cross layer boundaries must inherit from
:class:`IngressoError`.  Raw third-party exceptions (e.g. from
``requests``) must NEVER propagate beyond the infrastructure layer —
they are caught there and re-raised as a typed subclass defined here.

Cancellation is deliberately *not* part of this hierarchy:
``asyncio.CancelledError`` and ``TimeoutError`` always propagate
unchanged and are never retried or used to trigger a fallback.

Hierarchy
---------
IngressoError
├── GatewayError
│   ├── ApiError
│   │   └── NotFoundError
│   ├── NetworkError
│   ├── DecodeError
│   └── InvalidRequestError
├── CacheError
│   └── CacheDecodeError
├── LocationError
│   └── SystemLocationError
│       ├── LocationUnsupportedError
│       ├── LocationPermissionDeniedError
│       ├── LocationServicesDisabledError
│       └── LocationTimeoutError
├── NoSessionsError
└── EnvironmentError
"""

from __future__ import annotations

import asyncio
from enum import Enum


class IngressoError(Exception):
    """Base exception for all ingresso-finder errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary (and the error screen) can
    render a clean message without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Content gateway -------------------------------------------------------

class ErrorKind(str, Enum):
    """How a caller should treat a gateway failure."""

    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class GatewayError(IngressoError):
    """Raised when a catalog API call fails."""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.PERMANENT


class ApiError(GatewayError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        status: str,
        endpoint: str,
        body: str = "",
    ) -> None:
        message = f"ingresso api error: {status_code} {status}".rstrip()
        if body:
            message = f"{message}: {body}"
        super().__init__(message)
        self.status_code = status_code
        self.status = status
        self.endpoint = endpoint
        self.body = body

    @property
    def kind(self) -> ErrorKind:
        if self.status_code == 404:
            return ErrorKind.NOT_FOUND
        if self.status_code == 429 or self.status_code >= 500:
            return ErrorKind.TRANSIENT
        return ErrorKind.PERMANENT


class NotFoundError(ApiError):
    """The API has no data for this query (HTTP 404)."""


class NetworkError(GatewayError):
    """Raised when the transport fails on every allowed attempt."""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.TRANSIENT


class DecodeError(GatewayError):
    """Raised when an API payload cannot be decoded."""


class InvalidRequestError(GatewayError):
    """Raised when a call is missing a required identifier."""


def is_not_found(exc: BaseException) -> bool:
    """Report whether *exc* means "no data for this query"."""
    return isinstance(exc, GatewayError) and exc.kind is ErrorKind.NOT_FOUND


def is_cancellation(exc: BaseException) -> bool:
    """Report whether *exc* is a cancellation or deadline signal."""
    return isinstance(exc, (asyncio.CancelledError, asyncio.TimeoutError, TimeoutError))


# --- Persistent cache ------------------------------------------------------

class CacheError(IngressoError):
    """Raised when a cache or preference file cannot be read or written."""


class CacheDecodeError(CacheError):
    """Raised when a cache or preference file holds malformed content."""


# --- Location --------------------------------------------------------------

class LocationError(IngressoError):
    """Raised when the current location cannot be determined."""


class SystemLocationError(LocationError):
    """Raised when the native OS location service fails."""


class LocationUnsupportedError(SystemLocationError):
    """The host offers no usable native location service."""


class LocationPermissionDeniedError(SystemLocationError):
    """The user denied location access to the terminal."""


class LocationServicesDisabledError(SystemLocationError):
    """Location services are switched off system-wide."""


class LocationTimeoutError(SystemLocationError):
    """The native location service did not answer in time."""


# --- Browsing --------------------------------------------------------------

class NoSessionsError(IngressoError):
    """No sessions exist for the requested date.

    Distinguished from hard failures so the UI can offer a
    "try the next day" recovery instead of a dead end.
    """

    def __init__(
        self,
        message: str,
        *,
        failed_count: int = 0,
        ignored_count: int = 0,
    ) -> None:
        super().__init__(message, hint="Try the next day or pick another date.")
        self.failed_count = failed_count
        self.ignored_count = ignored_count


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(IngressoError):
    """Raised when a required runtime dependency is not available."""

"""Error taxonomy for remote calls and client-side preconditions.

Remote failures are never allowed to escape a screen operation. Service
functions raise ``httpx`` exceptions (or ``ValueError`` for malformed
payloads); the operation boundary passes them through
:func:`classify_remote_error` and turns the result into a notice.
"""

from __future__ import annotations

import json

import httpx


class CalcanaError(Exception):
    """Base class for every error this package reports."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CalcanaError):
    """A client-side precondition is unmet; no remote call was issued."""


class RemoteError(CalcanaError):
    """A remote call failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkOrServerError(RemoteError):
    """Transport failure, non-2xx answer, or an unreadable response body."""


class ConflictError(RemoteError):
    """The server refused because the record is referenced elsewhere (HTTP 409)."""


class NotFoundError(RemoteError):
    """The target no longer exists on the server (HTTP 404)."""


def extract_server_message(response: httpx.Response) -> str | None:
    """Return the ``message`` field of an error body, when there is one."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def classify_remote_error(exc: BaseException, fallback: str) -> RemoteError:
    """Map a failure raised by a service call onto the error taxonomy.

    ``fallback`` is the generic per-operation message used whenever the server
    did not send a ``message`` of its own.
    """
    if isinstance(exc, RemoteError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        message = extract_server_message(exc.response) or fallback
        if status_code == 409:
            return ConflictError(message, status_code=status_code)
        if status_code == 404:
            return NotFoundError(message, status_code=status_code)
        return NetworkOrServerError(message, status_code=status_code)
    return NetworkOrServerError(fallback)


# Exceptions a remote operation boundary is expected to catch.
REMOTE_FAILURES: tuple[type[BaseException], ...] = (
    httpx.HTTPError,
    OSError,
    ValueError,
    RemoteError,
)


__all__ = [
    "REMOTE_FAILURES",
    "CalcanaError",
    "ConflictError",
    "NetworkOrServerError",
    "NotFoundError",
    "RemoteError",
    "ValidationError",
    "classify_remote_error",
    "extract_server_message",
]

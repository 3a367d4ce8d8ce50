"""Error taxonomy and classification.

Every failure that crosses the client boundary is one OpenCodeError whose
``kind`` is a member of the closed ErrorKind enumeration. Retryability is
decided from the kind alone (plus the status code for generic API errors),
never from the class hierarchy.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

import httpx


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"
    API = "api"
    EMPTY_RESPONSE = "empty_response"
    INVALID_RESPONSE = "invalid_response"
    SESSION_ERROR = "session_error"
    CIRCUIT_OPEN = "circuit_open"


RETRYABLE_KINDS = frozenset({ErrorKind.CONNECTION, ErrorKind.TIMEOUT, ErrorKind.SERVER})
RETRYABLE_STATUS_CODES = frozenset({429})


# =============================================================================
# Exception types
# =============================================================================


class OpenCodeError(Exception):
    """Base class for all client errors."""

    kind: ErrorKind = ErrorKind.API

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def retryable(self) -> bool:
        return is_retryable(self)


class ApiError(OpenCodeError):
    """The server answered with an error status or an unusable body."""

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.request_id = request_id

    def __str__(self) -> str:
        if self.request_id:
            return f"{self.message} (request id: {self.request_id})"
        return self.message


class NotFoundError(ApiError):
    """Referenced session, message, tool or file does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, 404, "not_found", request_id)
        self.resource_type = resource_type
        self.resource_id = resource_id

    @classmethod
    def for_resource(cls, resource_type: str, resource_id: str) -> NotFoundError:
        return cls(f"{resource_type} '{resource_id}' was not found", resource_type, resource_id)


class ConflictError(ApiError):
    """Operation is not valid in the resource's current state."""

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str, request_id: str | None = None) -> None:
        super().__init__(message, 409, "conflict", request_id)


class ServerError(ApiError):
    """The server failed with a 5xx status."""

    kind = ErrorKind.SERVER

    def __init__(self, message: str, status_code: int = 500, request_id: str | None = None) -> None:
        super().__init__(message, status_code, "server_error", request_id)


class EmptyResponseError(ApiError):
    """A successful response carried no body where one was expected."""

    kind = ErrorKind.EMPTY_RESPONSE


class InvalidResponseError(ApiError):
    """A successful response carried a body that could not be decoded."""

    kind = ErrorKind.INVALID_RESPONSE


class OpenCodeConnectionError(OpenCodeError):
    """The server could not be reached."""

    kind = ErrorKind.CONNECTION

    def __init__(self, message: str, base_url: str | None = None) -> None:
        super().__init__(message)
        self.base_url = base_url

    @classmethod
    def server_not_reachable(cls, base_url: str, port: int) -> OpenCodeConnectionError:
        return cls(
            f"OpenCode server not responding at {base_url}. "
            f"Is `opencode serve` running? "
            f"Start the server with: opencode serve --port {port}",
            base_url,
        )


class OpenCodeTimeoutError(OpenCodeError):
    """An operation exceeded its configured deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self, message: str, operation: str | None = None, timeout: float | None = None
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.timeout = timeout

    @classmethod
    def operation_timed_out(cls, operation: str, timeout: float) -> OpenCodeTimeoutError:
        return cls(
            f"The {operation} operation timed out after {timeout:.1f} seconds. "
            f"Try increasing the timeout in OpenCodeClientOptions.",
            operation,
            timeout,
        )


class SessionStreamError(OpenCodeError):
    """The server reported a session.error while a response was streaming."""

    kind = ErrorKind.SESSION_ERROR

    def __init__(self, message: str, session_id: str | None = None, error: Any = None) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.error = error


class CircuitOpenError(OpenCodeError):
    """Calls are short-circuited after repeated failures."""

    kind = ErrorKind.CIRCUIT_OPEN

    def __init__(self, message: str, retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


# =============================================================================
# Classification
# =============================================================================


def is_retryable(exc: BaseException) -> bool:
    """Decide whether a failed call may be attempted again."""
    if isinstance(exc, OpenCodeError):
        if exc.kind in RETRYABLE_KINDS:
            return True
        if exc.kind is ErrorKind.API:
            return getattr(exc, "status_code", None) in RETRYABLE_STATUS_CODES
        return False
    # Raw connectivity failures from operations that bypass the transport
    return isinstance(exc, httpx.TransportError)


def request_not_sent(exc: BaseException) -> bool:
    """True when a call failed before the server could have received it."""
    if isinstance(exc, (OpenCodeConnectionError, OpenCodeTimeoutError)):
        exc = exc.__cause__ or exc
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def parse_error_body(body: str) -> tuple[str | None, str | None]:
    """Extract (message, code) from an error response body.

    JSON bodies contribute their ``error``, ``code`` and ``message`` fields,
    with ``message`` preferred over ``error``. Anything else is returned as
    raw text.
    """
    if not body or not body.strip():
        return None, None

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body.strip(), None

    if not isinstance(data, dict):
        return body.strip(), None

    message = data.get("message") or data.get("error")
    code = data.get("code")

    # {"error": {"message": ..., "code": ...}} and {"data": {"message": ...}}
    if isinstance(message, dict):
        nested = message
        message = nested.get("message") or nested.get("name")
        code = code or nested.get("code")
    if message is None and isinstance(data.get("data"), dict):
        message = data["data"].get("message")

    return (str(message) if message is not None else None), (str(code) if code else None)


def classify_response(
    status_code: int,
    body: str = "",
    *,
    reason: str | None = None,
    request_id: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
) -> ApiError:
    """Map a non-2xx HTTP response onto the error taxonomy.

    Args:
        status_code: HTTP status code
        body: Response body text
        reason: HTTP reason phrase, used when the body carries nothing
        request_id: Value of the X-Request-Id header, if any
        resource_type: Resource kind known by the caller (for 404s)
        resource_id: Resource id known by the caller (for 404s)

    Returns:
        The classified exception (not raised)
    """
    message, code = parse_error_body(body)
    if not message:
        message = reason or f"HTTP {status_code}"

    if status_code == 404:
        error = NotFoundError(message, resource_type, resource_id, request_id)
    elif status_code == 409:
        error = ConflictError(message, request_id)
    elif status_code >= 500:
        error = ServerError(message, status_code, request_id)
    else:
        error = ApiError(message, status_code, code, request_id)

    if code:
        error.error_code = code
    return error


def classify_transport_error(
    exc: httpx.RequestError,
    *,
    base_url: str,
    port: int,
    operation: str,
    timeout: float | None,
) -> OpenCodeError:
    """Map an httpx request exception onto the error taxonomy."""
    if not isinstance(exc, httpx.TransportError):
        # Decoding failures and redirect loops happen after the server answered
        return ApiError(
            f"Request to OpenCode server at {base_url} failed during {operation}: {exc}",
            error_code="request_error",
        )
    if isinstance(exc, httpx.TimeoutException):
        return OpenCodeTimeoutError.operation_timed_out(operation, timeout or 0.0)
    if isinstance(exc, httpx.ConnectError):
        return OpenCodeConnectionError.server_not_reachable(base_url, port)
    return OpenCodeConnectionError(
        f"Connection to OpenCode server at {base_url} failed during {operation}: {exc}",
        base_url,
    )


def operation_name(path: str) -> str:
    """Derive a dotted operation name from a request path.

    ``/session/ses_abc123/message`` becomes ``opencode.session.message``;
    id-like segments are skipped.
    """
    path = path.split("?", 1)[0]
    segments = [s for s in path.strip("/").split("/") if s]
    kept = [s for s in segments if not _looks_like_id(s)]
    if not kept:
        return "opencode.request"
    return "opencode." + ".".join(kept)


def _looks_like_id(segment: str) -> bool:
    if len(segment) > 20:
        return True
    if "_" in segment and segment.split("_", 1)[0] in ("ses", "msg", "prt", "per", "pty", "prj"):
        return True
    return any(ch.isdigit() for ch in segment) and not segment.isalpha()

"""Unit tests for error classification.

Covers mapping HTTP statuses, error bodies and httpx transport failures
onto the error taxonomy, and which kinds are retryable.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from opencode_serve.exceptions import (
    ApiError,
    CircuitOpenError,
    ConflictError,
    EmptyResponseError,
    ErrorKind,
    InvalidResponseError,
    NotFoundError,
    OpenCodeConnectionError,
    OpenCodeTimeoutError,
    ServerError,
    SessionStreamError,
    classify_response,
    classify_transport_error,
    is_retryable,
    operation_name,
    parse_error_body,
    request_not_sent,
)

# =============================================================================
# Status classification
# =============================================================================


class TestClassifyResponse:
    """Tests for classify_response."""

    def test_404_is_not_found_with_resource(self) -> None:
        """404 maps to NotFoundError carrying the resource the caller asked for."""
        error = classify_response(
            404,
            '{"message": "Session not found"}',
            resource_type="session",
            resource_id="ses_123",
        )

        assert isinstance(error, NotFoundError)
        assert error.kind is ErrorKind.NOT_FOUND
        assert error.status_code == 404
        assert error.message == "Session not found"
        assert error.resource_type == "session"
        assert error.resource_id == "ses_123"

    def test_409_is_conflict(self) -> None:
        """409 maps to ConflictError."""
        error = classify_response(409, '{"error": "Session is busy"}')

        assert isinstance(error, ConflictError)
        assert error.kind is ErrorKind.CONFLICT
        assert error.message == "Session is busy"

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_5xx_is_server_error(self, status: int) -> None:
        """Every 5xx status maps to ServerError and keeps the status code."""
        error = classify_response(status, "")

        assert isinstance(error, ServerError)
        assert error.kind is ErrorKind.SERVER
        assert error.status_code == status

    def test_other_4xx_is_api_error_with_code(self) -> None:
        """Remaining statuses map to ApiError with the body's code."""
        error = classify_response(400, '{"error": "Unknown model", "code": "invalid_model"}')

        assert type(error) is ApiError
        assert error.kind is ErrorKind.API
        assert error.status_code == 400
        assert error.error_code == "invalid_model"
        assert error.message == "Unknown model"

    def test_empty_body_falls_back_to_reason(self) -> None:
        """An empty error body uses the HTTP reason phrase."""
        error = classify_response(400, "", reason="Bad Request")

        assert error.message == "Bad Request"

    def test_empty_body_without_reason_uses_status(self) -> None:
        """With neither body nor reason the message names the status."""
        error = classify_response(418, "")

        assert error.message == "HTTP 418"

    def test_request_id_in_string(self) -> None:
        """The request id is appended to the rendered message."""
        error = classify_response(500, "boom", request_id="req-42")

        assert error.request_id == "req-42"
        assert str(error) == "boom (request id: req-42)"


class TestParseErrorBody:
    """Tests for parse_error_body."""

    def test_message_preferred_over_error(self) -> None:
        """'message' wins when both fields are present."""
        assert parse_error_body('{"error": "short", "message": "long"}') == ("long", None)

    def test_nested_error_object(self) -> None:
        """Nested {"error": {...}} objects are unwrapped."""
        body = '{"error": {"message": "Quota exceeded", "code": "quota"}}'
        assert parse_error_body(body) == ("Quota exceeded", "quota")

    def test_named_error_with_data_message(self) -> None:
        """Server NamedError bodies carry their text under data.message."""
        body = '{"name": "ProviderAuthError", "data": {"message": "Missing API key"}}'
        assert parse_error_body(body) == ("Missing API key", None)

    def test_plain_text_body(self) -> None:
        """Non-JSON bodies are returned as stripped text."""
        assert parse_error_body("  gateway exploded \n") == ("gateway exploded", None)

    def test_json_array_body_is_text(self) -> None:
        """JSON that is not an object is treated as raw text."""
        assert parse_error_body("[1, 2]") == ("[1, 2]", None)

    def test_blank_body(self) -> None:
        """Blank bodies yield nothing."""
        assert parse_error_body("   ") == (None, None)


# =============================================================================
# Transport failures
# =============================================================================


class TestClassifyTransportError:
    """Tests for classify_transport_error."""

    def _classify(self, exc: httpx.RequestError):
        return classify_transport_error(
            exc,
            base_url="http://localhost:9123",
            port=9123,
            operation="opencode.session",
            timeout=30.0,
        )

    def test_timeout(self) -> None:
        """Timeouts become OpenCodeTimeoutError naming the operation."""
        error = self._classify(httpx.ReadTimeout("read timed out"))

        assert isinstance(error, OpenCodeTimeoutError)
        assert error.operation == "opencode.session"
        assert error.timeout == 30.0
        assert "timed out after 30.0 seconds" in error.message

    def test_connect_timeout_is_timeout(self) -> None:
        """A connect timeout is still a timeout, not a refused connection."""
        error = self._classify(httpx.ConnectTimeout("connect timed out"))

        assert isinstance(error, OpenCodeTimeoutError)

    def test_connect_error_hints_at_server(self) -> None:
        """Refused connections tell the user how to start the server."""
        error = self._classify(httpx.ConnectError("connection refused"))

        assert isinstance(error, OpenCodeConnectionError)
        assert error.kind is ErrorKind.CONNECTION
        assert error.base_url == "http://localhost:9123"
        assert "opencode serve --port 9123" in error.message

    def test_other_transport_error(self) -> None:
        """Other transport failures are connection errors."""
        error = self._classify(httpx.ReadError("connection reset"))

        assert isinstance(error, OpenCodeConnectionError)
        assert "connection reset" in error.message

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.DecodingError("invalid gzip stream"),
            httpx.TooManyRedirects("Exceeded maximum allowed redirects."),
        ],
    )
    def test_other_request_errors_are_api_errors(self, exc: httpx.RequestError) -> None:
        """Failures after the server answered are final API errors."""
        error = self._classify(exc)

        assert type(error) is ApiError
        assert error.error_code == "request_error"
        assert error.status_code is None
        assert "opencode.session" in error.message
        assert not error.retryable


# =============================================================================
# Retryability
# =============================================================================


class TestIsRetryable:
    """Tests for is_retryable."""

    @pytest.mark.parametrize(
        "error",
        [
            OpenCodeConnectionError("down"),
            OpenCodeTimeoutError("slow"),
            ServerError("boom", 503),
            ApiError("slow down", 429),
        ],
    )
    def test_retryable(self, error: Exception) -> None:
        """Connection, timeout, 5xx and 429 failures are retryable."""
        assert is_retryable(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            NotFoundError("gone"),
            ConflictError("busy"),
            ApiError("bad request", 400),
            EmptyResponseError("empty", 200),
            InvalidResponseError("garbage", 200),
            SessionStreamError("model failed"),
            CircuitOpenError("open"),
            ValueError("not ours"),
        ],
    )
    def test_not_retryable(self, error: Exception) -> None:
        """Everything else is final."""
        assert is_retryable(error) is False

    def test_raw_transport_error_is_retryable(self) -> None:
        """Untranslated httpx transport errors are treated as connection failures."""
        assert is_retryable(httpx.ReadError("reset")) is True

    def test_cancellation_is_not_retryable(self) -> None:
        """Task cancellation is never retried."""
        assert is_retryable(asyncio.CancelledError()) is False

    def test_retryable_property(self) -> None:
        """The retryable property mirrors is_retryable."""
        assert ServerError("boom").retryable is True
        assert NotFoundError("gone").retryable is False


class TestRequestNotSent:
    """Tests for request_not_sent."""

    @pytest.mark.parametrize(
        "cause", [httpx.ConnectError("refused"), httpx.ConnectTimeout("connect timed out")]
    )
    def test_connection_never_established(self, cause: httpx.TransportError) -> None:
        """Translated connect failures never reached the server."""
        error = classify_transport_error(
            cause, base_url="http://localhost:9123", port=9123, operation="op", timeout=1.0
        )
        error.__cause__ = cause

        assert request_not_sent(error) is True
        assert request_not_sent(cause) is True

    @pytest.mark.parametrize(
        "error",
        [
            OpenCodeTimeoutError("read timed out"),
            OpenCodeConnectionError("connection reset"),
            ServerError("boom", 503),
            httpx.ReadTimeout("read timed out"),
        ],
    )
    def test_request_may_have_arrived(self, error: Exception) -> None:
        """Failures after the request was written are not known to be unsent."""
        assert request_not_sent(error) is False


class TestOperationName:
    """Tests for operation_name."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/config", "opencode.config"),
            ("/session/ses_abc123/message", "opencode.session.message"),
            ("/session/ses_abc123/message/msg_xyz", "opencode.session.message"),
            ("/session?directory=/tmp", "opencode.session"),
            ("/", "opencode.request"),
        ],
    )
    def test_names(self, path: str, expected: str) -> None:
        """Id-like segments and query strings are dropped."""
        assert operation_name(path) == expected

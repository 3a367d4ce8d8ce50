"""HTTP transport.

Performs exactly one HTTP call per request and translates every failure
into the client's error taxonomy. Retries are layered on top by the
client (see retry.RetryPolicy); this module never retries.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx

from .config import OpenCodeClientOptions
from .endpoints import is_message_route
from .exceptions import (
    ApiError,
    EmptyResponseError,
    InvalidResponseError,
    classify_response,
    classify_transport_error,
    operation_name,
)

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "Server returned empty response."
MESSAGE_HINT = (
    " This may indicate the specified model is not available or requires provider "
    "authentication. Try: (1) Use the default model without specifying a provider/model, "
    "or (2) Run 'opencode auth login <provider>'."
)
HTML_RESPONSE_MESSAGE = (
    "Server returned HTML instead of JSON. Check that base_url points at an "
    "OpenCode server started with `opencode serve`."
)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class HTTPTransport:
    """Issues requests against the configured base URL.

    The underlying httpx.AsyncClient is created lazily and shared by all
    calls; it holds no per-call state, so one transport can serve any
    number of concurrent requests.
    """

    def __init__(
        self,
        options: OpenCodeClientOptions,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.options = options
        self._http_client = http_client
        self._owns_client = http_client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure client is initialized."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.options.base_url,
                timeout=self.options.default_timeout,
                headers=self._headers("application/json"),
            )
        return self._http_client

    def _headers(self, accept: str) -> dict[str, str]:
        """Configured headers plus Accept, sent on every call."""
        return {**self.options.headers, "Accept": accept}

    def build_params(
        self,
        params: Mapping[str, Any] | None = None,
        directory: str | None = None,
    ) -> dict[str, str]:
        """Merge the working directory and call-specific query parameters."""
        merged: dict[str, str] = {}
        directory = directory if directory is not None else self.options.directory
        if directory:
            merged["directory"] = directory
        for key, value in (params or {}).items():
            if value is not None:
                merged[key] = _query_value(value)
        return merged

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        directory: str | None = None,
        timeout: float | None = None,
        expect_content: bool = True,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> Any:
        """Perform one HTTP call and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Route path relative to the base URL
            params: Extra query parameters (None values are dropped)
            json: JSON request body
            directory: Working directory override for this call
            timeout: Per-call timeout in seconds (defaults to default_timeout)
            expect_content: False for calls whose response body is ignored
            resource_type: Resource kind reported on 404
            resource_id: Resource id reported on 404

        Returns:
            Decoded JSON, or None when expect_content is False

        Raises:
            OpenCodeError: Classified failure
        """
        client = self._ensure_client()
        effective_timeout = timeout or self.options.default_timeout
        operation = operation_name(path)

        logger.debug(f"{method} {path}")
        try:
            response = await client.request(
                method,
                path,
                params=self.build_params(params, directory),
                json=json,
                headers=self._headers("application/json"),
                timeout=effective_timeout,
            )
        except httpx.RequestError as e:
            raise classify_transport_error(
                e,
                base_url=self.options.base_url,
                port=self.options.port,
                operation=operation,
                timeout=effective_timeout,
            ) from e

        if not response.is_success:
            error = classify_response(
                response.status_code,
                response.text,
                reason=response.reason_phrase,
                request_id=response.headers.get("x-request-id"),
                resource_type=resource_type,
                resource_id=resource_id,
            )
            logger.debug(f"{method} {path} failed with {response.status_code}: {error}")
            raise error

        if not expect_content:
            return None
        return self._decode(response, path)

    def _decode(self, response: httpx.Response, path: str) -> Any:
        request_id = response.headers.get("x-request-id")
        status = response.status_code

        if not response.content or not response.content.strip():
            raise EmptyResponseError(self._empty_message(path), status, "empty_response", request_id)

        content_type = response.headers.get("content-type", "")
        if "text/html" in content_type:
            raise ApiError(HTML_RESPONSE_MESSAGE, status, "invalid_content_type", request_id)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidResponseError(
                f"Server returned a response that is not valid JSON: {e}",
                status,
                "invalid_json",
                request_id,
            ) from e

        if data is None:
            raise EmptyResponseError(self._empty_message(path), status, "empty_response", request_id)
        return data

    @staticmethod
    def _empty_message(path: str) -> str:
        if is_message_route(path):
            return EMPTY_RESPONSE_MESSAGE + MESSAGE_HINT
        return EMPTY_RESPONSE_MESSAGE

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        directory: str | None = None,
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Open a streaming response and yield its lines.

        The read timeout is disabled so idle event streams stay open; the
        connection is closed when the context exits.

        Usage:
            async with transport.stream("GET", "/event") as lines:
                async for line in lines:
                    ...
        """
        client = self._ensure_client()
        operation = operation_name(path)
        request = client.build_request(
            method,
            path,
            params=self.build_params(params, directory),
            json=json,
            headers=self._headers("text/event-stream"),
            timeout=httpx.Timeout(self.options.default_timeout, read=None),  # No read timeout for SSE
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.RequestError as e:
            raise classify_transport_error(
                e,
                base_url=self.options.base_url,
                port=self.options.port,
                operation=operation,
                timeout=self.options.default_timeout,
            ) from e

        try:
            if not response.is_success:
                await response.aread()
                raise classify_response(
                    response.status_code,
                    response.text,
                    reason=response.reason_phrase,
                    request_id=response.headers.get("x-request-id"),
                )
            yield self._iter_lines(response, operation)
        finally:
            await response.aclose()

    async def _iter_lines(self, response: httpx.Response, operation: str) -> AsyncIterator[str]:
        try:
            async for line in response.aiter_lines():
                yield line
        except httpx.RequestError as e:
            raise classify_transport_error(
                e,
                base_url=self.options.base_url,
                port=self.options.port,
                operation=operation,
                timeout=None,
            ) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from opencode_serve.client import OpenCodeClient
from opencode_serve.config import OpenCodeClientOptions

BASE_URL = "http://opencode.test:9123"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_client() -> Callable[..., OpenCodeClient]:
    """Build an OpenCodeClient whose HTTP calls go to a handler function.

    Retries default to no backoff delay so retry tests stay fast.
    """

    def factory(handler: Handler, **options: Any) -> OpenCodeClient:
        options.setdefault("base_url", BASE_URL)
        options.setdefault("retry_delay", 0.0)
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url=options["base_url"]
        )
        return OpenCodeClient(OpenCodeClientOptions(**options), http_client=http_client)

    return factory

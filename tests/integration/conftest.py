"""Fixtures for integration tests against the fake OpenCode server."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from fake_server import FakeOpenCodeServer

from opencode_serve.client import OpenCodeClient
from opencode_serve.config import OpenCodeClientOptions

BASE_URL = "http://opencode.test:9123"


@pytest.fixture
def server() -> FakeOpenCodeServer:
    """A fresh fake server per test."""
    return FakeOpenCodeServer()


@pytest.fixture
def client_factory(server: FakeOpenCodeServer) -> Callable[[OpenCodeClientOptions], OpenCodeClient]:
    """Build clients whose requests are served by the fake server."""

    def factory(options: OpenCodeClientOptions) -> OpenCodeClient:
        http_client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=server.app), base_url=options.base_url
        )
        return OpenCodeClient(options, http_client=http_client)

    return factory


@pytest.fixture
def client(client_factory) -> OpenCodeClient:
    """A client talking to the fake server."""
    return client_factory(OpenCodeClientOptions(base_url=BASE_URL, retry_delay=0.0))

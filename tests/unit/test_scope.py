"""Unit tests for SessionScope."""

from __future__ import annotations

import logging
from typing import Any

import httpx
import pytest

from opencode_serve.client import OpenCodeClient
from opencode_serve.exceptions import (
    NotFoundError,
    OpenCodeConnectionError,
    ServerError,
)
from opencode_serve.models import Session
from opencode_serve.scope import SessionScope


class FakeSessionAPI:
    def __init__(self, delete_error: Exception | None = None) -> None:
        self.delete_error = delete_error
        self.created: list[dict[str, Any]] = []
        self.deleted: list[tuple[str, str | None]] = []
        self.delete_retry: list[bool] = []

    async def create(
        self,
        title: str | None = None,
        *,
        parent_id: str | None = None,
        directory: str | None = None,
    ) -> Session:
        self.created.append({"title": title, "parent_id": parent_id, "directory": directory})
        return Session(id=f"ses_{len(self.created)}", title=title)

    async def delete(
        self, session_id: str, *, directory: str | None = None, retry: bool = True
    ) -> None:
        self.deleted.append((session_id, directory))
        self.delete_retry.append(retry)
        if self.delete_error is not None:
            raise self.delete_error


class FakeMessageAPI:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    async def send(self, session_id: str, text: str, **kwargs: Any) -> str:
        self.sent.append((session_id, text, kwargs))
        return "reply"

    def stream(self, session_id: str, text: str, **kwargs: Any) -> str:
        self.sent.append((session_id, text, kwargs))
        return "stream"


class FakeClient:
    def __init__(self, delete_error: Exception | None = None) -> None:
        self.session = FakeSessionAPI(delete_error)
        self.message = FakeMessageAPI()


class TestSessionScope:
    """Tests for the scoped session lifecycle."""

    @pytest.mark.asyncio
    async def test_creates_and_deletes(self) -> None:
        """Entering creates the session; leaving deletes it."""
        client = FakeClient()

        async with SessionScope(client, title="scratch", directory="/work") as scope:
            assert scope.session_id == "ses_1"
            assert scope.session.title == "scratch"
            assert client.session.deleted == []

        assert client.session.created == [
            {"title": "scratch", "parent_id": None, "directory": "/work"}
        ]
        assert client.session.deleted == [("ses_1", "/work")]
        assert scope.disposed

    @pytest.mark.asyncio
    async def test_deletes_when_body_raises(self) -> None:
        """The session is deleted and the body's exception propagates."""
        client = FakeClient()

        with pytest.raises(RuntimeError, match="body failed"):
            async with SessionScope(client):
                raise RuntimeError("body failed")

        assert client.session.deleted == [("ses_1", None)]

    @pytest.mark.asyncio
    async def test_dispose_twice_deletes_once(self) -> None:
        """dispose is idempotent."""
        client = FakeClient()
        scope = SessionScope(client)
        await scope.__aenter__()

        await scope.dispose()
        await scope.dispose()
        await scope.__aexit__(None, None, None)

        assert client.session.deleted == [("ses_1", None)]

    @pytest.mark.asyncio
    async def test_already_deleted_is_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        """A session that is already gone is not an error, logged at debug."""
        client = FakeClient(delete_error=NotFoundError("Session not found"))

        with caplog.at_level(logging.DEBUG, logger="opencode_serve.scope"):
            async with SessionScope(client):
                pass

        assert client.session.deleted == [("ses_1", None)]
        record = next(r for r in caplog.records if "already gone" in r.getMessage())
        assert record.levelno == logging.DEBUG

    @pytest.mark.asyncio
    async def test_unreachable_server_is_swallowed(self) -> None:
        """A connection failure during cleanup does not escape."""
        client = FakeClient(delete_error=OpenCodeConnectionError("down"))

        async with SessionScope(client):
            pass

        assert client.session.deleted == [("ses_1", None)]

    @pytest.mark.asyncio
    async def test_cleanup_deletes_without_retry(self) -> None:
        """Cleanup asks for a single delete attempt."""
        client = FakeClient()

        async with SessionScope(client):
            pass

        assert client.session.delete_retry == [False]

    @pytest.mark.asyncio
    async def test_unreachable_cleanup_is_single_attempt(self, make_client) -> None:
        """An unreachable server during cleanup costs one DELETE and no backoff."""
        deletes: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "DELETE":
                deletes.append(request)
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"id": "ses_1"})

        client: OpenCodeClient = make_client(handler, max_retry_attempts=3, retry_delay=2.0)

        async with client.session.scope() as scope:
            assert scope.session_id == "ses_1"

        assert len(deletes) == 1
        assert scope.disposed

    @pytest.mark.asyncio
    async def test_other_errors_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Other client errors are swallowed with a warning."""
        client = FakeClient(delete_error=ServerError("boom"))

        with caplog.at_level(logging.WARNING, logger="opencode_serve.scope"):
            async with SessionScope(client):
                pass

        assert "Failed to delete session ses_1 during cleanup: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_existing_session_not_recreated(self) -> None:
        """A scope around an existing session only deletes it."""
        client = FakeClient()
        existing = Session(id="ses_existing")

        async with SessionScope(client, session=existing) as scope:
            assert scope.session_id == "ses_existing"

        assert client.session.created == []
        assert client.session.deleted == [("ses_existing", None)]

    def test_session_before_enter(self) -> None:
        """Reading the session before entering is an error."""
        scope = SessionScope(FakeClient())

        with pytest.raises(RuntimeError, match="not been entered"):
            _ = scope.session

    @pytest.mark.asyncio
    async def test_dispose_before_enter_is_noop(self) -> None:
        """Disposing a scope that never created a session does nothing."""
        client = FakeClient()

        await SessionScope(client).dispose()

        assert client.session.deleted == []

    @pytest.mark.asyncio
    async def test_send_and_stream_target_scoped_session(self) -> None:
        """send and stream go to the scoped session and directory."""
        client = FakeClient()

        async with SessionScope(client, directory="/work") as scope:
            assert await scope.send("hello", agent="plan") == "reply"
            assert scope.stream("more") == "stream"

        assert client.message.sent == [
            ("ses_1", "hello", {"directory": "/work", "agent": "plan"}),
            ("ses_1", "more", {"directory": "/work"}),
        ]

"""Integration tests for the client against a fake OpenCode server.

Covers the end-to-end flows: scoped sessions, blocking prompts, streamed
prompts (with and without streamed parts) and error classification over a
real ASGI round trip.
"""

from __future__ import annotations

import pytest
from fake_server import FakeOpenCodeServer

from opencode_serve import collect_text
from opencode_serve.client import OpenCodeClient
from opencode_serve.exceptions import NotFoundError

# =============================================================================
# Tests: Sessions
# =============================================================================


class TestSessionFlow:
    """Session lifecycle against the fake server."""

    @pytest.mark.asyncio
    async def test_create_get_list_delete(
        self, client: OpenCodeClient, server: FakeOpenCodeServer
    ) -> None:
        """A created session can be read, listed and deleted."""
        async with client:
            created = await client.session.create(title="integration")
            fetched = await client.session.get(created.id)
            listed = await client.session.list()
            await client.session.delete(created.id)

        assert fetched.title == "integration"
        assert fetched.created_at is not None
        assert [s.id for s in listed] == [created.id]
        assert server.sessions == {}

    @pytest.mark.asyncio
    async def test_missing_session(self, client: OpenCodeClient, server: FakeOpenCodeServer) -> None:
        """Reading a missing session raises NotFoundError without retrying."""
        async with client:
            with pytest.raises(NotFoundError, match="ses_nope"):
                await client.session.get("ses_nope")

        assert server.requests == [("GET", "/session/ses_nope")]

    @pytest.mark.asyncio
    async def test_scope_deletes_session(
        self, client: OpenCodeClient, server: FakeOpenCodeServer
    ) -> None:
        """A scoped session exists inside the block and is gone afterwards."""
        async with client:
            async with client.session.scope(title="scratch") as scope:
                assert scope.session_id in server.sessions

        assert server.sessions == {}
        assert ("DELETE", f"/session/{scope.session_id}") in server.requests

    @pytest.mark.asyncio
    async def test_scope_survives_body_error(
        self, client: OpenCodeClient, server: FakeOpenCodeServer
    ) -> None:
        """The scoped session is deleted even when the block fails."""
        async with client:
            with pytest.raises(ValueError):
                async with client.session.scope():
                    raise ValueError("boom")

        assert server.sessions == {}


# =============================================================================
# Tests: Messages
# =============================================================================


class TestMessageFlow:
    """Prompting against the fake server."""

    @pytest.mark.asyncio
    async def test_send_blocking(self, client: OpenCodeClient, server: FakeOpenCodeServer) -> None:
        """send returns the assistant reply and records the prompt body."""
        async with client:
            session = await client.session.create()
            reply = await client.message.send(
                session.id, "What is this?", model="anthropic/claude-sonnet-4"
            )
            history = await client.message.list(session.id)

        assert reply.text == "Hello from OpenCode"
        assert reply.info.is_assistant
        assert [m.role for m in history] == ["user", "assistant"]
        assert server.prompts[0]["model"] == {
            "providerID": "anthropic",
            "modelID": "claude-sonnet-4",
        }

    @pytest.mark.asyncio
    async def test_stream_reconstructs_reply(
        self, client: OpenCodeClient, server: FakeOpenCodeServer
    ) -> None:
        """Streaming skips the prompt echo and rebuilds the reply from deltas."""
        async with client:
            async with client.session.scope() as scope:
                updates = [u async for u in scope.stream("Say hello")]

        assert [u.delta for u in updates if not u.done] == ["Hello", " from", " OpenCode"]
        assert updates[-1].done
        assert updates[-1].text == "Hello from OpenCode"
        paths = [path for _, path in server.requests]
        assert paths.index("/event") < paths.index(f"/session/{scope.session_id}/prompt_async")

    @pytest.mark.asyncio
    async def test_stream_falls_back_to_message(
        self, client: OpenCodeClient, server: FakeOpenCodeServer
    ) -> None:
        """With no streamed parts the final message is read after idle."""
        server.stream_parts = False
        server.reply_text = "Read back"

        async with client:
            session = await client.session.create()
            text = await collect_text(client.message.stream(session.id, "Hi"))

        assert text == "Read back"
        assert ("GET", f"/session/{session.id}/message") in server.requests

    @pytest.mark.asyncio
    async def test_health_check(self, client: OpenCodeClient) -> None:
        """The fake server reports healthy."""
        async with client:
            result = await client.health_check()

        assert result.healthy

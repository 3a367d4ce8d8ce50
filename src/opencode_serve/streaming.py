"""Streaming response reconstruction.

Turns the live event stream for one session into an incrementally growing
response text. Text arrives as ``message.part.updated`` events carrying
either a ``delta`` (append) or a full snapshot of the part (replace). The
response is complete when the session goes idle.

Usage:
    async for update in client.message.stream(session_id, "Hello"):
        print(update.delta or "", end="")
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .events import (
    Event,
    MessagePartUpdatedEvent,
    MessagePartUpdatedProperties,
    MessageUpdatedEvent,
    SessionErrorEvent,
    SessionIdleEvent,
    SessionStatusEvent,
)
from .exceptions import OpenCodeConnectionError, OpenCodeTimeoutError, SessionStreamError
from .models.message import Message, MessageInfo, MessageRole, PromptRequest, last_assistant_text
from .models.parts import TextPart

if TYPE_CHECKING:
    from .client import OpenCodeClient

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE_LIMIT = 2

FetchMessages = Callable[[], Awaitable[list[Message]]]


@dataclass
class MessageUpdate:
    """One step of a streamed response."""

    text: str
    delta: str | None = None
    message_id: str | None = None
    done: bool = False


class StreamingSessionReconstructor:
    """Accumulates one session's streamed response text.

    Feed it every event from a subscription; events for other sessions are
    ignored. Text is tracked per part, so a message with several text parts
    reads back in part order.

    Args:
        session_id: Session whose response is being reconstructed
        fetch_messages: Reads the session's latest messages; used when the
            session goes idle without any streamed text
    """

    def __init__(self, session_id: str, fetch_messages: FetchMessages | None = None):
        self.session_id = session_id
        self._fetch_messages = fetch_messages
        self._texts: dict[str, str] = {}
        self._part_messages: dict[str, str | None] = {}
        self._user_message_ids: set[str] = set()
        self.message_id: str | None = None
        self.done = False

    @property
    def text(self) -> str:
        return "".join(self._texts.values())

    @property
    def received_parts(self) -> bool:
        return bool(self._texts)

    def feed(self, event: Event) -> MessageUpdate | None:
        """Apply one event.

        Returns:
            A MessageUpdate when the response text changed or completed,
            otherwise None

        Raises:
            SessionStreamError: The server reported session.error
        """
        if self.done or event.session_id != self.session_id:
            return None

        if isinstance(event, MessageUpdatedEvent):
            self._track_message(event.properties.info)
            return None

        if isinstance(event, MessagePartUpdatedEvent):
            return self._apply_part(event.properties)

        if isinstance(event, SessionErrorEvent):
            message = event.properties.message
            logger.warning(f"Session {self.session_id} reported an error: {message}")
            raise SessionStreamError(message, self.session_id, event.properties.error)

        if isinstance(event, SessionIdleEvent) or (
            isinstance(event, SessionStatusEvent) and event.properties.is_idle
        ):
            self.done = True
            return MessageUpdate(text=self.text, message_id=self.message_id, done=True)

        return None

    def _track_message(self, info: MessageInfo) -> None:
        if info.role == MessageRole.USER:
            self._user_message_ids.add(info.id)
            # Parts may have arrived before we learned they echo the prompt
            for key, message_id in list(self._part_messages.items()):
                if message_id == info.id:
                    self._texts.pop(key, None)
                    self._part_messages.pop(key, None)
        elif info.role == MessageRole.ASSISTANT:
            self.message_id = info.id

    def _apply_part(self, properties: MessagePartUpdatedProperties) -> MessageUpdate | None:
        part = properties.part
        if not isinstance(part, TextPart) or part.ignored:
            return None

        message_id = properties.message_id
        if message_id in self._user_message_ids:
            return None

        key = part.id or message_id or ""
        previous = self._texts.get(key, "")

        if properties.delta is not None:
            current = previous + properties.delta
            delta = properties.delta
        else:
            # Snapshot: last write wins
            current = part.text
            delta = current[len(previous) :] if current.startswith(previous) else None

        self._texts[key] = current
        self._part_messages[key] = message_id
        if message_id:
            self.message_id = message_id

        if current == previous:
            return None
        return MessageUpdate(text=self.text, delta=delta, message_id=self.message_id)

    async def _fallback_update(self) -> MessageUpdate:
        messages = await self._fetch_messages() if self._fetch_messages else []
        text = last_assistant_text(messages)
        message_id = self.message_id
        for message in reversed(messages):
            if message.info.is_assistant:
                message_id = message.id
                break
        logger.debug(f"No streamed text for session {self.session_id}, read final message")
        return MessageUpdate(text=text, delta=text or None, message_id=message_id, done=True)

    async def reconstruct(self, events: AsyncIterable[Event]) -> AsyncIterator[MessageUpdate]:
        """Yield updates from an event stream until the session goes idle.

        Raises:
            SessionStreamError: The server reported session.error
            OpenCodeConnectionError: The stream ended before the session went idle
        """
        async for event in events:
            update = self.feed(event)
            if update is None:
                continue
            if update.done:
                if not self.received_parts and self._fetch_messages is not None:
                    update = await self._fallback_update()
                yield update
                return
            yield update

        raise OpenCodeConnectionError(
            f"Event stream closed before session {self.session_id} became idle"
        )


# =============================================================================
# Prompt streaming
# =============================================================================


async def stream_prompt(
    client: OpenCodeClient,
    session_id: str,
    request: PromptRequest,
    *,
    timeout: float,
    directory: str | None = None,
) -> AsyncIterator[MessageUpdate]:
    """Send a prompt and yield the response as it streams.

    The event subscription is opened before the prompt is sent so no event
    is missed. Events are pumped through a queue by a background task;
    leaving the loop early or cancelling closes the subscription.

    Raises:
        OpenCodeTimeoutError: The response did not complete within ``timeout``
        SessionStreamError: The server reported session.error
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    queue: asyncio.Queue[Event | Exception | None] = asyncio.Queue()
    connected: asyncio.Future[None] = loop.create_future()

    async def pump() -> None:
        try:
            async with client.event.stream(directory=directory) as events:
                if not connected.done():
                    connected.set_result(None)
                async for event in events:
                    queue.put_nowait(event)
        except Exception as e:
            if not connected.done():
                connected.set_exception(e)
            else:
                queue.put_nowait(e)
        finally:
            queue.put_nowait(None)

    def timed_out() -> OpenCodeTimeoutError:
        return OpenCodeTimeoutError.operation_timed_out("message.stream", timeout)

    async def events() -> AsyncIterator[Event]:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise timed_out()
            try:
                item = await asyncio.wait_for(queue.get(), remaining)
            except TimeoutError:
                raise timed_out() from None
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def fetch_messages() -> list[Message]:
        return await client.message.list(
            session_id, limit=FALLBACK_MESSAGE_LIMIT, directory=directory
        )

    pump_task = asyncio.create_task(pump())
    try:
        try:
            await asyncio.wait_for(connected, max(deadline - loop.time(), 0))
        except TimeoutError:
            raise timed_out() from None

        await client.message.prompt_async(session_id, request, directory=directory)

        reconstructor = StreamingSessionReconstructor(session_id, fetch_messages)
        async with contextlib.aclosing(reconstructor.reconstruct(events())) as updates:
            async for update in updates:
                yield update
    finally:
        pump_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pump_task


# =============================================================================
# Consumption helpers
# =============================================================================


async def collect_text(updates: AsyncIterable[MessageUpdate]) -> str:
    """Consume a stream and return the final response text."""
    text = ""
    async for update in updates:
        text = update.text
        if update.done:
            break
    return text


async def subscribe(
    updates: AsyncIterable[MessageUpdate],
    on_update: Callable[[str], None],
    on_complete: Callable[[], None] | None = None,
    on_error: Callable[[Exception], None] | None = None,
) -> None:
    """Drive a stream with callbacks, for callers that prefer events to loops.

    Errors go to ``on_error`` when given and are raised otherwise.
    Cancellation is never routed to ``on_error``.
    """
    try:
        async for update in updates:
            if update.delta is not None:
                on_update(update.delta)
            if update.done:
                if on_complete is not None:
                    on_complete()
                break
    except Exception as e:
        if on_error is None:
            raise
        on_error(e)

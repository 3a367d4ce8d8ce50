"""Scoped sessions.

A SessionScope creates a session on entry and deletes it on exit, whether
the body finished normally or raised.

Usage:
    async with client.session.scope(title="scratch") as scope:
        reply = await scope.send("Summarize README.md")
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from .exceptions import NotFoundError, OpenCodeConnectionError, OpenCodeError
from .models.message import Message
from .models.session import Session

if TYPE_CHECKING:
    from .client import OpenCodeClient
    from .streaming import MessageUpdate

logger = logging.getLogger(__name__)


class SessionScope:
    """Owns one session for the duration of an ``async with`` block."""

    def __init__(
        self,
        client: OpenCodeClient,
        *,
        title: str | None = None,
        parent_id: str | None = None,
        directory: str | None = None,
        session: Session | None = None,
    ):
        self._client = client
        self._title = title
        self._parent_id = parent_id
        self._directory = directory
        self._session = session
        self._disposed = False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Session scope has not been entered")
        return self._session

    @property
    def session_id(self) -> str:
        return self.session.id

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def __aenter__(self) -> SessionScope:
        if self._session is None:
            self._session = await self._client.session.create(
                title=self._title, parent_id=self._parent_id, directory=self._directory
            )
            logger.debug(f"Session scope created session {self._session.id}")
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.dispose()

    async def dispose(self) -> None:
        """Delete the session. Safe to call more than once; never raises."""
        if self._disposed or self._session is None:
            return
        self._disposed = True
        session_id = self._session.id

        try:
            await self._client.session.delete(session_id, directory=self._directory, retry=False)
        except (NotFoundError, OpenCodeConnectionError) as e:
            logger.debug(f"Session {session_id} already gone or unreachable during cleanup: {e}")
        except OpenCodeError as e:
            logger.warning(f"Failed to delete session {session_id} during cleanup: {e}")
        else:
            logger.debug(f"Session scope deleted session {session_id}")

    async def send(self, text: str, **kwargs: Any) -> Message:
        """Send a text prompt to the scoped session and wait for the reply."""
        return await self._client.message.send(
            self.session_id, text, directory=self._directory, **kwargs
        )

    def stream(self, text: str, **kwargs: Any) -> AsyncIterator[MessageUpdate]:
        """Send a text prompt and stream the reply."""
        return self._client.message.stream(
            self.session_id, text, directory=self._directory, **kwargs
        )

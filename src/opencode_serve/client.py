"""OpenCode client.

Typed async access to an OpenCode server. Operations are grouped by
resource, each group exposed as a property of the client:

    async with OpenCodeClient(base_url="http://localhost:9123") as client:
        session = await client.session.create(title="demo")
        reply = await client.message.send(session.id, "Hello")
        async for event in client.event.subscribe():
            ...

Every call goes through the retry policy and raises the error taxonomy in
opencode_serve.exceptions; raw httpx exceptions never escape.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from . import endpoints
from .config import OpenCodeClientOptions
from .events import Event, GlobalEvent, parse_event, parse_global_event
from .exceptions import (
    InvalidResponseError,
    OpenCodeError,
    OpenCodeTimeoutError,
    is_retryable,
    operation_name,
    request_not_sent,
)
from .models.message import Message, ModelRef, PromptRequest
from .models.parts import (
    AgentPartInput,
    FilePartInput,
    SubtaskPartInput,
    TextPartInput,
)
from .models.resources import (
    AddMcpServerRequest,
    Agent,
    Command,
    CreatePtyRequest,
    FileContent,
    FileDiff,
    FileNode,
    FileStatusEntry,
    FormatterStatus,
    HealthCheckResult,
    LspServerStatus,
    McpStatus,
    PathInfo,
    PermissionResponse,
    Project,
    Provider,
    Pty,
    Symbol,
    Todo,
    ToolInfo,
    UpdatePtyRequest,
    VcsInfo,
)
from .models.session import (
    CommandRequest,
    CreateSessionRequest,
    ForkSessionRequest,
    InitSessionRequest,
    RevertSessionRequest,
    Session,
    SessionStatusInfo,
    ShellRequest,
    SummarizeSessionRequest,
    UpdateSessionRequest,
)
from .retry import RetryPolicy
from .scope import SessionScope
from .sse import ProgressCallback, ProgressTracker, iter_payloads
from .streaming import MessageUpdate, stream_prompt
from .transport import HTTPTransport

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PromptPart = TextPartInput | FilePartInput | AgentPartInput | SubtaskPartInput
PromptContent = str | PromptRequest | Sequence[PromptPart]


def _parse(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(f"Unexpected {model.__name__} payload from server: {e}") from e


def _parse_list(model: type[M], data: Any) -> list[M]:
    if not isinstance(data, list):
        raise InvalidResponseError(
            f"Expected a list of {model.__name__} from server, got {type(data).__name__}"
        )
    return [_parse(model, item) for item in data]


def _body(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def parse_model_ref(model: ModelRef | str | None) -> ModelRef | None:
    """Accept ``"provider/model"`` shorthand for a model reference."""
    if model is None or isinstance(model, ModelRef):
        return model
    provider_id, sep, model_id = model.partition("/")
    if not sep or not provider_id or not model_id:
        raise ValueError(f"Model must be given as 'provider/model', got {model!r}")
    return ModelRef(provider_id=provider_id, model_id=model_id)


def build_prompt(
    content: PromptContent,
    *,
    model: ModelRef | str | None = None,
    agent: str | None = None,
    system: str | None = None,
) -> PromptRequest:
    """Build a PromptRequest from text, a part list or an existing request."""
    if isinstance(content, PromptRequest):
        return content
    if isinstance(content, str):
        parts: list[PromptPart] = [TextPartInput(text=content)]
    else:
        parts = list(content)
    return PromptRequest(parts=parts, model=parse_model_ref(model), agent=agent, system=system)


# =============================================================================
# API groups
# =============================================================================


@dataclass
class SessionAPI:
    """Session operations."""

    _client: OpenCodeClient

    async def list(
        self,
        *,
        directory: str | None = None,
        search: str | None = None,
        limit: int | None = None,
        start: int | None = None,
        roots: bool | None = None,
    ) -> list[Session]:
        """List sessions."""
        data = await self._client._request(
            "GET",
            endpoints.SESSION,
            params={"search": search, "limit": limit, "start": start, "roots": roots},
            directory=directory,
        )
        return _parse_list(Session, data)

    async def create(
        self,
        title: str | None = None,
        *,
        parent_id: str | None = None,
        directory: str | None = None,
    ) -> Session:
        """Create a new session."""
        body = CreateSessionRequest(parent_id=parent_id, title=title)
        data = await self._client._request(
            "POST", endpoints.SESSION, json=_body(body), directory=directory, idempotent=False
        )
        return _parse(Session, data)

    async def status(self, *, directory: str | None = None) -> dict[str, SessionStatusInfo]:
        """Busy/idle status of every active session, keyed by session id."""
        data = await self._client._request("GET", endpoints.SESSION_STATUS, directory=directory)
        if not isinstance(data, dict):
            raise InvalidResponseError("Expected a session status map from server")
        return {sid: _parse(SessionStatusInfo, info) for sid, info in data.items()}

    async def get(self, session_id: str, *, directory: str | None = None) -> Session:
        """Get a session by ID."""
        data = await self._client._request(
            "GET",
            endpoints.session(session_id),
            directory=directory,
            resource_type="session",
            resource_id=session_id,
        )
        return _parse(Session, data)

    async def update(
        self, session_id: str, *, title: str | None = None, directory: str | None = None
    ) -> Session:
        body = UpdateSessionRequest(title=title)
        data = await self._client._request(
            "PATCH",
            endpoints.session(session_id),
            json=_body(body),
            directory=directory,
            resource_type="session",
            resource_id=session_id,
        )
        return _parse(Session, data)

    async def delete(
        self, session_id: str, *, directory: str | None = None, retry: bool = True
    ) -> None:
        """Delete a session. With retry=False a single attempt is made."""
        await self._client._request(
            "DELETE",
            endpoints.session(session_id),
            retry=retry,
            directory=directory,
            expect_content=False,
            resource_type="session",
            resource_id=session_id,
        )

    async def abort(self, session_id: str, *, directory: str | None = None) -> None:
        """Abort the session's running response."""
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "abort"),
            directory=directory,
            expect_content=False,
            resource_type="session",
            resource_id=session_id,
        )

    async def children(self, session_id: str, *, directory: str | None = None) -> list[Session]:
        data = await self._client._request(
            "GET", endpoints.session_action(session_id, "children"), directory=directory
        )
        return _parse_list(Session, data)

    async def todos(self, session_id: str, *, directory: str | None = None) -> list[Todo]:
        data = await self._client._request(
            "GET", endpoints.session_action(session_id, "todo"), directory=directory
        )
        return _parse_list(Todo, data)

    async def diff(
        self,
        session_id: str,
        *,
        message_id: str | None = None,
        directory: str | None = None,
    ) -> list[FileDiff]:
        data = await self._client._request(
            "GET",
            endpoints.session_action(session_id, "diff"),
            params={"messageID": message_id},
            directory=directory,
        )
        return _parse_list(FileDiff, data)

    async def fork(
        self,
        session_id: str,
        *,
        message_id: str | None = None,
        directory: str | None = None,
    ) -> Session:
        """Fork a session, optionally at a given message."""
        body = ForkSessionRequest(message_id=message_id)
        data = await self._client._request(
            "POST",
            endpoints.session_action(session_id, "fork"),
            idempotent=False,
            json=_body(body),
            directory=directory,
        )
        return _parse(Session, data)

    async def init(
        self,
        session_id: str,
        *,
        message_id: str,
        provider_id: str,
        model_id: str,
        directory: str | None = None,
    ) -> None:
        """Analyze the project and write AGENTS.md."""
        body = InitSessionRequest(message_id=message_id, provider_id=provider_id, model_id=model_id)
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "init"),
            idempotent=False,
            json=_body(body),
            directory=directory,
            timeout=self._client.options.message_timeout,
            expect_content=False,
        )

    async def revert(
        self,
        session_id: str,
        *,
        message_id: str,
        part_id: str | None = None,
        directory: str | None = None,
    ) -> None:
        body = RevertSessionRequest(message_id=message_id, part_id=part_id)
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "revert"),
            json=_body(body),
            directory=directory,
            expect_content=False,
        )

    async def unrevert(self, session_id: str, *, directory: str | None = None) -> None:
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "unrevert"),
            directory=directory,
            expect_content=False,
        )

    async def share(self, session_id: str, *, directory: str | None = None) -> Session:
        """Share a session; the returned session carries the share URL."""
        data = await self._client._request(
            "POST", endpoints.session_action(session_id, "share"), directory=directory
        )
        return _parse(Session, data)

    async def unshare(self, session_id: str, *, directory: str | None = None) -> None:
        await self._client._request(
            "DELETE",
            endpoints.session_action(session_id, "share"),
            directory=directory,
            expect_content=False,
        )

    async def summarize(
        self,
        session_id: str,
        *,
        provider_id: str | None = None,
        model_id: str | None = None,
        directory: str | None = None,
    ) -> None:
        body = SummarizeSessionRequest(provider_id=provider_id, model_id=model_id)
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "summarize"),
            idempotent=False,
            json=_body(body),
            directory=directory,
            timeout=self._client.options.message_timeout,
            expect_content=False,
        )

    async def command(
        self,
        session_id: str,
        command: str,
        arguments: str = "",
        *,
        agent: str | None = None,
        model: str | None = None,
        directory: str | None = None,
    ) -> None:
        """Run a slash command in the session."""
        body = CommandRequest(command=command, arguments=arguments, agent=agent, model=model)
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "command"),
            idempotent=False,
            json=_body(body),
            directory=directory,
            timeout=self._client.options.message_timeout,
            expect_content=False,
        )

    async def shell(
        self,
        session_id: str,
        command: str,
        *,
        agent: str = "build",
        directory: str | None = None,
    ) -> None:
        """Run a shell command in the session."""
        body = ShellRequest(command=command, agent=agent)
        await self._client._request(
            "POST",
            endpoints.session_action(session_id, "shell"),
            idempotent=False,
            json=_body(body),
            directory=directory,
            timeout=self._client.options.message_timeout,
            expect_content=False,
        )

    def scope(
        self,
        title: str | None = None,
        *,
        parent_id: str | None = None,
        directory: str | None = None,
    ) -> SessionScope:
        """A session that is deleted when the ``async with`` block exits."""
        return SessionScope(self._client, title=title, parent_id=parent_id, directory=directory)


@dataclass
class MessageAPI:
    """Message operations."""

    _client: OpenCodeClient

    async def list(
        self,
        session_id: str,
        *,
        limit: int | None = None,
        directory: str | None = None,
    ) -> list[Message]:
        """List a session's messages, oldest first."""
        data = await self._client._request(
            "GET",
            endpoints.session_messages(session_id),
            params={"limit": limit},
            directory=directory,
            resource_type="session",
            resource_id=session_id,
        )
        return _parse_list(Message, data)

    async def get(
        self, session_id: str, message_id: str, *, directory: str | None = None
    ) -> Message:
        data = await self._client._request(
            "GET",
            endpoints.session_message(session_id, message_id),
            directory=directory,
            resource_type="message",
            resource_id=message_id,
        )
        return _parse(Message, data)

    async def prompt(
        self,
        session_id: str,
        request: PromptRequest,
        *,
        directory: str | None = None,
        timeout: float | None = None,
    ) -> Message:
        """Send a prompt and wait for the complete response.

        Args:
            session_id: Target session
            request: Prompt body
            directory: Working directory override
            timeout: Deadline in seconds (defaults to message_timeout)

        Returns:
            The assistant's reply with its parts
        """
        data = await self._client._request(
            "POST",
            endpoints.session_messages(session_id),
            idempotent=False,
            json=_body(request),
            directory=directory,
            timeout=timeout or self._client.options.message_timeout,
            resource_type="session",
            resource_id=session_id,
        )
        return _parse(Message, data)

    async def send(
        self,
        session_id: str,
        content: PromptContent,
        *,
        model: ModelRef | str | None = None,
        agent: str | None = None,
        system: str | None = None,
        directory: str | None = None,
        timeout: float | None = None,
    ) -> Message:
        """Send text or parts and wait for the complete response."""
        request = build_prompt(content, model=model, agent=agent, system=system)
        return await self.prompt(session_id, request, directory=directory, timeout=timeout)

    async def prompt_async(
        self,
        session_id: str,
        request: PromptRequest,
        *,
        directory: str | None = None,
    ) -> None:
        """Queue a prompt without waiting; progress arrives as events."""
        await self._client._request(
            "POST",
            endpoints.session_prompt_async(session_id),
            idempotent=False,
            json=_body(request),
            directory=directory,
            expect_content=False,
            resource_type="session",
            resource_id=session_id,
        )

    def stream(
        self,
        session_id: str,
        content: PromptContent,
        *,
        model: ModelRef | str | None = None,
        agent: str | None = None,
        system: str | None = None,
        directory: str | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[MessageUpdate]:
        """Send a prompt and stream the response text.

        Usage:
            async for update in client.message.stream(session_id, "Hi"):
                print(update.delta or "", end="")
        """
        request = build_prompt(content, model=model, agent=agent, system=system)
        return stream_prompt(
            self._client,
            session_id,
            request,
            timeout=timeout or self._client.options.message_timeout,
            directory=directory,
        )


@dataclass
class PermissionAPI:
    """Tool permission responses."""

    _client: OpenCodeClient

    async def respond(
        self,
        session_id: str,
        permission_id: str,
        allow: bool,
        *,
        remember: bool | None = None,
        directory: str | None = None,
    ) -> None:
        body = PermissionResponse(allow=allow, remember=remember)
        await self._client._request(
            "POST",
            endpoints.session_permission(session_id, permission_id),
            json=_body(body),
            directory=directory,
            expect_content=False,
            resource_type="permission",
            resource_id=permission_id,
        )


@dataclass
class EventAPI:
    """Event subscription operations."""

    _client: OpenCodeClient

    @asynccontextmanager
    async def _payloads(
        self,
        path: str,
        directory: str | None,
        progress: ProgressCallback | None,
    ) -> AsyncIterator[AsyncIterator[dict[str, Any]]]:
        tracker = ProgressTracker(progress) if progress is not None else None
        if tracker:
            tracker.starting()
        try:
            async with self._client.transport.stream("GET", path, directory=directory) as lines:
                if tracker:
                    tracker.connected()
                yield iter_payloads(lines, tracker)
        except asyncio.CancelledError:
            if tracker:
                tracker.cancelled()
            raise
        except OpenCodeError as e:
            if tracker:
                tracker.failed(e)
            raise
        else:
            if tracker:
                tracker.completed()

    @asynccontextmanager
    async def stream(
        self,
        *,
        directory: str | None = None,
        progress: ProgressCallback | None = None,
    ) -> AsyncIterator[AsyncIterator[Event]]:
        """Open the event stream; the connection is live once the block is entered.

        Usage:
            async with client.event.stream() as events:
                async for event in events:
                    ...
        """

        async def decode(payloads: AsyncIterator[dict[str, Any]]) -> AsyncIterator[Event]:
            async for payload in payloads:
                yield parse_event(payload)

        async with self._payloads(endpoints.EVENT, directory, progress) as payloads:
            yield decode(payloads)

    async def subscribe(
        self,
        *,
        directory: str | None = None,
        progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[Event]:
        """Subscribe to the SSE event stream.

        Each call opens a new connection. With ``timeout`` the subscription
        raises OpenCodeTimeoutError once that many seconds have passed.

        Usage:
            async for event in client.event.subscribe():
                if event.type == "session.idle":
                    break
        """
        async with self.stream(directory=directory, progress=progress) as events:
            if timeout is None:
                async for event in events:
                    yield event
                return

            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout
            while True:
                remaining = deadline - loop.time()
                try:
                    if remaining <= 0:
                        raise TimeoutError
                    event = await asyncio.wait_for(anext(events), remaining)
                except StopAsyncIteration:
                    return
                except TimeoutError:
                    raise OpenCodeTimeoutError.operation_timed_out(
                        "event.subscribe", timeout
                    ) from None
                yield event

    async def subscribe_global(
        self, *, progress: ProgressCallback | None = None
    ) -> AsyncIterator[GlobalEvent]:
        """Subscribe to events from every directory the server serves."""
        async with self._payloads(endpoints.GLOBAL_EVENT, None, progress) as payloads:
            async for payload in payloads:
                yield parse_global_event(payload)


@dataclass
class FileAPI:
    """File browsing."""

    _client: OpenCodeClient

    async def list(self, path: str = "", *, directory: str | None = None) -> list[FileNode]:
        data = await self._client._request(
            "GET", endpoints.FILE, params={"path": path}, directory=directory
        )
        return _parse_list(FileNode, data)

    async def read(self, path: str, *, directory: str | None = None) -> FileContent:
        data = await self._client._request(
            "GET",
            endpoints.FILE_CONTENT,
            params={"path": path},
            directory=directory,
            resource_type="file",
            resource_id=path,
        )
        return _parse(FileContent, data)

    async def status(self, *, directory: str | None = None) -> list[FileStatusEntry]:
        data = await self._client._request("GET", endpoints.FILE_STATUS, directory=directory)
        return _parse_list(FileStatusEntry, data)


@dataclass
class FindAPI:
    """Text, file and symbol search."""

    _client: OpenCodeClient

    async def text(self, pattern: str, *, directory: str | None = None) -> list[Any]:
        """Search file contents; returns the server's match records."""
        data = await self._client._request(
            "GET", endpoints.FIND, params={"pattern": pattern}, directory=directory
        )
        if not isinstance(data, list):
            raise InvalidResponseError("Expected a list of matches from server")
        return data

    async def files(
        self,
        query: str,
        *,
        dirs: bool | None = None,
        directory: str | None = None,
    ) -> list[str]:
        data = await self._client._request(
            "GET",
            endpoints.FIND_FILE,
            params={"query": query, "dirs": dirs},
            directory=directory,
        )
        if not isinstance(data, list):
            raise InvalidResponseError("Expected a list of paths from server")
        return [str(item) for item in data]

    async def symbols(self, query: str, *, directory: str | None = None) -> list[Symbol]:
        data = await self._client._request(
            "GET", endpoints.FIND_SYMBOL, params={"query": query}, directory=directory
        )
        return _parse_list(Symbol, data)


@dataclass
class PtyAPI:
    """Pseudo-terminal management."""

    _client: OpenCodeClient

    async def list(self, *, directory: str | None = None) -> list[Pty]:
        data = await self._client._request("GET", endpoints.PTY, directory=directory)
        return _parse_list(Pty, data)

    async def create(
        self, request: CreatePtyRequest | None = None, *, directory: str | None = None
    ) -> Pty:
        body = _body(request) if request is not None else {}
        data = await self._client._request(
            "POST", endpoints.PTY, json=body, directory=directory, idempotent=False
        )
        return _parse(Pty, data)

    async def get(self, pty_id: str, *, directory: str | None = None) -> Pty:
        data = await self._client._request(
            "GET",
            endpoints.pty(pty_id),
            directory=directory,
            resource_type="pty",
            resource_id=pty_id,
        )
        return _parse(Pty, data)

    async def update(
        self, pty_id: str, request: UpdatePtyRequest, *, directory: str | None = None
    ) -> Pty:
        data = await self._client._request(
            "PUT",
            endpoints.pty(pty_id),
            json=_body(request),
            directory=directory,
            resource_type="pty",
            resource_id=pty_id,
        )
        return _parse(Pty, data)

    async def delete(self, pty_id: str, *, directory: str | None = None) -> None:
        await self._client._request(
            "DELETE",
            endpoints.pty(pty_id),
            directory=directory,
            expect_content=False,
            resource_type="pty",
            resource_id=pty_id,
        )


@dataclass
class McpAPI:
    """MCP server management."""

    _client: OpenCodeClient

    async def status(self, *, directory: str | None = None) -> list[McpStatus]:
        data = await self._client._request("GET", endpoints.MCP, directory=directory)
        # Servers report either a name -> status map or a list
        if isinstance(data, dict):
            return [
                _parse(McpStatus, {"name": name, **(info if isinstance(info, dict) else {})})
                for name, info in data.items()
            ]
        return _parse_list(McpStatus, data)

    async def add(self, name: str, config: dict[str, Any], *, directory: str | None = None):
        body = AddMcpServerRequest(name=name, config=config)
        await self._client._request(
            "POST", endpoints.MCP, json=_body(body), directory=directory, expect_content=False
        )

    async def _action(self, name: str, action: str, method: str, directory: str | None) -> None:
        await self._client._request(
            method,
            endpoints.mcp_action(name, action),
            directory=directory,
            expect_content=False,
            resource_type="mcp",
            resource_id=name,
        )

    async def connect(self, name: str, *, directory: str | None = None) -> None:
        await self._action(name, "connect", "POST", directory)

    async def disconnect(self, name: str, *, directory: str | None = None) -> None:
        await self._action(name, "disconnect", "POST", directory)

    async def start_auth(self, name: str, *, directory: str | None = None) -> None:
        await self._action(name, "auth", "POST", directory)

    async def remove_auth(self, name: str, *, directory: str | None = None) -> None:
        await self._action(name, "auth", "DELETE", directory)

    async def authenticate(self, name: str, *, directory: str | None = None) -> None:
        await self._action(name, "auth/authenticate", "POST", directory)

    async def auth_callback(self, name: str, *, directory: str | None = None) -> None:
        await self._action(name, "auth/callback", "POST", directory)


@dataclass
class ConfigAPI:
    """Server configuration and model catalogue."""

    _client: OpenCodeClient

    async def get(self, *, directory: str | None = None) -> dict[str, Any]:
        data = await self._client._request("GET", endpoints.CONFIG, directory=directory)
        if not isinstance(data, dict):
            raise InvalidResponseError("Expected a config object from server")
        return data

    async def update(self, config: dict[str, Any], *, directory: str | None = None) -> None:
        await self._client._request(
            "PATCH", endpoints.CONFIG, json=config, directory=directory, expect_content=False
        )

    async def providers(self, *, directory: str | None = None) -> dict[str, Any]:
        """Configured providers and each provider's default model."""
        data = await self._client._request("GET", endpoints.CONFIG_PROVIDERS, directory=directory)
        if not isinstance(data, dict):
            raise InvalidResponseError("Expected a provider map from server")
        return data

    async def list_providers(self, *, directory: str | None = None) -> list[Provider]:
        data = await self._client._request("GET", endpoints.PROVIDER, directory=directory)
        if isinstance(data, dict):
            data = data.get("all", [])
        return _parse_list(Provider, data)

    async def provider_auth(self, *, directory: str | None = None) -> dict[str, Any]:
        data = await self._client._request("GET", endpoints.PROVIDER_AUTH, directory=directory)
        if not isinstance(data, dict):
            raise InvalidResponseError("Expected a provider auth map from server")
        return data

    async def agents(self, *, directory: str | None = None) -> list[Agent]:
        data = await self._client._request("GET", endpoints.AGENT, directory=directory)
        return _parse_list(Agent, data)

    async def commands(self, *, directory: str | None = None) -> list[Command]:
        data = await self._client._request("GET", endpoints.COMMAND, directory=directory)
        return _parse_list(Command, data)


@dataclass
class ToolAPI:
    """Tool catalogue."""

    _client: OpenCodeClient

    async def ids(self, *, directory: str | None = None) -> list[str]:
        data = await self._client._request("GET", endpoints.TOOL_IDS, directory=directory)
        if not isinstance(data, list):
            raise InvalidResponseError("Expected a list of tool ids from server")
        return [str(item) for item in data]

    async def list(
        self,
        *,
        provider: str | None = None,
        model: str | None = None,
        directory: str | None = None,
    ) -> list[ToolInfo]:
        data = await self._client._request(
            "GET",
            endpoints.TOOL,
            params={"provider": provider, "model": model},
            directory=directory,
        )
        return _parse_list(ToolInfo, data)


@dataclass
class ProjectAPI:
    """Projects, paths and workspace status."""

    _client: OpenCodeClient

    async def list(self, *, directory: str | None = None) -> list[Project]:
        data = await self._client._request("GET", endpoints.PROJECT, directory=directory)
        return _parse_list(Project, data)

    async def current(self, *, directory: str | None = None) -> Project:
        data = await self._client._request("GET", endpoints.PROJECT_CURRENT, directory=directory)
        return _parse(Project, data)

    async def path(self, *, directory: str | None = None) -> PathInfo:
        data = await self._client._request("GET", endpoints.PATH, directory=directory)
        return _parse(PathInfo, data)

    async def vcs(self, *, directory: str | None = None) -> VcsInfo:
        data = await self._client._request("GET", endpoints.VCS, directory=directory)
        return _parse(VcsInfo, data)

    async def lsp_status(self, *, directory: str | None = None) -> list[LspServerStatus]:
        data = await self._client._request("GET", endpoints.LSP, directory=directory)
        return _parse_list(LspServerStatus, data)

    async def formatter_status(self, *, directory: str | None = None) -> list[FormatterStatus]:
        data = await self._client._request("GET", endpoints.FORMATTER, directory=directory)
        return _parse_list(FormatterStatus, data)


# =============================================================================
# Client
# =============================================================================


class OpenCodeClient:
    """Async client for an OpenCode server.

    Args:
        options: Client configuration; keyword arguments are used to build
            one when omitted (e.g. ``OpenCodeClient(base_url=...)``)
        http_client: Pre-configured httpx.AsyncClient (tests, custom TLS)
        retry_policy: Override the policy derived from options
    """

    def __init__(
        self,
        options: OpenCodeClientOptions | None = None,
        *,
        http_client: Any | None = None,
        retry_policy: RetryPolicy | None = None,
        **option_overrides: Any,
    ):
        if options is None:
            options = OpenCodeClientOptions(**option_overrides)
        elif option_overrides:
            raise TypeError("Pass either options or keyword overrides, not both")
        self.options = options
        self.transport = HTTPTransport(options, http_client)
        self.retry = retry_policy or RetryPolicy.from_options(options)

    @property
    def session(self) -> SessionAPI:
        """Session operations."""
        return SessionAPI(_client=self)

    @property
    def message(self) -> MessageAPI:
        """Message operations."""
        return MessageAPI(_client=self)

    @property
    def permission(self) -> PermissionAPI:
        return PermissionAPI(_client=self)

    @property
    def event(self) -> EventAPI:
        """Event subscription operations."""
        return EventAPI(_client=self)

    @property
    def file(self) -> FileAPI:
        return FileAPI(_client=self)

    @property
    def find(self) -> FindAPI:
        return FindAPI(_client=self)

    @property
    def pty(self) -> PtyAPI:
        return PtyAPI(_client=self)

    @property
    def mcp(self) -> McpAPI:
        return McpAPI(_client=self)

    @property
    def config(self) -> ConfigAPI:
        return ConfigAPI(_client=self)

    @property
    def tool(self) -> ToolAPI:
        return ToolAPI(_client=self)

    @property
    def project(self) -> ProjectAPI:
        return ProjectAPI(_client=self)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        idempotent: bool = True,
        retry: bool = True,
        **kwargs: Any,
    ) -> Any:
        """Execute one request through the retry policy.

        Calls that are not idempotent are only retried when the request never
        reached the server. With retry=False the call is made exactly once.
        """
        if not retry:
            return await self.transport.request(method, path, **kwargs)
        name = operation_name(path)
        return await self.retry.execute(
            lambda: self.transport.request(method, path, **kwargs),
            name,
            retry_if=is_retryable if idempotent else request_not_sent,
        )

    async def health_check(self) -> HealthCheckResult:
        """Check the server once, without retries."""
        started = time.monotonic()
        try:
            await self.transport.request("GET", endpoints.HEALTH)
        except OpenCodeError as e:
            logger.debug(f"Health check failed: {e}")
            return HealthCheckResult(healthy=False, error=str(e))
        latency = (time.monotonic() - started) * 1000
        return HealthCheckResult(healthy=True, latency_ms=latency)

    async def dispose_instance(self, *, directory: str | None = None) -> None:
        """Ask the server to dispose the instance serving ``directory``."""
        await self._request(
            "POST", endpoints.INSTANCE_DISPOSE, directory=directory, expect_content=False
        )

    async def close(self) -> None:
        """Close the client."""
        await self.transport.aclose()

    async def __aenter__(self) -> OpenCodeClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def create_client(base_url: str | None = None, **options: Any) -> OpenCodeClient:
    """Create a client, reading unspecified options from OPENCODE_* variables.

    Args:
        base_url: Server URL (default: OPENCODE_BASE_URL or http://localhost:9123)
        **options: Any other OpenCodeClientOptions field

    Returns:
        OpenCodeClient configured for HTTP
    """
    return OpenCodeClient(OpenCodeClientOptions.from_env(base_url=base_url, **options))

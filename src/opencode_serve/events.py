"""Typed server events.

Every SSE payload is an envelope ``{"type": ..., "properties": {...}}``.
The ``type`` tag selects one of the variant models registered in
EVENT_TYPES. Tags this client does not know (newer servers add events
over time) decode to UnknownEvent instead of failing.

Events are grouped by domain:
- server.*        - Server connection lifecycle
- session.*       - Session lifecycle and activity
- message.*       - Messages and streamed message parts
- permission.*    - Tool permission requests
- file.*          - File edits and watcher notifications
- todo.*          - Session todo lists
- pty.*           - Pseudo-terminals
- lsp.*           - Language servers
- command.*       - Slash commands
- vcs.*           - Version control
- installation.*  - Server installation/updates
- tui.*           - Terminal UI control
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import AliasChoices, Field, ValidationError

from .models.base import OpenCodeModel
from .models.message import MessageInfo
from .models.parts import Part, TextPart
from .models.resources import FileDiff, Permission, Pty, Todo
from .models.session import Session, SessionStatusInfo

logger = logging.getLogger(__name__)


def _either(primary: str, alternate: str) -> Any:
    """Field accepting two wire names, written back under the first."""
    return Field(
        default=None,
        validation_alias=AliasChoices(primary, alternate),
        serialization_alias=primary,
    )


class Event(OpenCodeModel):
    """Base event envelope."""

    type: str
    properties: Any = None

    @property
    def category(self) -> str:
        return self.type.split(".", 1)[0]

    @property
    def session_id(self) -> str | None:
        """Session this event belongs to, wherever the variant carries it."""
        return getattr(self.properties, "session_id", None)


class EmptyProperties(OpenCodeModel):
    pass


# ============================================================================
# Server events
# ============================================================================


class ServerInstanceDisposedProperties(OpenCodeModel):
    directory: str | None = None


class ServerInstanceDisposedEvent(Event):
    type: Literal["server.instance.disposed"] = "server.instance.disposed"
    properties: ServerInstanceDisposedProperties = Field(
        default_factory=ServerInstanceDisposedProperties
    )


class ServerConnectedEvent(Event):
    type: Literal["server.connected"] = "server.connected"
    properties: EmptyProperties = Field(default_factory=EmptyProperties)


# ============================================================================
# Session events
# ============================================================================


class SessionInfoProperties(OpenCodeModel):
    session: Session | None = _either("session", "info")

    @property
    def session_id(self) -> str | None:
        return self.session.id if self.session else None


class SessionCreatedEvent(Event):
    type: Literal["session.created"] = "session.created"
    properties: SessionInfoProperties


class SessionUpdatedEvent(Event):
    type: Literal["session.updated"] = "session.updated"
    properties: SessionInfoProperties


class SessionDeletedProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    info: Session | None = None

    def model_post_init(self, __context: Any) -> None:
        if self.session_id is None and self.info is not None:
            self.session_id = self.info.id


class SessionDeletedEvent(Event):
    type: Literal["session.deleted"] = "session.deleted"
    properties: SessionDeletedProperties


class SessionStatusProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    status: SessionStatusInfo | str | None = None

    @property
    def is_idle(self) -> bool:
        if isinstance(self.status, SessionStatusInfo):
            return self.status.is_idle
        return self.status == "idle"


class SessionStatusEvent(Event):
    type: Literal["session.status"] = "session.status"
    properties: SessionStatusProperties


class SessionIdProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")


class SessionIdleEvent(Event):
    type: Literal["session.idle"] = "session.idle"
    properties: SessionIdProperties


class SessionCompactedEvent(Event):
    type: Literal["session.compacted"] = "session.compacted"
    properties: SessionIdProperties


class SessionDiffProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    diffs: list[FileDiff] | None = _either("diffs", "diff")


class SessionDiffEvent(Event):
    type: Literal["session.diff"] = "session.diff"
    properties: SessionDiffProperties


class SessionErrorProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    error: Any = None

    @property
    def message(self) -> str:
        """Human readable error text from the server's error payload."""
        error = self.error
        if error is None:
            return "Unknown session error"
        if isinstance(error, str):
            return error
        if isinstance(error, dict):
            data = error.get("data")
            if isinstance(data, dict) and data.get("message"):
                return str(data["message"])
            if error.get("message"):
                return str(error["message"])
            if error.get("name"):
                return str(error["name"])
        return str(error)


class SessionErrorEvent(Event):
    type: Literal["session.error"] = "session.error"
    properties: SessionErrorProperties


# ============================================================================
# Message events
# ============================================================================


class MessageUpdatedProperties(OpenCodeModel):
    info: MessageInfo

    @property
    def session_id(self) -> str | None:
        return self.info.session_id


class MessageUpdatedEvent(Event):
    type: Literal["message.updated"] = "message.updated"
    properties: MessageUpdatedProperties


class MessageRemovedProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    message_id: str | None = Field(default=None, alias="messageID")


class MessageRemovedEvent(Event):
    type: Literal["message.removed"] = "message.removed"
    properties: MessageRemovedProperties


class MessagePartUpdatedProperties(OpenCodeModel):
    part: Part
    delta: str | None = None
    session_id: str | None = Field(default=None, alias="sessionID")
    message_id: str | None = Field(default=None, alias="messageID")

    def model_post_init(self, __context: Any) -> None:
        # Current servers only nest the ids inside the part
        if self.session_id is None:
            self.session_id = self.part.session_id
        if self.message_id is None:
            self.message_id = self.part.message_id

    @property
    def is_text(self) -> bool:
        return isinstance(self.part, TextPart)


class MessagePartUpdatedEvent(Event):
    type: Literal["message.part.updated"] = "message.part.updated"
    properties: MessagePartUpdatedProperties


class MessagePartRemovedProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    message_id: str | None = Field(default=None, alias="messageID")
    part_id: str | None = Field(default=None, alias="partID")


class MessagePartRemovedEvent(Event):
    type: Literal["message.part.removed"] = "message.part.removed"
    properties: MessagePartRemovedProperties


# ============================================================================
# Permission events
# ============================================================================


class PermissionUpdatedProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    permission: Permission | None = None


class PermissionUpdatedEvent(Event):
    type: Literal["permission.updated"] = "permission.updated"
    properties: PermissionUpdatedProperties


class PermissionRepliedProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    permission_id: str | None = Field(default=None, alias="permissionID")
    allow: bool | None = None
    response: str | None = None


class PermissionRepliedEvent(Event):
    type: Literal["permission.replied"] = "permission.replied"
    properties: PermissionRepliedProperties


# ============================================================================
# File and todo events
# ============================================================================


class FileEditedProperties(OpenCodeModel):
    path: str | None = _either("path", "file")


class FileEditedEvent(Event):
    type: Literal["file.edited"] = "file.edited"
    properties: FileEditedProperties


class FileWatcherUpdatedProperties(OpenCodeModel):
    files: list[str] | None = None
    file: str | None = None
    event: str | None = None


class FileWatcherUpdatedEvent(Event):
    type: Literal["file.watcher.updated"] = "file.watcher.updated"
    properties: FileWatcherUpdatedProperties


class TodoUpdatedProperties(OpenCodeModel):
    session_id: str | None = Field(default=None, alias="sessionID")
    todos: list[Todo] = Field(default_factory=list)


class TodoUpdatedEvent(Event):
    type: Literal["todo.updated"] = "todo.updated"
    properties: TodoUpdatedProperties


# ============================================================================
# PTY events
# ============================================================================


class PtyInfoProperties(OpenCodeModel):
    pty: Pty | None = _either("pty", "info")


class PtyCreatedEvent(Event):
    type: Literal["pty.created"] = "pty.created"
    properties: PtyInfoProperties


class PtyUpdatedEvent(Event):
    type: Literal["pty.updated"] = "pty.updated"
    properties: PtyInfoProperties


class PtyExitedProperties(OpenCodeModel):
    pty_id: str | None = _either("ptyID", "id")
    exit_code: int | None = Field(default=None, alias="exitCode")


class PtyExitedEvent(Event):
    type: Literal["pty.exited"] = "pty.exited"
    properties: PtyExitedProperties


class PtyDeletedProperties(OpenCodeModel):
    pty_id: str | None = _either("ptyID", "id")


class PtyDeletedEvent(Event):
    type: Literal["pty.deleted"] = "pty.deleted"
    properties: PtyDeletedProperties


# ============================================================================
# LSP, command, VCS and installation events
# ============================================================================


class LspUpdatedProperties(OpenCodeModel):
    status: Any = None


class LspUpdatedEvent(Event):
    type: Literal["lsp.updated"] = "lsp.updated"
    properties: LspUpdatedProperties = Field(default_factory=LspUpdatedProperties)


class LspClientDiagnosticsProperties(OpenCodeModel):
    diagnostics: Any = None
    path: str | None = None
    server_id: str | None = Field(default=None, alias="serverID")


class LspClientDiagnosticsEvent(Event):
    type: Literal["lsp.client.diagnostics"] = "lsp.client.diagnostics"
    properties: LspClientDiagnosticsProperties


class CommandExecutedProperties(OpenCodeModel):
    command: str | None = _either("command", "name")
    session_id: str | None = Field(default=None, alias="sessionID")
    arguments: str | None = None


class CommandExecutedEvent(Event):
    type: Literal["command.executed"] = "command.executed"
    properties: CommandExecutedProperties


class VcsBranchUpdatedProperties(OpenCodeModel):
    branch: str | None = None


class VcsBranchUpdatedEvent(Event):
    type: Literal["vcs.branch.updated"] = "vcs.branch.updated"
    properties: VcsBranchUpdatedProperties


class InstallationProperties(OpenCodeModel):
    version: str | None = None


class InstallationUpdatedEvent(Event):
    type: Literal["installation.updated"] = "installation.updated"
    properties: InstallationProperties


class InstallationUpdateAvailableEvent(Event):
    type: Literal["installation.update-available"] = "installation.update-available"
    properties: InstallationProperties


# ============================================================================
# TUI events
# ============================================================================


class TuiPromptAppendProperties(OpenCodeModel):
    text: str = ""


class TuiPromptAppendEvent(Event):
    type: Literal["tui.prompt.append"] = "tui.prompt.append"
    properties: TuiPromptAppendProperties


class TuiCommandExecuteProperties(OpenCodeModel):
    command: str | None = None


class TuiCommandExecuteEvent(Event):
    type: Literal["tui.command.execute"] = "tui.command.execute"
    properties: TuiCommandExecuteProperties


class TuiToastShowProperties(OpenCodeModel):
    message: str | None = None
    title: str | None = None
    level: str | None = _either("level", "variant")


class TuiToastShowEvent(Event):
    type: Literal["tui.toast.show"] = "tui.toast.show"
    properties: TuiToastShowProperties


# ============================================================================
# Unknown events and the registry
# ============================================================================


class UnknownEvent(Event):
    """An event whose type is not registered, kept with its raw properties."""

    type: str
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_id(self) -> str | None:
        return extract_session_id(self.properties)


_EVENT_CLASSES: tuple[type[Event], ...] = (
    ServerInstanceDisposedEvent,
    ServerConnectedEvent,
    SessionCreatedEvent,
    SessionUpdatedEvent,
    SessionDeletedEvent,
    SessionStatusEvent,
    SessionIdleEvent,
    SessionCompactedEvent,
    SessionDiffEvent,
    SessionErrorEvent,
    MessageUpdatedEvent,
    MessageRemovedEvent,
    MessagePartUpdatedEvent,
    MessagePartRemovedEvent,
    PermissionUpdatedEvent,
    PermissionRepliedEvent,
    FileEditedEvent,
    FileWatcherUpdatedEvent,
    TodoUpdatedEvent,
    PtyCreatedEvent,
    PtyUpdatedEvent,
    PtyExitedEvent,
    PtyDeletedEvent,
    LspUpdatedEvent,
    LspClientDiagnosticsEvent,
    CommandExecutedEvent,
    VcsBranchUpdatedEvent,
    InstallationUpdatedEvent,
    InstallationUpdateAvailableEvent,
    TuiPromptAppendEvent,
    TuiCommandExecuteEvent,
    TuiToastShowEvent,
)

EVENT_TYPES: dict[str, type[Event]] = {
    cls.model_fields["type"].default: cls for cls in _EVENT_CLASSES
}


def extract_session_id(properties: dict[str, Any]) -> str | None:
    """Find a session id in raw event properties.

    Checks ``sessionID``, then ``part.sessionID``, then ``info.sessionID``.
    """
    if not isinstance(properties, dict):
        return None
    if properties.get("sessionID"):
        return properties["sessionID"]
    for key in ("part", "info"):
        nested = properties.get(key)
        if isinstance(nested, dict) and nested.get("sessionID"):
            return nested["sessionID"]
    return None


def parse_event(payload: dict[str, Any]) -> Event:
    """Decode an event envelope into its typed variant.

    Never raises: unknown types and known types with unexpected properties
    both come back as UnknownEvent.
    """
    event_type = payload.get("type")
    properties = payload.get("properties")
    if properties is None:
        properties = {}

    event_cls = EVENT_TYPES.get(event_type) if isinstance(event_type, str) else None
    if event_cls is not None:
        try:
            return event_cls.model_validate({"type": event_type, "properties": properties})
        except ValidationError as e:
            logger.warning(f"Malformed {event_type} event, treating as unknown: {e}")
    else:
        logger.debug(f"Unrecognized event type: {event_type}")

    if not isinstance(properties, dict):
        properties = {"value": properties}
    return UnknownEvent(type=str(event_type or "unknown"), properties=properties)


def is_known(event: Event) -> bool:
    return not isinstance(event, UnknownEvent)


@dataclass
class GlobalEvent:
    """An event from /global/event, tagged with the directory it came from."""

    directory: str | None
    event: Event


def parse_global_event(payload: dict[str, Any]) -> GlobalEvent:
    inner = payload.get("payload")
    if isinstance(inner, dict):
        return GlobalEvent(directory=payload.get("directory"), event=parse_event(inner))
    return GlobalEvent(directory=payload.get("directory"), event=parse_event(payload))

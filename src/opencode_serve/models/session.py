"""Sessions and session request bodies."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from .base import OpenCodeModel, from_epoch_ms


class SessionState(str, Enum):
    """Lifecycle status carried on a session."""

    ACTIVE = "active"
    ABORTED = "aborted"
    COMPLETED = "completed"


class SessionTime(OpenCodeModel):
    created: float | None = None
    updated: float | None = None


class SessionShare(OpenCodeModel):
    url: str | None = None


class Session(OpenCodeModel):
    """A server-side conversation."""

    id: str
    title: str | None = None
    directory: str | None = None
    project_id: str | None = Field(default=None, alias="projectID")
    parent_id: str | None = Field(default=None, alias="parentID")
    version: str | None = None
    time: SessionTime | None = None
    share: SessionShare | None = None
    status: SessionState | str | None = None

    @property
    def created_at(self) -> datetime | None:
        return from_epoch_ms(self.time.created if self.time else None)

    @property
    def updated_at(self) -> datetime | None:
        return from_epoch_ms(self.time.updated if self.time else None)

    @property
    def share_url(self) -> str | None:
        return self.share.url if self.share else None


class SessionStatusInfo(OpenCodeModel):
    """Busy/idle activity of a session (``/session/status`` and session.status)."""

    type: str
    attempt: int | None = None
    message: str | None = None
    next: float | None = None

    @property
    def is_idle(self) -> bool:
        return self.type == "idle"


# =============================================================================
# Request bodies
# =============================================================================


class CreateSessionRequest(OpenCodeModel):
    parent_id: str | None = Field(default=None, alias="parentID")
    title: str | None = None


class UpdateSessionRequest(OpenCodeModel):
    title: str | None = None


class ForkSessionRequest(OpenCodeModel):
    message_id: str | None = Field(default=None, alias="messageID")


class InitSessionRequest(OpenCodeModel):
    message_id: str = Field(alias="messageID")
    provider_id: str = Field(alias="providerID")
    model_id: str = Field(alias="modelID")


class RevertSessionRequest(OpenCodeModel):
    message_id: str = Field(alias="messageID")
    part_id: str | None = Field(default=None, alias="partID")


class SummarizeSessionRequest(OpenCodeModel):
    provider_id: str | None = Field(default=None, alias="providerID")
    model_id: str | None = Field(default=None, alias="modelID")


class CommandRequest(OpenCodeModel):
    command: str
    arguments: str = ""
    agent: str | None = None
    model: str | None = None
    message_id: str | None = Field(default=None, alias="messageID")


class ShellRequest(OpenCodeModel):
    command: str
    agent: str
    model: dict[str, Any] | None = None

"""Messages and prompt requests."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from .base import OpenCodeModel, from_epoch_ms
from .parts import Part, PartBase, PartInput, TextPart, ToolResultPart, is_tool_call


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class MessageTime(OpenCodeModel):
    created: float | None = None
    completed: float | None = None


class TokenUsage(OpenCodeModel):
    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache: dict[str, int] | None = None

    @property
    def total(self) -> int:
        return self.input + self.output + self.reasoning


class MessageInfo(OpenCodeModel):
    """Message metadata (the ``info`` half of a message)."""

    id: str
    session_id: str | None = Field(default=None, alias="sessionID")
    role: MessageRole | str
    time: MessageTime | None = None
    parent_id: str | None = Field(default=None, alias="parentID")
    provider_id: str | None = Field(default=None, alias="providerID")
    model_id: str | None = Field(default=None, alias="modelID")
    agent: str | None = None
    mode: str | None = None
    cost: float | None = None
    tokens: TokenUsage | None = None
    error: Any = None

    @property
    def created_at(self) -> datetime | None:
        return from_epoch_ms(self.time.created if self.time else None)

    @property
    def is_assistant(self) -> bool:
        return self.role == MessageRole.ASSISTANT


class Message(OpenCodeModel):
    """A message with its ordered parts, as returned by the message endpoints."""

    info: MessageInfo
    parts: list[Part] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.info.id

    @property
    def session_id(self) -> str | None:
        return self.info.session_id

    @property
    def role(self) -> MessageRole | str:
        return self.info.role

    @property
    def text(self) -> str:
        """Concatenated text of the message's text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart) and not p.ignored)

    def tool_call_for(self, result: ToolResultPart) -> PartBase | None:
        """Find the tool part a result refers to, searching earlier parts."""
        try:
            end = self.parts.index(result)
        except ValueError:
            end = len(self.parts)
        for part in reversed(self.parts[:end]):
            if is_tool_call(part) and getattr(part, "call_id", None) == result.call_id:
                return part
        return None


class ModelRef(OpenCodeModel):
    provider_id: str = Field(alias="providerID")
    model_id: str = Field(alias="modelID")


class PromptRequest(OpenCodeModel):
    """Body for sending a message (blocking or async)."""

    parts: list[PartInput]
    message_id: str | None = Field(default=None, alias="messageID")
    model: ModelRef | None = None
    agent: str | None = None
    system: str | None = None
    tools: dict[str, bool] | None = None
    no_reply: bool | None = Field(default=None, alias="noReply")


def last_assistant_text(messages: list[Message]) -> str:
    """Text of the most recent assistant message, or an empty string."""
    for message in reversed(messages):
        if message.info.is_assistant:
            return message.text
    return ""

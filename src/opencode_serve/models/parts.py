"""Message parts.

Parts form a tagged union keyed on ``type``. PART_TYPES maps each tag to
its model; anything else decodes to UnknownPart with every field kept.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field, SerializeAsAny, ValidationError

from .base import OpenCodeModel

logger = logging.getLogger(__name__)


class PartTime(OpenCodeModel):
    start: float | None = None
    end: float | None = None


class PartBase(OpenCodeModel):
    """Fields common to every part."""

    type: str
    id: str | None = None
    session_id: str | None = Field(default=None, alias="sessionID")
    message_id: str | None = Field(default=None, alias="messageID")


# =============================================================================
# Variants
# =============================================================================


class TextPart(PartBase):
    type: Literal["text"] = "text"
    text: str = ""
    synthetic: bool | None = None
    ignored: bool | None = None
    time: PartTime | None = None


class ReasoningPart(PartBase):
    type: Literal["reasoning"] = "reasoning"
    text: str = ""
    time: PartTime | None = None


class FilePart(PartBase):
    type: Literal["file"] = "file"
    mime: str | None = None
    filename: str | None = None
    url: str | None = None
    source: dict[str, Any] | None = None


class AgentPart(PartBase):
    type: Literal["agent"] = "agent"
    name: str | None = None
    source: dict[str, Any] | None = None


class ToolState(OpenCodeModel):
    """Execution state of a tool call."""

    status: str
    input: dict[str, Any] | None = None
    output: str | None = None
    title: str | None = None
    error: str | None = None
    metadata: dict[str, Any] | None = None
    time: PartTime | None = None


class ToolPart(PartBase):
    """A tool invocation tracked through its state."""

    type: Literal["tool"] = "tool"
    call_id: str | None = Field(default=None, alias="callID")
    tool: str | None = None
    state: ToolState | str | None = None

    @property
    def status(self) -> str | None:
        if isinstance(self.state, ToolState):
            return self.state.status
        return self.state

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class ToolUsePart(PartBase):
    type: Literal["tool_use"] = "tool_use"
    call_id: str | None = Field(default=None, alias="callID")
    tool: str | None = None
    input: dict[str, Any] | None = None


class ToolResultPart(PartBase):
    """Result of a tool call; ``call_id`` points at the originating tool part."""

    type: Literal["tool_result"] = "tool_result"
    call_id: str | None = Field(default=None, alias="callID")
    output: Any = None
    is_error: bool | None = Field(default=None, alias="isError")


class StepStartPart(PartBase):
    type: Literal["step-start"] = "step-start"
    snapshot: str | None = None


class StepFinishPart(PartBase):
    type: Literal["step-finish"] = "step-finish"
    reason: str | None = None
    snapshot: str | None = None
    cost: float | None = None
    tokens: dict[str, Any] | None = None


class UnknownPart(PartBase):
    """Any part type this client does not model."""


PART_TYPES: dict[str, type[PartBase]] = {
    "text": TextPart,
    "reasoning": ReasoningPart,
    "file": FilePart,
    "agent": AgentPart,
    "tool": ToolPart,
    "tool_use": ToolUsePart,
    "tool_result": ToolResultPart,
    "step-start": StepStartPart,
    "step-finish": StepFinishPart,
}


def parse_part(data: dict[str, Any]) -> PartBase:
    """Decode a part dict into its registered variant."""
    part_type = data.get("type")
    part_cls = PART_TYPES.get(part_type) if isinstance(part_type, str) else None
    if part_cls is None:
        return UnknownPart.model_validate({**data, "type": str(part_type or "unknown")})
    try:
        return part_cls.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Could not decode {part_type} part, keeping raw fields: {e}")
        return UnknownPart.model_validate(data)


def _coerce_part(value: Any) -> Any:
    if isinstance(value, dict):
        return parse_part(value)
    return value


Part = Annotated[SerializeAsAny[PartBase], BeforeValidator(_coerce_part)]


def is_tool_call(part: PartBase) -> bool:
    return isinstance(part, (ToolPart, ToolUsePart))


# =============================================================================
# Request-side part inputs
# =============================================================================


class TextPartInput(OpenCodeModel):
    type: Literal["text"] = "text"
    text: str
    id: str | None = None
    synthetic: bool | None = None


class FilePartInput(OpenCodeModel):
    type: Literal["file"] = "file"
    mime: str
    url: str
    filename: str | None = None
    id: str | None = None


class AgentPartInput(OpenCodeModel):
    type: Literal["agent"] = "agent"
    name: str
    id: str | None = None


class SubtaskPartInput(OpenCodeModel):
    type: Literal["subtask"] = "subtask"
    prompt: str
    description: str
    agent: str
    id: str | None = None


PartInput = Annotated[
    TextPartInput | FilePartInput | AgentPartInput | SubtaskPartInput,
    Field(discriminator="type"),
]


def text_input(text: str) -> TextPartInput:
    return TextPartInput(text=text)

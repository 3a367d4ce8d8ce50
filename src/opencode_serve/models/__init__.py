"""Wire models for the OpenCode server API."""

from .base import OpenCodeModel, from_epoch_ms
from .message import (
    Message,
    MessageInfo,
    MessageRole,
    MessageTime,
    ModelRef,
    PromptRequest,
    TokenUsage,
    last_assistant_text,
)
from .parts import (
    PART_TYPES,
    AgentPart,
    AgentPartInput,
    FilePart,
    FilePartInput,
    Part,
    PartBase,
    PartInput,
    PartTime,
    ReasoningPart,
    StepFinishPart,
    StepStartPart,
    SubtaskPartInput,
    TextPart,
    TextPartInput,
    ToolPart,
    ToolResultPart,
    ToolState,
    ToolUsePart,
    UnknownPart,
    parse_part,
    text_input,
)
from .resources import (
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
    Permission,
    PermissionResponse,
    Project,
    Provider,
    ProviderModel,
    Pty,
    Symbol,
    Todo,
    ToolInfo,
    UpdatePtyRequest,
    VcsInfo,
)
from .session import (
    CommandRequest,
    CreateSessionRequest,
    ForkSessionRequest,
    InitSessionRequest,
    RevertSessionRequest,
    Session,
    SessionShare,
    SessionState,
    SessionStatusInfo,
    SessionTime,
    ShellRequest,
    SummarizeSessionRequest,
    UpdateSessionRequest,
)

__all__ = [
    "PART_TYPES",
    "AddMcpServerRequest",
    "Agent",
    "AgentPart",
    "AgentPartInput",
    "Command",
    "CommandRequest",
    "CreatePtyRequest",
    "CreateSessionRequest",
    "FileContent",
    "FileDiff",
    "FileNode",
    "FilePart",
    "FilePartInput",
    "FileStatusEntry",
    "ForkSessionRequest",
    "FormatterStatus",
    "HealthCheckResult",
    "InitSessionRequest",
    "LspServerStatus",
    "McpStatus",
    "Message",
    "MessageInfo",
    "MessageRole",
    "MessageTime",
    "ModelRef",
    "OpenCodeModel",
    "Part",
    "PartBase",
    "PartInput",
    "PartTime",
    "PathInfo",
    "Permission",
    "PermissionResponse",
    "Project",
    "PromptRequest",
    "Provider",
    "ProviderModel",
    "Pty",
    "ReasoningPart",
    "RevertSessionRequest",
    "Session",
    "SessionShare",
    "SessionState",
    "SessionStatusInfo",
    "SessionTime",
    "ShellRequest",
    "StepFinishPart",
    "StepStartPart",
    "SubtaskPartInput",
    "SummarizeSessionRequest",
    "Symbol",
    "TextPart",
    "TextPartInput",
    "Todo",
    "TokenUsage",
    "ToolInfo",
    "ToolPart",
    "ToolResultPart",
    "ToolState",
    "ToolUsePart",
    "UnknownPart",
    "UpdatePtyRequest",
    "UpdateSessionRequest",
    "VcsInfo",
    "from_epoch_ms",
    "last_assistant_text",
    "parse_part",
    "text_input",
]

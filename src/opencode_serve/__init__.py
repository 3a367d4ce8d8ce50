"""OpenCode Serve - async client for the OpenCode AI server.

Wraps the server's HTTP API and its Server-Sent-Events stream: sessions,
blocking and streaming messages, typed events and the supporting
file/find/pty/mcp/config endpoints.
"""

from .client import OpenCodeClient, build_prompt, create_client, parse_model_ref
from .config import OpenCodeClientOptions
from .events import Event, GlobalEvent, UnknownEvent, parse_event
from .exceptions import (
    ApiError,
    CircuitOpenError,
    ConflictError,
    EmptyResponseError,
    ErrorKind,
    InvalidResponseError,
    NotFoundError,
    OpenCodeConnectionError,
    OpenCodeError,
    OpenCodeTimeoutError,
    ServerError,
    SessionStreamError,
    is_retryable,
)
from .models import Message, ModelRef, PromptRequest, Session
from .retry import CircuitBreaker, RetryPolicy
from .scope import SessionScope
from .sse import ProgressStage, SSEParser, StreamingProgress
from .streaming import MessageUpdate, StreamingSessionReconstructor, collect_text, subscribe

__version__ = "0.1.0"

__all__ = [
    # Client
    "OpenCodeClient",
    "OpenCodeClientOptions",
    "create_client",
    "build_prompt",
    "parse_model_ref",
    # Sessions and messages
    "Session",
    "SessionScope",
    "Message",
    "ModelRef",
    "PromptRequest",
    # Streaming
    "MessageUpdate",
    "StreamingSessionReconstructor",
    "collect_text",
    "subscribe",
    "SSEParser",
    "ProgressStage",
    "StreamingProgress",
    # Events
    "Event",
    "GlobalEvent",
    "UnknownEvent",
    "parse_event",
    # Retry
    "RetryPolicy",
    "CircuitBreaker",
    # Errors
    "ErrorKind",
    "OpenCodeError",
    "ApiError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    "EmptyResponseError",
    "InvalidResponseError",
    "OpenCodeConnectionError",
    "OpenCodeTimeoutError",
    "SessionStreamError",
    "CircuitOpenError",
    "is_retryable",
]

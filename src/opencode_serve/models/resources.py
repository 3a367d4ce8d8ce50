"""Plain data schemas for the non-session endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .base import OpenCodeModel


class HealthCheckResult(OpenCodeModel):
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class Todo(OpenCodeModel):
    id: str
    content: str
    status: str
    priority: str | None = None


class FileDiff(OpenCodeModel):
    file: str
    before: str = ""
    after: str = ""
    additions: int = 0
    deletions: int = 0


class Permission(OpenCodeModel):
    """A pending permission request raised by a tool."""

    id: str
    type: str | None = None
    pattern: str | list[str] | None = None
    session_id: str | None = Field(default=None, alias="sessionID")
    message_id: str | None = Field(default=None, alias="messageID")
    call_id: str | None = Field(default=None, alias="callID")
    title: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    time: dict[str, float] | None = None


class PermissionResponse(OpenCodeModel):
    allow: bool
    remember: bool | None = None


# Files and search


class FileNode(OpenCodeModel):
    name: str
    path: str
    absolute: str | None = None
    type: str | None = None
    ignored: bool | None = None


class FileContent(OpenCodeModel):
    type: str | None = None
    content: str = ""
    diff: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")
    encoding: str | None = None


class FileStatusEntry(OpenCodeModel):
    path: str
    status: str | None = None
    added: int = 0
    removed: int = 0


class Symbol(OpenCodeModel):
    name: str
    kind: int | str | None = None
    location: dict[str, Any] | None = None


# Pseudo-terminals


class Pty(OpenCodeModel):
    id: str
    title: str | None = None
    command: str | None = None
    args: list[str] = Field(default_factory=list)
    cwd: str | None = None
    status: str | None = None
    pid: int | None = None


class CreatePtyRequest(OpenCodeModel):
    command: str | None = None
    args: list[str] | None = None
    cwd: str | None = None
    title: str | None = None
    env: dict[str, str] | None = None


class UpdatePtyRequest(OpenCodeModel):
    title: str | None = None
    size: dict[str, int] | None = None


# MCP servers


class McpStatus(OpenCodeModel):
    name: str
    status: str | None = None
    error: str | None = None


class AddMcpServerRequest(OpenCodeModel):
    name: str
    config: dict[str, Any]


# Providers, agents, commands, tools


class ProviderModel(OpenCodeModel):
    id: str
    name: str | None = None


class Provider(OpenCodeModel):
    id: str
    name: str | None = None
    env: list[str] = Field(default_factory=list)
    models: dict[str, ProviderModel] = Field(default_factory=dict)


class Agent(OpenCodeModel):
    name: str
    description: str | None = None
    mode: str | None = None
    built_in: bool | None = Field(default=None, alias="builtIn")
    prompt: str | None = None
    tools: dict[str, bool] | None = None


class Command(OpenCodeModel):
    name: str
    description: str | None = None
    template: str | None = None
    agent: str | None = None
    model: str | None = None


class ToolInfo(OpenCodeModel):
    id: str
    description: str | None = None
    parameters: dict[str, Any] | None = None


# Workspace


class Project(OpenCodeModel):
    id: str
    worktree: str | None = None
    vcs: str | None = None
    time: dict[str, float] | None = None


class PathInfo(OpenCodeModel):
    state: str | None = None
    config: str | None = None
    worktree: str | None = None
    directory: str | None = None


class VcsInfo(OpenCodeModel):
    branch: str | None = None


class LspServerStatus(OpenCodeModel):
    id: str
    name: str | None = None
    root: str | None = None
    status: str | None = None


class FormatterStatus(OpenCodeModel):
    name: str
    extensions: list[str] = Field(default_factory=list)
    enabled: bool = True

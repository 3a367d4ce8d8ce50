"""Server route paths."""

from __future__ import annotations

from urllib.parse import quote


def _seg(value: str) -> str:
    return quote(value, safe="")


# Health (the server has no dedicated health route)
HEALTH = "/config"

# Global
GLOBAL_EVENT = "/global/event"
EVENT = "/event"
INSTANCE_DISPOSE = "/instance/dispose"

# Workspace
PROJECT = "/project"
PROJECT_CURRENT = "/project/current"
PATH = "/path"
VCS = "/vcs"

# Configuration and catalogue
CONFIG = "/config"
CONFIG_PROVIDERS = "/config/providers"
PROVIDER = "/provider"
PROVIDER_AUTH = "/provider/auth"
AGENT = "/agent"
COMMAND = "/command"
LSP = "/lsp"
FORMATTER = "/formatter"
TOOL = "/experimental/tool"
TOOL_IDS = "/experimental/tool/ids"

# Files and search
FILE = "/file"
FILE_CONTENT = "/file/content"
FILE_STATUS = "/file/status"
FIND = "/find"
FIND_FILE = "/find/file"
FIND_SYMBOL = "/find/symbol"

# Sessions
SESSION = "/session"
SESSION_STATUS = "/session/status"


def session(session_id: str) -> str:
    return f"/session/{_seg(session_id)}"


def session_action(session_id: str, action: str) -> str:
    """``/session/{id}/{action}`` for abort, fork, share, todo, diff, ..."""
    return f"{session(session_id)}/{action}"


def session_messages(session_id: str) -> str:
    return session_action(session_id, "message")


def session_message(session_id: str, message_id: str) -> str:
    return f"{session_messages(session_id)}/{_seg(message_id)}"


def session_prompt_async(session_id: str) -> str:
    return session_action(session_id, "prompt_async")


def session_permission(session_id: str, permission_id: str) -> str:
    return f"{session_action(session_id, 'permissions')}/{_seg(permission_id)}"


# PTY
PTY = "/pty"


def pty(pty_id: str) -> str:
    return f"/pty/{_seg(pty_id)}"


# MCP
MCP = "/mcp"


def mcp_action(name: str, action: str) -> str:
    """``/mcp/{name}/{action}`` for connect, disconnect, auth, ..."""
    return f"/mcp/{_seg(name)}/{action}"


def is_message_route(path: str) -> bool:
    """Whether a path sends or reads messages (used for empty-body hints)."""
    return "/message" in path.split("?", 1)[0]

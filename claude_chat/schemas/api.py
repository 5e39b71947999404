"""HTTP API request/response bodies for the browser client."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, TypeAlias

from claude_chat.schemas.base import ApiModel
from claude_chat.schemas.permissions import PermissionRequest

__all__ = [
    'AbortRequest',
    'ActionResult',
    'ChatRequest',
    'ChatResponse',
    'HookConfigureRequest',
    'HookLocation',
    'HookStatus',
    'PendingPermissions',
    'PermissionMode',
    'PermissionRespondRequest',
    'ToolUse',
]

PermissionMode: TypeAlias = Literal['default', 'acceptEdits', 'plan', 'bypassPermissions']
HookLocation: TypeAlias = Literal['global', 'project']


class ActionResult(ApiModel):
    """Generic success/failure envelope."""

    success: bool
    message: str | None = None
    error: str | None = None


# --- Chat ---


class ChatRequest(ApiModel):
    message: str
    session_id: str | None = None
    request_id: str | None = None
    permission_mode: PermissionMode = 'default'
    model: str | None = None


class ToolUse(ApiModel):
    name: str
    input: dict[str, Any] | None = None


class ChatResponse(ApiModel):
    """Outcome of one assistant run, or a snapshot of one still in flight."""

    success: bool
    thinking: Sequence[str] = ()
    response: str = ''
    tool_use: Sequence[ToolUse] = ()
    session_id: str | None = None
    aborted: bool = False
    error: str | None = None


class AbortRequest(ApiModel):
    request_id: str


# --- Permissions ---


class PendingPermissions(ApiModel):
    success: bool = True
    pending: Sequence[PermissionRequest]


class PermissionRespondRequest(ApiModel):
    id: str
    allow: bool


# --- Hook setup ---


class HookStatus(ApiModel):
    """Whether the permission hook is wired into Claude's settings files."""

    success: bool = True
    configured: bool
    global_configured: bool
    project_configured: bool
    hook_script_path: str
    global_settings_path: str
    project_settings_path: str
    cwd: str


class HookConfigureRequest(ApiModel):
    location: HookLocation

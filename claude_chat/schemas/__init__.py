"""Pydantic schemas for the chat server."""

from __future__ import annotations

from claude_chat.schemas.api import (
    AbortRequest,
    ActionResult,
    ChatRequest,
    ChatResponse,
    HookConfigureRequest,
    HookLocation,
    HookStatus,
    PendingPermissions,
    PermissionMode,
    PermissionRespondRequest,
    ToolUse,
)
from claude_chat.schemas.base import ApiModel, StrictModel
from claude_chat.schemas.hooks import PermissionHookInput, PreToolUseDecision, PreToolUseHookOutput
from claude_chat.schemas.permissions import PermissionDecision, PermissionRequest

__all__ = [
    'AbortRequest',
    'ActionResult',
    'ApiModel',
    'ChatRequest',
    'ChatResponse',
    'HookConfigureRequest',
    'HookLocation',
    'HookStatus',
    'PendingPermissions',
    'PermissionDecision',
    'PermissionHookInput',
    'PermissionMode',
    'PermissionRequest',
    'PermissionRespondRequest',
    'PreToolUseDecision',
    'PreToolUseHookOutput',
    'StrictModel',
    'ToolUse',
]

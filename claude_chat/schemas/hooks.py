"""Claude Code hook input/output schemas.

See: https://code.claude.com/docs/en/hooks#pretooluse
"""

from __future__ import annotations

from typing import Any, Literal

import pydantic

from claude_chat.schemas.base import ExternalModel, StrictModel

__all__ = [
    'PermissionHookInput',
    'PreToolUseDecision',
    'PreToolUseHookOutput',
]


class PermissionHookInput(ExternalModel):
    """Tool-use payload forwarded verbatim by the permission hook.

    Unknown fields are ignored: the CLI adds keys between releases, and a
    rejected payload would deny every tool call.
    """

    tool_name: str
    tool_input: dict[str, Any] = {}
    tool_use_id: str | None = None
    session_id: str = ''
    permission_mode: str | None = None
    hook_event_name: str | None = None
    cwd: str | None = None
    transcript_path: str | None = None


class PreToolUseDecision(StrictModel):
    """Permission decision within a PreToolUse hook output."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    hook_event_name: Literal['PreToolUse'] = pydantic.Field(default='PreToolUse', alias='hookEventName')
    permission_decision: Literal['allow', 'deny', 'ask'] = pydantic.Field(alias='permissionDecision')
    permission_decision_reason: str | None = pydantic.Field(default=None, alias='permissionDecisionReason')


class PreToolUseHookOutput(StrictModel):
    """PreToolUse hook output. Serialize with model_dump_json(by_alias=True)."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    hook_specific_output: PreToolUseDecision = pydantic.Field(alias='hookSpecificOutput')

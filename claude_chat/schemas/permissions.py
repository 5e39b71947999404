"""Permission request and decision models."""

from __future__ import annotations

from typing import Any

from claude_chat.schemas.base import ApiModel, StrictModel
from claude_chat.schemas.hooks import PreToolUseDecision, PreToolUseHookOutput

__all__ = [
    'PermissionDecision',
    'PermissionRequest',
]


class PermissionRequest(ApiModel):
    """A tool invocation waiting for a human decision.

    Serialized as-is for `/api/permission-pending` polling consumers.
    """

    id: str
    session_id: str
    tool_name: str
    tool_input: dict[str, Any]
    timestamp: int  # epoch milliseconds


class PermissionDecision(StrictModel):
    """Allow/deny outcome with the reason shown to the assistant."""

    allow: bool
    reason: str

    def to_hook_output(self) -> PreToolUseHookOutput:
        return PreToolUseHookOutput(
            hook_specific_output=PreToolUseDecision(
                permission_decision='allow' if self.allow else 'deny',
                permission_decision_reason=self.reason,
            )
        )

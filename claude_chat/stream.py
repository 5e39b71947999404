"""Parser for the CLI's ``--output-format stream-json`` events.

One JSON object per line. Only four shapes matter here:

    {"type": "system", "subtype": "init", "session_id": ...}
    {"type": "assistant", "message": {"content": [thinking | text | tool_use blocks]}}
    {"type": "user", ...}                     # tool results, ignored
    {"type": "result", "result": ..., "session_id": ..., "is_error": ...}

Anything that is not valid JSON (progress noise, partial writes) is skipped.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

import pydantic

from claude_chat.schemas.api import ChatResponse, ToolUse
from claude_chat.schemas.base import ExternalModel

__all__ = [
    'StreamAccumulator',
    'StreamEvent',
    'parse_stream_output',
]

logger = logging.getLogger(__name__)


class ContentBlock(ExternalModel):
    type: str
    text: str | None = None
    thinking: str | None = None
    name: str | None = None
    input: dict[str, Any] | None = None


class EventMessage(ExternalModel):
    content: list[ContentBlock] | str = []


class StreamEvent(ExternalModel):
    type: str
    subtype: str | None = None
    session_id: str | None = None
    message: EventMessage | None = None
    result: str | None = None
    is_error: bool = False


@dataclasses.dataclass(slots=True)
class StreamAccumulator:
    """Running view of one CLI invocation's output."""

    thinking: list[str] = dataclasses.field(default_factory=list)
    text_parts: list[str] = dataclasses.field(default_factory=list)
    tool_uses: list[ToolUse] = dataclasses.field(default_factory=list)
    result: str | None = None
    session_id: str | None = None
    is_error: bool = False
    skipped_lines: int = 0

    @property
    def response(self) -> str:
        """Assistant text, falling back to the final result summary."""
        text = ''.join(self.text_parts)
        if text:
            return text
        return self.result or ''

    def feed(self, line: str) -> None:
        """Consume one output line."""
        line = line.strip()
        if not line:
            return
        try:
            event = StreamEvent.model_validate_json(line)
        except pydantic.ValidationError:
            self.skipped_lines += 1
            return

        if event.session_id:
            self.session_id = event.session_id

        if event.type == 'assistant' and event.message is not None:
            self._feed_assistant(event.message)
        elif event.type == 'result':
            if event.result:
                self.result = event.result
            self.is_error = event.is_error

    def _feed_assistant(self, message: EventMessage) -> None:
        if isinstance(message.content, str):
            self.text_parts.append(message.content)
            return
        for block in message.content:
            if block.type == 'thinking' and block.thinking:
                self.thinking.append(block.thinking)
            elif block.type == 'text' and block.text:
                self.text_parts.append(block.text)
            elif block.type == 'tool_use' and block.name:
                self.tool_uses.append(ToolUse(name=block.name, input=block.input))

    def to_response(self) -> ChatResponse:
        """Snapshot as an API response; an error result makes it a failure."""
        return ChatResponse(
            success=not self.is_error,
            thinking=tuple(self.thinking),
            response=self.response,
            tool_use=tuple(self.tool_uses),
            session_id=self.session_id,
            error=(self.result or 'Claude reported an error') if self.is_error else None,
        )


def parse_stream_output(output: str) -> StreamAccumulator:
    """Parse a complete buffered stream-json output."""
    accumulator = StreamAccumulator()
    for line in output.splitlines():
        accumulator.feed(line)
    if accumulator.skipped_lines:
        logger.debug(f'Skipped {accumulator.skipped_lines} non-event lines')
    return accumulator

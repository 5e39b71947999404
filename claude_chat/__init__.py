"""Browser chat front end for the Claude CLI with interactive tool approval."""

from __future__ import annotations

from claude_chat.error_boundary import ErrorBoundary, ErrorHandler

__all__ = [
    'ErrorBoundary',
    'ErrorHandler',
]

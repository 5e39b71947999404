"""Centralized file paths for the chat server and its permission hook.

Home-relative locations are functions, not constants, so they follow
``Path.home()`` at call time.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

__all__ = [
    'HOOK_LOG_PATH',
    'claude_dir',
    'global_settings_path',
    'project_settings_path',
    'settings_lock_path',
    'workspace_dir',
]

# Hook stdout is reserved for the decision JSON, so it logs here instead
HOOK_LOG_PATH = Path(tempfile.gettempdir()) / 'claude-chat-permission-hook.log'


def claude_dir() -> Path:
    return Path.home() / '.claude'


def workspace_dir() -> Path:
    """Directory for this tool's own state (locks)."""
    return Path.home() / '.claude-chat'


def global_settings_path() -> Path:
    """User-scope Claude settings: applies to every project."""
    return claude_dir() / 'settings.json'


def project_settings_path(cwd: Path) -> Path:
    """Project-scope shared Claude settings."""
    return cwd / '.claude' / 'settings.json'


def settings_lock_path() -> Path:
    return workspace_dir() / 'settings.lock'

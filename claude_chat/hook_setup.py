"""Detect and install the permission hook in Claude settings files.

The CLI only asks this server for approval if a ``PreToolUse`` hook runs our
hook command. Two scopes are supported:

  1. ``~/.claude/settings.json`` (global, every project)
  2. ``<cwd>/.claude/settings.json`` (this project only)

Installing merges one entry into the existing file and keeps everything else.
"""

from __future__ import annotations

import json
import logging
import math
import shlex
import shutil
import sys
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import filelock

from claude_chat.permissions import PERMISSION_TIMEOUT_SECONDS
from claude_chat.paths import global_settings_path, project_settings_path, settings_lock_path
from claude_chat.schemas.api import HookLocation, HookStatus

__all__ = [
    'HOOK_EVENT',
    'HOOK_MODULE',
    'HOOK_SCRIPT_NAME',
    'HOOK_TIMEOUT_SLACK_SECONDS',
    'HookConfigError',
    'configure_hook',
    'hook_command',
    'hook_status',
    'hook_timeout_seconds',
    'is_hook_configured',
]

logger = logging.getLogger(__name__)

HOOK_EVENT = 'PreToolUse'
HOOK_SCRIPT_NAME = 'claude-chat-permission-hook'
HOOK_MODULE = 'claude_chat.hook'

# CLI kills hooks after 60s unless told otherwise; must outlive the server's own wait
HOOK_TIMEOUT_SLACK_SECONDS = 10


class HookConfigError(Exception):
    """A settings file could not be read or updated."""


def hook_command() -> str:
    """Command line the CLI should run for the hook."""
    script = shutil.which(HOOK_SCRIPT_NAME)
    if script:
        return shlex.quote(script)
    return f'{shlex.quote(sys.executable)} -m {HOOK_MODULE}'


def hook_timeout_seconds(permission_timeout: float = PERMISSION_TIMEOUT_SECONDS) -> int:
    """CLI-side hook timeout for a server waiting ``permission_timeout`` seconds."""
    return math.ceil(permission_timeout) + HOOK_TIMEOUT_SLACK_SECONDS


def is_hook_configured(settings_path: Path) -> bool:
    try:
        settings = _load_settings(settings_path)
    except HookConfigError as e:
        logger.warning(f'Treating unreadable settings as unconfigured: {e}')
        return False
    return any(_is_hook_command(command) for command in _hook_commands(settings))


def hook_status(cwd: Path) -> HookStatus:
    global_path = global_settings_path()
    project_path = project_settings_path(cwd)
    global_configured = is_hook_configured(global_path)
    project_configured = is_hook_configured(project_path)
    return HookStatus(
        configured=global_configured or project_configured,
        global_configured=global_configured,
        project_configured=project_configured,
        hook_script_path=hook_command(),
        global_settings_path=str(global_path),
        project_settings_path=str(project_path),
        cwd=str(cwd),
    )


def configure_hook(
    location: HookLocation,
    cwd: Path,
    permission_timeout: float = PERMISSION_TIMEOUT_SECONDS,
) -> Path:
    """Add the hook to the chosen settings file. Idempotent.

    An existing entry is kept, but its timeout is raised if it is too short for
    a server waiting ``permission_timeout`` seconds.

    Returns:
        Path of the settings file.

    Raises:
        HookConfigError: If the existing file is malformed; it is left untouched.
    """
    path = global_settings_path() if location == 'global' else project_settings_path(cwd)
    lock_path = settings_lock_path()
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    timeout = hook_timeout_seconds(permission_timeout)

    with filelock.FileLock(lock_path):
        settings = _load_settings(path)
        existing = [hook for hook in _hook_entries(settings) if _is_hook_command(hook['command'])]
        if existing:
            stale = [hook for hook in existing if not _timeout_covers(hook.get('timeout'), timeout)]
            if not stale:
                logger.info(f'Permission hook already present in {path}')
                return path
            for hook in stale:
                hook['timeout'] = timeout
            _save_settings(path, settings)
            logger.info(f'Raised permission hook timeout to {timeout}s in {path}')
            return path

        hooks = settings.setdefault('hooks', {})
        if not isinstance(hooks, dict):
            raise HookConfigError(f'"hooks" in {path} is not an object')
        entries = hooks.setdefault(HOOK_EVENT, [])
        if not isinstance(entries, list):
            raise HookConfigError(f'"hooks.{HOOK_EVENT}" in {path} is not a list')

        entries.append(
            {
                'matcher': '',
                'hooks': [
                    {
                        'type': 'command',
                        'command': hook_command(),
                        'timeout': timeout,
                    }
                ],
            }
        )
        _save_settings(path, settings)

    logger.info(f'Installed permission hook in {path}')
    return path


def _load_settings(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        raise HookConfigError(f'Cannot read {path}: {e}') from e
    if not isinstance(data, dict):
        raise HookConfigError(f'{path} does not contain a JSON object')
    return data


def _save_settings(path: Path, settings: Mapping[str, Any]) -> None:
    """Write via temp file + rename so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix('.tmp')
    temp_path.write_text(json.dumps(settings, indent=2) + '\n')
    temp_path.rename(path)


def _hook_entries(settings: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
    """Command hooks under ``hooks.PreToolUse``, as mutable dicts."""
    hooks = settings.get('hooks')
    if not isinstance(hooks, dict):
        return
    for entry in hooks.get(HOOK_EVENT) or []:
        if not isinstance(entry, dict):
            continue
        for hook in entry.get('hooks') or []:
            if isinstance(hook, dict) and isinstance(hook.get('command'), str):
                yield hook


def _hook_commands(settings: Mapping[str, Any]) -> Iterator[str]:
    for hook in _hook_entries(settings):
        yield hook['command']


def _timeout_covers(current: object, required: int) -> bool:
    # bool is an int subclass
    if isinstance(current, bool) or not isinstance(current, int | float):
        return False
    return current >= required


def _is_hook_command(command: str) -> bool:
    # Match by name so a moved virtualenv still counts as configured
    return HOOK_SCRIPT_NAME in command or HOOK_MODULE in command

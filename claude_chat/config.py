"""Server configuration.

Values come from the environment, optionally overridden by command-line flags:

    CLAUDE_CWD                       working directory for the assistant (default: cwd)
    CLAUDE_CHAT_HOST                 bind address (default: 0.0.0.0)
    CLAUDE_CHAT_PORT                 bind port (default: 3000)
    CLAUDE_BIN                       assistant executable (default: claude)
    CLAUDE_CHAT_PERMISSION_TIMEOUT   seconds before a pending permission is denied (default: 300)
    CLAUDE_CHAT_DIST                 built web UI directory to serve (optional)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pydantic

from claude_chat.permissions import PERMISSION_TIMEOUT_SECONDS
from claude_chat.schemas.base import StrictModel

__all__ = [
    'DEFAULT_HOST',
    'DEFAULT_PORT',
    'ENV_VARS',
    'PERMISSION_TIMEOUT_ENV',
    'ChatConfig',
    'ConfigError',
    'load_config',
]

logger = logging.getLogger(__name__)

DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 3000

# field name -> environment variable
ENV_VARS: Mapping[str, str] = {
    'cwd': 'CLAUDE_CWD',
    'host': 'CLAUDE_CHAT_HOST',
    'port': 'CLAUDE_CHAT_PORT',
    'claude_bin': 'CLAUDE_BIN',
    'permission_timeout_seconds': 'CLAUDE_CHAT_PERMISSION_TIMEOUT',
    'dist_dir': 'CLAUDE_CHAT_DIST',
}

# Also exported to the assistant so the permission hook waits as long as the server
PERMISSION_TIMEOUT_ENV = ENV_VARS['permission_timeout_seconds']

_WILDCARD_HOSTS = frozenset({'0.0.0.0', '::', ''})


class ConfigError(Exception):
    """Configuration is invalid."""


class ChatConfig(StrictModel):
    """Runtime configuration, fixed for the life of the server."""

    cwd: Path
    host: str = DEFAULT_HOST
    port: int = pydantic.Field(default=DEFAULT_PORT, ge=0, le=65535)
    claude_bin: str = 'claude'
    permission_timeout_seconds: float = pydantic.Field(default=PERMISSION_TIMEOUT_SECONDS, gt=0)
    dist_dir: Path | None = None

    @property
    def server_url(self) -> str:
        """URL the permission hook should call back on."""
        host = '127.0.0.1' if self.host in _WILDCARD_HOSTS else self.host
        return f'http://{host}:{self.port}'


def load_config(environ: Mapping[str, str] | None = None, **overrides: Any) -> ChatConfig:
    """Build config from environment variables plus non-None keyword overrides.

    Raises:
        ConfigError: If any value fails validation.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {'cwd': Path.cwd()}
    for field, var in ENV_VARS.items():
        value = env.get(var)
        if value:
            data[field] = value
    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        # Environment values are strings; allow coercion here only
        config = ChatConfig.model_validate(data, strict=False)
    except pydantic.ValidationError as e:
        raise ConfigError(f'Invalid configuration: {e}') from e

    cwd = config.cwd.expanduser().resolve()
    if not cwd.is_dir():
        raise ConfigError(f'Working directory does not exist: {cwd}')
    config = config.model_copy(update={'cwd': cwd})
    logger.debug(f'Loaded config: {config!r}')
    return config

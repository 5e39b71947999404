"""Server entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from claude_chat.config import ConfigError, load_config
from claude_chat.error_boundary import ErrorBoundary
from claude_chat.server import ChatServer

__all__ = [
    'main',
]

logger = logging.getLogger(__name__)

boundary = ErrorBoundary()


@boundary.handler(ConfigError)
def _report_config_error(exc: ConfigError) -> None:
    logger.error(str(exc))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Web chat for the Claude CLI with browser tool approval')
    parser.add_argument('--host', help='Bind address (default: $CLAUDE_CHAT_HOST or 0.0.0.0)')
    parser.add_argument('--port', '-p', type=int, help='Bind port (default: $CLAUDE_CHAT_PORT or 3000)')
    parser.add_argument('--cwd', type=Path, help='Working directory for Claude (default: $CLAUDE_CWD or cwd)')
    parser.add_argument('--claude-bin', help='Claude executable (default: $CLAUDE_BIN or claude)')
    parser.add_argument('--dist', type=Path, dest='dist_dir', help='Built web UI directory to serve')
    return parser.parse_args(argv)


@boundary
def main(argv: list[str] | None = None) -> None:
    """Entry point for the claude-chat command."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    config = load_config(
        host=args.host,
        port=args.port,
        cwd=args.cwd,
        claude_bin=args.claude_bin,
        dist_dir=args.dist_dir,
    )
    asyncio.run(ChatServer(config).run())


if __name__ == '__main__':
    main()

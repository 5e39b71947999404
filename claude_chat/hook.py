"""PreToolUse hook that asks the chat server for a permission decision.

The CLI runs this once per tool call with the hook payload on stdin. The
payload is forwarded unchanged to ``/api/permission-request`` and the call
blocks until an operator decides (or the server times the request out). The
server's decision JSON is printed on stdout for the CLI to act on.

Fails closed: if the server is unreachable or answers with something that is
not a decision, the tool call is denied.

Environment:
    CLAUDE_CHAT_SERVER               base URL of the chat server (default: http://localhost:3000)
    CLAUDE_CHAT_PERMISSION_TIMEOUT   the server's permission timeout; the hook waits a little longer
"""

from __future__ import annotations

__all__ = [
    'CONNECT_FAILURE_REASON',
    'DEFAULT_SERVER_URL',
    'deny',
    'main',
    'request_decision',
    'request_timeout',
    'server_url',
]

import logging
import math
import os
import sys
from collections.abc import Mapping

import httpx
import pydantic

from claude_chat.assistant import SERVER_URL_ENV
from claude_chat.config import PERMISSION_TIMEOUT_ENV
from claude_chat.error_boundary import ErrorBoundary
from claude_chat.paths import HOOK_LOG_PATH
from claude_chat.permissions import PERMISSION_TIMEOUT_SECONDS
from claude_chat.schemas.hooks import PreToolUseDecision, PreToolUseHookOutput

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = 'http://localhost:3000'
# Added to the server's timeout; the server's own timeout decision must land first
CLIENT_SLACK_SECONDS = 5.0
CONNECT_FAILURE_REASON = 'Failed to connect to permission server'

boundary = ErrorBoundary(exit_code=0)


@boundary.handler(Exception)
def _deny_on_error(exc: Exception) -> None:
    logger.error(f'Permission hook failed: {exc}', exc_info=exc)
    emit(deny(f'Permission hook error: {exc}'))


def server_url(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return (env.get(SERVER_URL_ENV) or DEFAULT_SERVER_URL).rstrip('/')


def request_timeout(environ: Mapping[str, str] | None = None) -> float:
    """Client timeout: the server's permission timeout plus slack."""
    env = os.environ if environ is None else environ
    raw = env.get(PERMISSION_TIMEOUT_ENV)
    permission_timeout = PERMISSION_TIMEOUT_SECONDS
    if raw:
        try:
            value = float(raw)
        except ValueError:
            value = math.nan
        if math.isfinite(value) and value > 0:
            permission_timeout = value
        else:
            logger.warning(f'Ignoring invalid {PERMISSION_TIMEOUT_ENV}={raw!r}')
    return permission_timeout + CLIENT_SLACK_SECONDS


def deny(reason: str) -> PreToolUseHookOutput:
    return PreToolUseHookOutput(
        hook_specific_output=PreToolUseDecision(
            permission_decision='deny',
            permission_decision_reason=reason,
        )
    )


def emit(output: PreToolUseHookOutput) -> None:
    print(output.model_dump_json(by_alias=True, exclude_none=True))


def request_decision(
    payload: bytes,
    *,
    base_url: str,
    timeout: float = PERMISSION_TIMEOUT_SECONDS + CLIENT_SLACK_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> PreToolUseHookOutput:
    """POST the raw hook payload and return the server's decision.

    Never raises for server-side problems; those become deny decisions.
    """
    try:
        with httpx.Client(base_url=base_url, timeout=timeout, transport=transport) as client:
            response = client.post(
                '/api/permission-request',
                content=payload,
                headers={'Content-Type': 'application/json'},
            )
    except httpx.TransportError as e:
        logger.error(f'Permission server at {base_url} unreachable: {e!r}')
        return deny(CONNECT_FAILURE_REASON)

    if response.is_error:
        logger.error(f'Permission server returned HTTP {response.status_code}: {response.text[:500]}')
        return deny(f'Permission server returned HTTP {response.status_code}')

    try:
        output = PreToolUseHookOutput.model_validate_json(response.content)
    except pydantic.ValidationError as e:
        logger.error(f'Unexpected permission server reply: {e}')
        return deny('Invalid response from permission server')

    decision = output.hook_specific_output
    logger.info(f'Decision: {decision.permission_decision} ({decision.permission_decision_reason})')
    return output


@boundary
def main() -> None:
    logging.basicConfig(
        filename=HOOK_LOG_PATH,
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )
    payload = sys.stdin.buffer.read()
    emit(request_decision(payload, base_url=server_url(), timeout=request_timeout()))


if __name__ == '__main__':
    main()

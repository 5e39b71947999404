"""Runs the assistant CLI once per chat message."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence

from claude_chat.config import PERMISSION_TIMEOUT_ENV, ChatConfig
from claude_chat.processes import ProcessRegistry, ProcessRegistryError, RunningProcess, terminate_process
from claude_chat.schemas.api import ChatRequest, ChatResponse
from claude_chat.stream import StreamAccumulator

__all__ = [
    'SERVER_URL_ENV',
    'STREAM_LIMIT_BYTES',
    'AssistantLaunchError',
    'AssistantRunner',
]

logger = logging.getLogger(__name__)

# Read by the permission hook to find its way back to this server
SERVER_URL_ENV = 'CLAUDE_CHAT_SERVER'

# One stream-json line can hold a whole file read by a tool
STREAM_LIMIT_BYTES = 16 * 1024 * 1024


class AssistantLaunchError(Exception):
    """The assistant executable could not be started."""


class AssistantRunner:
    """Spawns the CLI, follows its event stream, and reports the outcome."""

    def __init__(self, config: ChatConfig, processes: ProcessRegistry) -> None:
        self._config = config
        self._processes = processes

    def build_command(self, request: ChatRequest) -> Sequence[str]:
        args = [
            self._config.claude_bin,
            '-p',
            request.message,
            '--permission-mode',
            request.permission_mode,
            '--output-format',
            'stream-json',
            '--verbose',
        ]
        if request.model:
            args += ['--model', request.model]
        # No --resume starts a new session (--continue would pick the latest one)
        if request.session_id:
            args += ['--resume', request.session_id]
        return args

    async def run(self, request: ChatRequest) -> ChatResponse:
        """Run one message to completion.

        Raises:
            AssistantLaunchError: If the executable cannot be started.
            ProcessRegistryError: If ``request.request_id`` is already running.
        """
        if request.request_id and self._processes.get(request.request_id) is not None:
            raise ProcessRegistryError(f'Request {request.request_id!r} is already running')

        command = self.build_command(request)
        env = os.environ.copy()
        env[SERVER_URL_ENV] = self._config.server_url
        env[PERMISSION_TIMEOUT_ENV] = str(self._config.permission_timeout_seconds)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self._config.cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT_BYTES,
            )
        except OSError as e:
            raise AssistantLaunchError(f'Failed to start {self._config.claude_bin}: {e}') from e

        logger.info(f'Started assistant pid={process.pid} request={request.request_id} session={request.session_id}')
        stream = StreamAccumulator()
        entry: RunningProcess | None = None
        if request.request_id:
            try:
                entry = self._processes.register(request.request_id, process, stream)
            except ProcessRegistryError:
                # Lost a race with a run started while this one was spawning
                terminate_process(process)
                await process.communicate()
                raise

        try:
            stdout, stderr = await _follow(process, stream)
            returncode = await process.wait()
        except BaseException:
            # Caller went away or the stream broke; don't leave the CLI running unattended
            terminate_process(process)
            raise
        finally:
            if request.request_id and entry is not None:
                self._processes.discard(request.request_id, entry)

        if entry is not None and entry.aborted:
            return ChatResponse(success=False, aborted=True, error='Request aborted')

        if returncode != 0:
            logger.error(f'Assistant failed with exit code {returncode}')
            logger.error(f'stderr: {stderr}')
            logger.error(f'stdout: {stdout[:2000]}')
            return ChatResponse(
                success=False,
                error=stderr or stdout or f'Claude command failed with exit code {returncode}',
                session_id=stream.session_id,
            )

        response = stream.to_response()
        if not response.success:
            logger.error(f'Assistant exited 0 but reported an error: {response.error}')
            return response
        logger.info(f'Assistant succeeded, response length: {len(response.response)}')
        if not response.response:
            logger.info(f'Empty response, raw output: {stdout[:500]}')
        return response

    def progress(self, request_id: str) -> ChatResponse | None:
        """Partial output of a run still in flight, or None if unknown."""
        entry = self._processes.get(request_id)
        if entry is None:
            return None
        return entry.stream.to_response()


async def _follow(process: asyncio.subprocess.Process, stream: StreamAccumulator) -> tuple[str, str]:
    """Feed stdout lines to ``stream`` while draining stderr. Returns both as text."""
    assert process.stdout is not None and process.stderr is not None
    stderr_task = asyncio.create_task(process.stderr.read())
    lines: list[str] = []
    try:
        async for raw in process.stdout:
            line = raw.decode(errors='replace')
            lines.append(line)
            stream.feed(line)
    except BaseException:
        stderr_task.cancel()
        raise
    stderr_bytes = await stderr_task
    return ''.join(lines).strip(), stderr_bytes.decode(errors='replace').strip()

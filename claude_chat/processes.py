"""Registry of in-flight assistant subprocesses, keyed by client request id."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging

from claude_chat.stream import StreamAccumulator

__all__ = [
    'ProcessRegistry',
    'ProcessRegistryError',
    'RunningProcess',
    'terminate_process',
]

logger = logging.getLogger(__name__)


class ProcessRegistryError(Exception):
    """Process registry operation failed."""


@dataclasses.dataclass(slots=True)
class RunningProcess:
    process: asyncio.subprocess.Process
    stream: StreamAccumulator
    aborted: bool = False


class ProcessRegistry:
    """Tracks running processes so a later request can abort them.

    Entries are added when a run starts and removed either by the run itself
    on completion or by ``abort()``. Only the event loop thread touches the map.
    """

    def __init__(self) -> None:
        self._running: dict[str, RunningProcess] = {}

    def register(
        self,
        request_id: str,
        process: asyncio.subprocess.Process,
        stream: StreamAccumulator,
    ) -> RunningProcess:
        if request_id in self._running:
            raise ProcessRegistryError(f'Request {request_id!r} is already running')
        entry = RunningProcess(process=process, stream=stream)
        self._running[request_id] = entry
        return entry

    def get(self, request_id: str) -> RunningProcess | None:
        return self._running.get(request_id)

    def discard(self, request_id: str, entry: RunningProcess) -> None:
        """Remove ``entry`` if it is still the one registered under ``request_id``."""
        if self._running.get(request_id) is entry:
            del self._running[request_id]

    def abort(self, request_id: str) -> bool:
        """Flag the run as aborted and terminate its process.

        Returns False if no run is registered under ``request_id``.
        """
        entry = self._running.pop(request_id, None)
        if entry is None:
            return False
        entry.aborted = True
        terminate_process(entry.process)
        logger.info(f'Aborted request {request_id} (pid {entry.process.pid})')
        return True

    def abort_all(self) -> None:
        """Abort every running process. Used at shutdown."""
        for request_id in list(self._running):
            self.abort(request_id)

    def __len__(self) -> int:
        return len(self._running)


def terminate_process(process: asyncio.subprocess.Process) -> None:
    """Send SIGTERM, tolerating a process that already exited."""
    # Already exited between lookup and signal
    with contextlib.suppress(ProcessLookupError):
        process.terminate()

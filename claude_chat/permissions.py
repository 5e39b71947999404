"""Permission broker: pairs a blocking hook call with a later human decision.

The hook script POSTs a tool-use payload and waits on the response. The
request is parked here as a pending entry until one of three things happens:

    1. An operator answers via ``submit_decision()`` (allow or deny)
    2. The per-request timer fires (deny, "Permission request timed out")
    3. The server shuts down via ``close()`` (deny)

Whichever pops the entry from the pending map first wins; later attempts find
nothing and are no-ops. Everything runs on one event loop, so the map needs
no lock: registration, resolution and timeout callbacks never interleave
mid-update.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
import uuid
from collections.abc import Sequence

from claude_chat.schemas.hooks import PermissionHookInput
from claude_chat.schemas.permissions import PermissionDecision, PermissionRequest

__all__ = [
    'BYPASS_MODE',
    'EDIT_TOOLS',
    'PERMISSION_TIMEOUT_SECONDS',
    'DuplicatePermissionRequestError',
    'PermissionBroker',
    'automatic_decision',
    'build_request',
]

logger = logging.getLogger(__name__)

PERMISSION_TIMEOUT_SECONDS = 300.0

BYPASS_MODE = 'bypassPermissions'
ACCEPT_EDITS_MODE = 'acceptEdits'
EDIT_TOOLS = frozenset({'Edit', 'MultiEdit', 'Write', 'NotebookEdit'})

APPROVED = PermissionDecision(allow=True, reason='User approved')
DENIED = PermissionDecision(allow=False, reason='User denied')
TIMED_OUT = PermissionDecision(allow=False, reason='Permission request timed out')
BYPASSED = PermissionDecision(allow=True, reason='Bypass permissions mode')
EDITS_ACCEPTED = PermissionDecision(allow=True, reason='Edits are auto-approved in acceptEdits mode')
SHUTTING_DOWN = PermissionDecision(allow=False, reason='Permission server shutting down')


class DuplicatePermissionRequestError(Exception):
    """A request with this id is already waiting for a decision."""


@dataclasses.dataclass(slots=True)
class _PendingEntry:
    request: PermissionRequest
    future: asyncio.Future[PermissionDecision]
    timer: asyncio.TimerHandle


def build_request(payload: PermissionHookInput) -> PermissionRequest:
    """Create a PermissionRequest from a hook payload, generating an id if absent."""
    return PermissionRequest(
        id=payload.tool_use_id or f'perm-{uuid.uuid4().hex[:12]}',
        session_id=payload.session_id,
        tool_name=payload.tool_name,
        tool_input=dict(payload.tool_input),
        timestamp=int(time.time() * 1000),
    )


def automatic_decision(permission_mode: str | None, tool_name: str) -> PermissionDecision | None:
    """Decision that needs no human, or None if the request must wait."""
    if permission_mode == BYPASS_MODE:
        return BYPASSED
    if permission_mode == ACCEPT_EDITS_MODE and tool_name in EDIT_TOOLS:
        return EDITS_ACCEPTED
    return None


class PermissionBroker:
    """In-memory rendezvous between hook calls and operator decisions.

    Construct one per server inside a running event loop's lifetime; the
    timers are scheduled on the loop that calls ``request_decision()``.
    """

    def __init__(self, timeout: float = PERMISSION_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout
        self._pending: dict[str, _PendingEntry] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    async def request_decision(
        self,
        request: PermissionRequest,
        permission_mode: str | None = None,
    ) -> PermissionDecision:
        """Wait for an operator decision on ``request``.

        Returns immediately when the permission mode decides on its own.
        Otherwise suspends until ``submit_decision()`` or the timeout.

        Raises:
            DuplicatePermissionRequestError: ``request.id`` is already pending.
        """
        decision = automatic_decision(permission_mode, request.tool_name)
        if decision is not None:
            logger.info(f'Auto-decided {request.tool_name} ({request.id}): {decision.reason}')
            return decision

        if request.id in self._pending:
            raise DuplicatePermissionRequestError(f'Permission request {request.id!r} is already pending')

        loop = asyncio.get_running_loop()
        future: asyncio.Future[PermissionDecision] = loop.create_future()
        timer = loop.call_later(self._timeout, self._expire, request.id)
        entry = _PendingEntry(request=request, future=future, timer=timer)
        self._pending[request.id] = entry
        logger.info(f'Waiting for decision on {request.tool_name} ({request.id}), session={request.session_id!r}')

        try:
            return await future
        finally:
            # Caller cancelled (connection dropped): drop our own entry, never a successor's
            if self._pending.get(request.id) is entry:
                del self._pending[request.id]
            timer.cancel()

    def submit_decision(self, request_id: str, allow: bool) -> bool:
        """Resolve a pending request. Returns False if it is unknown or already resolved."""
        resolved = self._resolve(request_id, APPROVED if allow else DENIED)
        if resolved:
            logger.info(f'Operator {"allowed" if allow else "denied"} {request_id}')
        else:
            logger.info(f'No pending permission request {request_id}')
        return resolved

    def list_pending(self) -> Sequence[PermissionRequest]:
        """Snapshot of outstanding requests, oldest first."""
        return tuple(entry.request for entry in self._pending.values())

    def close(self) -> None:
        """Deny everything still pending. Used at shutdown."""
        for request_id in list(self._pending):
            self._resolve(request_id, SHUTTING_DOWN)

    def _expire(self, request_id: str) -> None:
        if self._resolve(request_id, TIMED_OUT):
            logger.warning(f'Permission request {request_id} timed out after {self._timeout:g}s')

    def _resolve(self, request_id: str, decision: PermissionDecision) -> bool:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return False
        entry.timer.cancel()
        if entry.future.done():
            return False
        entry.future.set_result(decision)
        return True

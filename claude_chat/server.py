"""HTTP server: permission long-polling, chat runs and hook setup."""

from __future__ import annotations

import logging
import socket
import traceback
import typing
from pathlib import Path

import fastapi
import fastapi.responses
import fastapi.staticfiles
import uvicorn

from claude_chat import hook_setup
from claude_chat.assistant import AssistantLaunchError, AssistantRunner
from claude_chat.config import ChatConfig
from claude_chat.permissions import DuplicatePermissionRequestError, PermissionBroker, build_request
from claude_chat.processes import ProcessRegistry, ProcessRegistryError
from claude_chat.schemas.api import (
    AbortRequest,
    ActionResult,
    ChatRequest,
    ChatResponse,
    HookConfigureRequest,
    HookStatus,
    PendingPermissions,
    PermissionRespondRequest,
)
from claude_chat.schemas.hooks import PermissionHookInput, PreToolUseHookOutput

__all__ = [
    'ChatServer',
    'ServerState',
    'create_app',
]

logger = logging.getLogger(__name__)

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>Claude Chat Permissions</title>
    <style>
        body { font-family: system-ui, sans-serif; margin: 2rem; }
        .request { padding: 0.5rem; margin: 0.5rem 0; background: #f0f0f0; border-radius: 4px; }
        pre { white-space: pre-wrap; word-break: break-all; }
        button { margin-right: 0.5rem; }
    </style>
</head>
<body>
    <h1>Pending permission requests</h1>
    <div id="pending"></div>
    <script>
        async function respond(id, allow) {
            await fetch('/api/permission-respond', {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                body: JSON.stringify({id, allow}),
            });
            update();
        }
        function render(req) {
            const div = document.createElement('div');
            div.className = 'request';
            const title = document.createElement('strong');
            title.textContent = `${req.toolName} (session ${req.sessionId || 'unknown'})`;
            const input = document.createElement('pre');
            input.textContent = JSON.stringify(req.toolInput, null, 2);
            const allow = document.createElement('button');
            allow.textContent = 'Allow';
            allow.onclick = () => respond(req.id, true);
            const deny = document.createElement('button');
            deny.textContent = 'Deny';
            deny.onclick = () => respond(req.id, false);
            div.append(title, input, allow, deny);
            return div;
        }
        async function update() {
            const resp = await fetch('/api/permission-pending');
            const body = await resp.json();
            const el = document.getElementById('pending');
            if (body.pending.length === 0) {
                el.innerHTML = '<p>Nothing waiting for approval</p>';
            } else {
                el.replaceChildren(...body.pending.map(render));
            }
        }
        update();
        setInterval(update, 1000);
    </script>
</body>
</html>"""


class ServerState:
    """Everything the request handlers share. Created once at startup."""

    config: ChatConfig
    broker: PermissionBroker
    processes: ProcessRegistry
    runner: AssistantRunner

    @classmethod
    def create(cls, config: ChatConfig) -> typing.Self:
        state = cls()
        state.config = config
        state.broker = PermissionBroker(timeout=config.permission_timeout_seconds)
        state.processes = ProcessRegistry()
        state.runner = AssistantRunner(config, state.processes)
        return state

    def close(self) -> None:
        """Deny pending permissions and stop running assistants."""
        pending = len(self.broker.list_pending())
        running = len(self.processes)
        if pending or running:
            logger.info(f'Shutting down: denying {pending} permission request(s), aborting {running} run(s)')
        self.broker.close()
        self.processes.abort_all()


def get_state(request: fastapi.Request) -> ServerState:
    """Retrieve server state from app.state."""
    state: ServerState = request.app.state.chat
    return state


router = fastapi.APIRouter(prefix='/api')


# --- Permissions ---


@router.post('/permission-request')
async def permission_request(
    payload: PermissionHookInput,
    state: ServerState = fastapi.Depends(get_state),
) -> PreToolUseHookOutput:
    """Long-poll endpoint for the hook script. Blocks until a decision exists."""
    request = build_request(payload)
    try:
        decision = await state.broker.request_decision(request, payload.permission_mode)
    except DuplicatePermissionRequestError as e:
        raise fastapi.HTTPException(status_code=409, detail=str(e)) from e
    return decision.to_hook_output()


@router.get('/permission-pending')
async def permission_pending(state: ServerState = fastapi.Depends(get_state)) -> PendingPermissions:
    return PendingPermissions(pending=state.broker.list_pending())


@router.post('/permission-respond', response_model_exclude_none=True)
async def permission_respond(
    body: PermissionRespondRequest,
    state: ServerState = fastapi.Depends(get_state),
) -> ActionResult:
    if state.broker.submit_decision(body.id, body.allow):
        return ActionResult(success=True)
    return ActionResult(success=False, error='Permission request not found')


# --- Chat ---


@router.post('/chat', response_model_exclude_none=True)
async def chat(body: ChatRequest, state: ServerState = fastapi.Depends(get_state)) -> ChatResponse:
    logger.info(f'Chat request={body.request_id} session={body.session_id} mode={body.permission_mode}')
    try:
        return await state.runner.run(body)
    except (AssistantLaunchError, ProcessRegistryError) as e:
        logger.error(f'Chat request {body.request_id} failed: {e}')
        return ChatResponse(success=False, error=str(e))


@router.get('/chat/{request_id}/progress', response_model_exclude_none=True)
async def chat_progress(request_id: str, state: ServerState = fastapi.Depends(get_state)) -> ChatResponse:
    progress = state.runner.progress(request_id)
    if progress is None:
        return ChatResponse(success=False, error='No running request found')
    return progress


@router.post('/abort', response_model_exclude_none=True)
async def abort(body: AbortRequest, state: ServerState = fastapi.Depends(get_state)) -> ActionResult:
    if state.processes.abort(body.request_id):
        return ActionResult(success=True, message='Request aborted')
    return ActionResult(success=False, error='No running request found')


# --- Hook setup ---


@router.get('/hook-status')
def hook_status(state: ServerState = fastapi.Depends(get_state)) -> HookStatus:
    return hook_setup.hook_status(state.config.cwd)


@router.post('/hook-configure', response_model_exclude_none=True)
def hook_configure(body: HookConfigureRequest, state: ServerState = fastapi.Depends(get_state)) -> ActionResult:
    try:
        path = hook_setup.configure_hook(
            body.location, state.config.cwd, state.config.permission_timeout_seconds
        )
    except hook_setup.HookConfigError as e:
        logger.error(f'Hook configuration failed: {e}')
        return ActionResult(success=False, error=str(e))
    return ActionResult(success=True, message=f'Permission hook configured in {path}')


# --- App ---


def create_app(state: ServerState) -> fastapi.FastAPI:
    app = fastapi.FastAPI(title='Claude Chat')
    app.state.chat = state
    app.include_router(router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: fastapi.Request, exc: Exception) -> fastapi.responses.JSONResponse:
        """Return unhandled exceptions as JSON with the traceback."""
        tb_str = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        logger.error(f'Unhandled error on {request.method} {request.url.path}:\n{tb_str}')
        return fastapi.responses.JSONResponse(
            status_code=500,
            content={
                'success': False,
                'error': f'{type(exc).__name__}: {exc}',
                'detail': tb_str,
            },
        )

    dist_dir = state.config.dist_dir
    if dist_dir is not None and (dist_dir / 'index.html').is_file():
        _mount_dist(app, dist_dir.resolve())
    else:

        @app.get('/', response_class=fastapi.responses.HTMLResponse)
        def index() -> str:
            return INDEX_HTML

    return app


def _mount_dist(app: fastapi.FastAPI, dist_dir: Path) -> None:
    """Serve a built single-page UI, falling back to index.html for client routes."""
    assets = dist_dir / 'assets'
    if assets.is_dir():
        app.mount('/assets', fastapi.staticfiles.StaticFiles(directory=assets), name='assets')

    @app.get('/{path:path}', include_in_schema=False)
    def spa(path: str) -> fastapi.responses.FileResponse:
        if path.startswith('api/'):
            raise fastapi.HTTPException(status_code=404, detail='Not Found')
        candidate = (dist_dir / path).resolve()
        if path and candidate.is_file() and candidate.is_relative_to(dist_dir):
            return fastapi.responses.FileResponse(candidate)
        return fastapi.responses.FileResponse(dist_dir / 'index.html')


class _Server(uvicorn.Server):
    """Uvicorn server that releases blocked requests before draining connections."""

    def __init__(self, config: uvicorn.Config, state: ServerState) -> None:
        super().__init__(config)
        self._state = state

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        # Long-polling hooks would otherwise hold graceful shutdown for minutes
        self._state.close()
        await super().shutdown(sockets)


class ChatServer:
    """Chat server bound to the configured host and port."""

    def __init__(self, config: ChatConfig) -> None:
        self._config = config

    async def run(self) -> None:
        state = ServerState.create(self._config)
        uvicorn_config = uvicorn.Config(
            app=create_app(state),
            host=self._config.host,
            port=self._config.port,
            log_level='warning',
        )
        server = _Server(uvicorn_config, state)

        logger.info(f'Claude chat server running on http://localhost:{self._config.port}')
        network_url = _network_url(self._config.host, self._config.port)
        if network_url:
            logger.info(f'Network access: {network_url}')
        logger.info(f'Working directory: {self._config.cwd}')
        logger.info(f'Permission hook callback: {self._config.server_url}')

        try:
            await server.serve()
        finally:
            state.close()


def _network_url(host: str, port: int) -> str | None:
    """LAN URL when bound to all interfaces, else None."""
    if host not in ('0.0.0.0', '::'):
        return None
    try:
        address = socket.gethostbyname(socket.gethostname())
    except OSError as e:
        logger.debug(f'Could not resolve LAN address: {e}')
        return None
    if address.startswith('127.'):
        return None
    return f'http://{address}:{port}'

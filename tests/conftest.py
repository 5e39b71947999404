"""Shared fixtures: an isolated home directory and a fake ``claude`` executable."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

from claude_chat.config import ChatConfig

# Behaviour is picked by the prompt text:
#   "fail"  -> message on stderr, exit 2
#   "hang"  -> init event, then sleep until killed
#   "error" -> an error result, exit 0
#   other   -> a normal conversation whose reply is the JSON of what it was run with
FAKE_CLAUDE = """\
#!{python}
import json
import os
import sys
import time

args = sys.argv[1:]
message = args[args.index('-p') + 1]

def emit(**event):
    print(json.dumps(event), flush=True)

emit(type='system', subtype='init', session_id='sess-fake')
if message == 'fail':
    print('boom', file=sys.stderr)
    sys.exit(2)
if message == 'error':
    emit(type='result', subtype='error_during_execution', result='Credit balance too low', is_error=True)
    sys.exit(0)
if message == 'hang':
    emit(type='assistant', session_id='sess-fake', message={{'content': [{{'type': 'text', 'text': 'working'}}]}})
    time.sleep(60)
    sys.exit(0)

print('progress noise')
reply = json.dumps(
    {{
        'argv': args,
        'server': os.environ.get('CLAUDE_CHAT_SERVER'),
        'permission_timeout': os.environ.get('CLAUDE_CHAT_PERMISSION_TIMEOUT'),
        'cwd': os.getcwd(),
    }}
)
emit(type='assistant', session_id='sess-fake', message={{'content': [{{'type': 'thinking', 'thinking': 'hmm'}}]}})
emit(
    type='assistant',
    session_id='sess-fake',
    message={{'content': [{{'type': 'tool_use', 'name': 'Bash', 'input': {{'command': 'ls'}}}}]}},
)
emit(type='assistant', session_id='sess-fake', message={{'content': [{{'type': 'text', 'text': reply}}]}})
emit(type='result', subtype='success', result=reply, session_id='sess-fake', is_error=False)
"""


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect Path.home() so settings files land in tmp_path."""
    home_dir = tmp_path / 'home'
    home_dir.mkdir()
    monkeypatch.setattr(Path, 'home', staticmethod(lambda: home_dir))
    return home_dir


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / 'project'
    path.mkdir()
    return path


@pytest.fixture
def fake_claude(tmp_path: Path) -> Path:
    path = tmp_path / 'bin' / 'claude'
    path.parent.mkdir()
    path.write_text(FAKE_CLAUDE.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def config(project_dir: Path, fake_claude: Path) -> ChatConfig:
    return ChatConfig(
        cwd=project_dir,
        host='127.0.0.1',
        port=3999,
        claude_bin=str(fake_claude),
        permission_timeout_seconds=0.2,
    )

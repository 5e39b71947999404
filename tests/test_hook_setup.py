"""Tests for permission hook detection and installation."""

from __future__ import annotations

import json
import shlex
from pathlib import Path
from typing import Any

import pytest

from claude_chat import hook_setup
from claude_chat.hook_setup import HookConfigError, configure_hook, hook_status, is_hook_configured


@pytest.fixture
def fixed_command(monkeypatch: pytest.MonkeyPatch) -> str:
    command = '/opt/venv/bin/claude-chat-permission-hook'
    monkeypatch.setattr(hook_setup, 'hook_command', lambda: command)
    return command


def read_json(path: Path) -> Any:
    return json.loads(path.read_text())


class TestHookStatus:
    def test_nothing_configured(self, home: Path, project_dir: Path, fixed_command: str) -> None:
        status = hook_status(project_dir)

        assert not status.configured
        assert not status.global_configured
        assert not status.project_configured
        assert status.global_settings_path == str(home / '.claude' / 'settings.json')
        assert status.project_settings_path == str(project_dir / '.claude' / 'settings.json')
        assert status.cwd == str(project_dir)
        assert status.hook_script_path == fixed_command

    def test_camel_case_payload(self, home: Path, project_dir: Path) -> None:
        payload = hook_status(project_dir).model_dump(by_alias=True)
        assert set(payload) == {
            'success',
            'configured',
            'globalConfigured',
            'projectConfigured',
            'hookScriptPath',
            'globalSettingsPath',
            'projectSettingsPath',
            'cwd',
        }

    def test_detects_module_invocation(self, home: Path, project_dir: Path) -> None:
        settings = project_dir / '.claude' / 'settings.json'
        settings.parent.mkdir()
        settings.write_text(
            json.dumps(
                {
                    'hooks': {
                        'PreToolUse': [
                            {'matcher': 'Bash', 'hooks': [{'type': 'command', 'command': 'echo other'}]},
                            {'hooks': [{'type': 'command', 'command': '/usr/bin/python3 -m claude_chat.hook'}]},
                        ]
                    }
                }
            )
        )

        status = hook_status(project_dir)
        assert status.configured
        assert status.project_configured
        assert not status.global_configured

    def test_other_hooks_do_not_count(self, home: Path, project_dir: Path) -> None:
        settings = home / '.claude' / 'settings.json'
        settings.parent.mkdir()
        settings.write_text(
            json.dumps({'hooks': {'PostToolUse': [{'hooks': [{'command': 'claude-chat-permission-hook'}]}]}})
        )
        assert not is_hook_configured(settings)

    def test_malformed_settings_are_unconfigured(self, tmp_path: Path) -> None:
        settings = tmp_path / 'settings.json'
        settings.write_text('{not json')
        assert not is_hook_configured(settings)


class TestConfigureHook:
    def test_global_creates_file(self, home: Path, project_dir: Path, fixed_command: str) -> None:
        path = configure_hook('global', project_dir)

        assert path == home / '.claude' / 'settings.json'
        assert read_json(path) == {
            'hooks': {
                'PreToolUse': [
                    {
                        'matcher': '',
                        'hooks': [{'type': 'command', 'command': fixed_command, 'timeout': 310}],
                    }
                ]
            }
        }
        assert hook_status(project_dir).global_configured

    def test_project_preserves_existing_content(self, home: Path, project_dir: Path) -> None:
        settings = project_dir / '.claude' / 'settings.json'
        settings.parent.mkdir()
        existing_hook = {'matcher': 'Bash', 'hooks': [{'type': 'command', 'command': 'audit.sh'}]}
        settings.write_text(json.dumps({'model': 'opus', 'hooks': {'PreToolUse': [existing_hook]}}))

        configure_hook('project', project_dir)

        data = read_json(settings)
        assert data['model'] == 'opus'
        entries = data['hooks']['PreToolUse']
        assert entries[0] == existing_hook
        assert len(entries) == 2
        status = hook_status(project_dir)
        assert status.project_configured
        assert not status.global_configured

    def test_idempotent(self, home: Path, project_dir: Path) -> None:
        path = configure_hook('global', project_dir)
        first = path.read_text()

        configure_hook('global', project_dir)

        assert path.read_text() == first

    def test_timeout_follows_permission_timeout(self, home: Path, project_dir: Path, fixed_command: str) -> None:
        path = configure_hook('global', project_dir, permission_timeout=600)

        [hook] = read_json(path)['hooks']['PreToolUse'][0]['hooks']
        assert hook['timeout'] == 610

    def test_fractional_timeout_rounds_up(self) -> None:
        assert hook_setup.hook_timeout_seconds(0.5) == 11
        assert hook_setup.hook_timeout_seconds() == 310

    def test_raises_short_timeout_on_existing_entry(self, home: Path, project_dir: Path, fixed_command: str) -> None:
        path = configure_hook('global', project_dir)

        configure_hook('global', project_dir, permission_timeout=900)

        entries = read_json(path)['hooks']['PreToolUse']
        assert len(entries) == 1
        assert entries[0]['hooks'][0]['timeout'] == 910

    def test_adds_timeout_to_entry_without_one(self, home: Path, project_dir: Path) -> None:
        settings = project_dir / '.claude' / 'settings.json'
        settings.parent.mkdir()
        hook = {'type': 'command', 'command': 'claude-chat-permission-hook'}
        settings.write_text(json.dumps({'hooks': {'PreToolUse': [{'matcher': '', 'hooks': [hook]}]}}))

        configure_hook('project', project_dir)

        [entry] = read_json(settings)['hooks']['PreToolUse']
        assert entry['hooks'] == [{**hook, 'timeout': 310}]

    def test_keeps_longer_existing_timeout(self, home: Path, project_dir: Path, fixed_command: str) -> None:
        path = configure_hook('global', project_dir, permission_timeout=900)
        first = path.read_text()

        configure_hook('global', project_dir)

        assert path.read_text() == first

    def test_malformed_json_left_untouched(self, home: Path, project_dir: Path) -> None:
        settings = home / '.claude' / 'settings.json'
        settings.parent.mkdir()
        settings.write_text('{"hooks": ')

        with pytest.raises(HookConfigError):
            configure_hook('global', project_dir)

        assert settings.read_text() == '{"hooks": '

    def test_wrong_hooks_type_rejected(self, home: Path, project_dir: Path) -> None:
        settings = home / '.claude' / 'settings.json'
        settings.parent.mkdir()
        settings.write_text(json.dumps({'hooks': []}))

        with pytest.raises(HookConfigError):
            configure_hook('global', project_dir)

        assert read_json(settings) == {'hooks': []}


class TestHookCommand:
    def test_falls_back_to_module(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(hook_setup.shutil, 'which', lambda name: None)
        assert hook_setup.hook_command().endswith('-m claude_chat.hook')

    def test_prefers_console_script(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(hook_setup.shutil, 'which', lambda name: f'/bin/{name}')
        assert hook_setup.hook_command() == '/bin/claude-chat-permission-hook'

    def test_quotes_console_script_path_with_spaces(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(hook_setup.shutil, 'which', lambda name: f'/Users/Jane Doe/venv/bin/{name}')

        command = hook_setup.hook_command()

        assert shlex.split(command) == ['/Users/Jane Doe/venv/bin/claude-chat-permission-hook']

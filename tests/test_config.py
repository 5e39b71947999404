"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from claude_chat.config import ChatConfig, ConfigError, load_config


class TestLoadConfig:
    def test_defaults(self, project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(project_dir)

        config = load_config({})

        assert config.cwd == project_dir.resolve()
        assert config.host == '0.0.0.0'
        assert config.port == 3000
        assert config.claude_bin == 'claude'
        assert config.permission_timeout_seconds == 300.0
        assert config.dist_dir is None

    def test_environment(self, project_dir: Path, tmp_path: Path) -> None:
        config = load_config(
            {
                'CLAUDE_CWD': str(project_dir),
                'CLAUDE_CHAT_HOST': '127.0.0.1',
                'CLAUDE_CHAT_PORT': '4100',
                'CLAUDE_BIN': '/usr/local/bin/claude',
                'CLAUDE_CHAT_PERMISSION_TIMEOUT': '12.5',
                'CLAUDE_CHAT_DIST': str(tmp_path / 'dist'),
            }
        )

        assert config.cwd == project_dir.resolve()
        assert config.host == '127.0.0.1'
        assert config.port == 4100
        assert config.claude_bin == '/usr/local/bin/claude'
        assert config.permission_timeout_seconds == 12.5
        assert config.dist_dir == tmp_path / 'dist'

    def test_overrides_beat_environment(self, project_dir: Path) -> None:
        config = load_config({'CLAUDE_CHAT_PORT': '4100'}, port=5000, host=None, cwd=project_dir)
        assert config.port == 5000
        assert config.host == '0.0.0.0'

    def test_invalid_port(self, project_dir: Path) -> None:
        with pytest.raises(ConfigError):
            load_config({'CLAUDE_CHAT_PORT': 'http'}, cwd=project_dir)

    def test_port_out_of_range(self, project_dir: Path) -> None:
        with pytest.raises(ConfigError):
            load_config({}, port=70000, cwd=project_dir)

    def test_non_positive_timeout(self, project_dir: Path) -> None:
        with pytest.raises(ConfigError):
            load_config({'CLAUDE_CHAT_PERMISSION_TIMEOUT': '0'}, cwd=project_dir)

    def test_missing_cwd(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match='does not exist'):
            load_config({'CLAUDE_CWD': str(tmp_path / 'nope')})


class TestServerUrl:
    @pytest.mark.parametrize(
        'host, expected',
        [
            ('0.0.0.0', 'http://127.0.0.1:3000'),
            ('::', 'http://127.0.0.1:3000'),
            ('192.168.1.20', 'http://192.168.1.20:3000'),
        ],
    )
    def test_wildcard_hosts_map_to_loopback(self, project_dir: Path, host: str, expected: str) -> None:
        assert ChatConfig(cwd=project_dir, host=host).server_url == expected

    def test_config_is_frozen(self, project_dir: Path) -> None:
        config = ChatConfig(cwd=project_dir)
        with pytest.raises(pydantic.ValidationError):
            config.port = 1  # type: ignore[misc]

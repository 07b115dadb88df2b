"""Tests for steamcmd_interface.config."""

from __future__ import annotations

import json
import os

import pytest
from pydantic import ValidationError

from steamcmd_interface.config import RetryConfig, SteamCmdConfig

_ENV_VARS = (
    "STEAMCMD_BIN_DIR",
    "STEAMCMD_INSTALL_DIR",
    "STEAMCMD_USERNAME",
    "STEAMCMD_DEBUG_OUTPUT",
    "STEAMCMD_RETRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "steamcmd_interface.config.load_dotenv", lambda *a, **kw: False
    )


class TestDefaults:
    def test_defaults(self) -> None:
        config = SteamCmdConfig()
        assert config.username == "anonymous"
        assert config.debug_output is False
        assert config.scan_failure_markers is True
        assert config.retry.attempts == 1

    def test_paths_expand_home(self) -> None:
        config = SteamCmdConfig()
        assert not config.bin_path.startswith("~")
        assert os.path.isabs(config.install_path)

    def test_retry_validation(self) -> None:
        with pytest.raises(ValidationError):
            RetryConfig(attempts=0)
        with pytest.raises(ValidationError):
            RetryConfig(delay=-1)


class TestLoad:
    def test_missing_file_uses_defaults(self, tmp_path) -> None:
        config = SteamCmdConfig.load(str(tmp_path / "nope.json"))
        assert config == SteamCmdConfig()

    def test_file(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "install_dir": "/srv/apps",
                    "username": "bob",
                    "retry": {"attempts": 3, "delay": 0.5},
                }
            )
        )
        config = SteamCmdConfig.load(str(path))
        assert config.install_path == "/srv/apps"
        assert config.username == "bob"
        assert config.retry == RetryConfig(attempts=3, delay=0.5)

    def test_env_overrides_file(self, tmp_path, monkeypatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"username": "bob", "retry": {"delay": 1.0}}))
        monkeypatch.setenv("STEAMCMD_USERNAME", "alice")
        monkeypatch.setenv("STEAMCMD_INSTALL_DIR", "/data/steam")
        monkeypatch.setenv("STEAMCMD_BIN_DIR", "/opt/steamcmd")
        monkeypatch.setenv("STEAMCMD_DEBUG_OUTPUT", "true")
        monkeypatch.setenv("STEAMCMD_RETRIES", "4")

        config = SteamCmdConfig.load(str(path))
        assert config.username == "alice"
        assert config.install_dir == "/data/steam"
        assert config.bin_dir == "/opt/steamcmd"
        assert config.debug_output is True
        assert config.retry == RetryConfig(attempts=4, delay=1.0)

    def test_debug_output_falsy(self, monkeypatch) -> None:
        monkeypatch.setenv("STEAMCMD_DEBUG_OUTPUT", "0")
        assert SteamCmdConfig.load().debug_output is False

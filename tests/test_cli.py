"""Tests for the steamcmd-interface CLI."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from steamcmd_interface import cli
from steamcmd_interface.errors import SetupError, SteamCmdError
from steamcmd_interface.interpreter import UpdateProgress


class FakeSteamCmd:
    """Records calls; behaviour is set per test through class attributes."""

    init_error: Exception | None = None
    run_lines: list[str] = []
    run_error: Exception | None = None
    progress: list[UpdateProgress] = []
    calls: list[tuple] = []

    exe_path = "/opt/steamcmd/steamcmd.sh"

    @classmethod
    async def init(cls, config=None, **kwargs):
        cls.calls.append(("init", config))
        if cls.init_error is not None:
            raise cls.init_error
        return cls()

    async def run(self, commands, *, skip_auto_login=False):
        self.calls.append(("run", list(commands), skip_auto_login))
        for line in self.run_lines:
            yield line
        if self.run_error is not None:
            raise self.run_error

    async def login(self, username, password=None, steam_guard_code=None):
        self.calls.append(("login", username, password, steam_guard_code))

    def update_app(self, app_id, **options):
        self.calls.append(("update_app", app_id, options))
        return self._progress()

    async def _progress(self):
        for event in self.progress:
            yield event


@pytest.fixture(autouse=True)
def fake_steamcmd(monkeypatch):
    monkeypatch.setattr(FakeSteamCmd, "init_error", None)
    monkeypatch.setattr(FakeSteamCmd, "run_lines", [])
    monkeypatch.setattr(FakeSteamCmd, "run_error", None)
    monkeypatch.setattr(FakeSteamCmd, "progress", [])
    monkeypatch.setattr(FakeSteamCmd, "calls", [])
    monkeypatch.setattr(cli, "SteamCmd", FakeSteamCmd)
    monkeypatch.setattr(
        "steamcmd_interface.config.load_dotenv", lambda *a, **kw: False
    )
    return FakeSteamCmd


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestRunCommand:
    def test_prints_lines(self, runner, fake_steamcmd) -> None:
        fake_steamcmd.run_lines = ["Loading Steam API...OK", "Waiting for user info...OK"]
        result = runner.invoke(cli.app, ["run", "app_status 740", "--no-login"])
        assert result.exit_code == 0
        assert "Loading Steam API...OK" in result.output
        assert ("run", ["app_status 740"], True) in fake_steamcmd.calls

    def test_steamcmd_error_becomes_exit_code(self, runner, fake_steamcmd) -> None:
        fake_steamcmd.run_error = SteamCmdError(5, output_tail=["FAILED"])
        result = runner.invoke(cli.app, ["run", "login x"])
        assert result.exit_code == 5

    def test_killed_exits_with_one(self, runner, fake_steamcmd) -> None:
        fake_steamcmd.run_error = SteamCmdError(None)
        result = runner.invoke(cli.app, ["run", "quit"])
        assert result.exit_code == 1


class TestDownloadCommand:
    def test_success(self, runner) -> None:
        result = runner.invoke(cli.app, ["download"])
        assert result.exit_code == 0

    def test_setup_error(self, runner, fake_steamcmd) -> None:
        fake_steamcmd.init_error = SetupError('Platform "aix" is not supported')
        result = runner.invoke(cli.app, ["download"])
        assert result.exit_code == 1


class TestLoginCommand:
    def test_login(self, runner, fake_steamcmd) -> None:
        result = runner.invoke(
            cli.app, ["login", "alice", "--password", "pw", "--guard-code", "X1"]
        )
        assert result.exit_code == 0
        assert ("login", "alice", "pw", "X1") in fake_steamcmd.calls


class TestUpdateCommand:
    def test_update_passes_options(self, runner, fake_steamcmd, tmp_path) -> None:
        fake_steamcmd.progress = [
            UpdateProgress("0x61", "downloading", 50.0, 1, 2),
        ]
        result = runner.invoke(
            cli.app,
            [
                "update",
                "740",
                "--install-dir",
                str(tmp_path),
                "--validate",
                "--platform",
                "linux",
                "--bitness",
                "64",
            ],
        )
        assert result.exit_code == 0
        (_, config) = fake_steamcmd.calls[0]
        assert config.install_dir == str(tmp_path)
        update = next(c for c in fake_steamcmd.calls if c[0] == "update_app")
        assert update[1] == 740
        assert update[2]["validate"] is True
        assert update[2]["platform_type"] == "linux"
        assert update[2]["platform_bitness"] == 64

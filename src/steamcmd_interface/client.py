"""SteamCmd: the public entry point.

Downloads the SteamCMD binary for this platform, logs in, and installs or
updates apps, reporting progress as typed events::

    steamcmd = await SteamCmd.init(SteamCmdConfig(install_dir="/srv/apps"))
    async for progress in steamcmd.update_app(740):
        print(progress.state, progress.progress_percent)

The command list is at
https://github.com/dgibbs64/SteamCMD-Commands-List/blob/master/steamcmd_commands.txt
"""

from __future__ import annotations

import atexit
import logging
import os
from collections.abc import AsyncIterator, Sequence
from typing import Literal

import httpx

from steamcmd_interface.config import SteamCmdConfig
from steamcmd_interface.download import (
    PlatformBinary,
    download_steamcmd,
    platform_binary,
)
from steamcmd_interface.errors import SteamCmdError
from steamcmd_interface.interpreter import UpdateProgress, parse_progress
from steamcmd_interface.pty.session import PtyProcess
from steamcmd_interface.runner import SessionFactory, SessionRunner

logger = logging.getLogger(__name__)

PlatformType = Literal["windows", "macos", "linux"]

_PLATFORM_TYPES = ("windows", "macos", "linux")
_PLATFORM_BITNESS = (32, 64)

# Only SteamCmd.init may construct instances.
_INIT_TOKEN = object()


class SteamCmd:
    """Drives one local copy of SteamCMD.

    Do not construct directly; use ``await SteamCmd.init(...)``, which
    downloads the binary and checks that it runs before returning.
    """

    def __init__(
        self,
        config: SteamCmdConfig,
        binary: PlatformBinary,
        *,
        session_factory: SessionFactory | None = None,
        _token: object = None,
    ) -> None:
        if _token is not _INIT_TOKEN:
            raise TypeError(
                "SteamCmd may not be constructed directly. "
                "Use `await SteamCmd.init()` instead."
            )
        self._config = config
        self._binary = binary
        self._runner = SessionRunner(
            self.exe_path,
            username=config.username,
            cwd=config.bin_path,
            debug_output=config.debug_output,
            scan_failure_markers=config.scan_failure_markers,
            session_factory=session_factory,
        )
        # Don't leave SteamCMD running if the interpreter exits.
        atexit.register(self.cleanup)

    @classmethod
    async def init(
        cls,
        config: SteamCmdConfig | None = None,
        *,
        platform: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        session_factory: SessionFactory | None = None,
    ) -> SteamCmd:
        """Create a ready-to-use instance.

        Resolves the platform's binary, downloads it if needed, then runs an
        empty script (no login) to make sure the executable works.

        Raises:
            SetupError: Unsupported platform, or the binary could not be
                downloaded or made executable.
            SteamCmdError: The test run failed.
        """
        config = config or SteamCmdConfig()
        binary = platform_binary(platform)
        steamcmd = cls(
            config, binary, session_factory=session_factory, _token=_INIT_TOKEN
        )
        await download_steamcmd(config.bin_path, binary, client=http_client)
        async for _ in steamcmd.run([], skip_auto_login=True):
            pass
        return steamcmd

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def exe_path(self) -> str:
        return os.path.join(self._config.bin_path, self._binary.exe_name)

    @property
    def install_dir(self) -> str:
        return self._config.install_path

    @property
    def username(self) -> str:
        return self._runner.username

    @property
    def current_process(self) -> PtyProcess | None:
        """The running SteamCMD process, e.g. to kill it. ``None`` if idle."""
        return self._runner.current_process

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def run(
        self, commands: Sequence[str], *, skip_auto_login: bool = False
    ) -> AsyncIterator[str]:
        """Run raw SteamCMD commands; see :meth:`SessionRunner.run`."""
        return self._runner.run(commands, skip_auto_login=skip_auto_login)

    def cleanup(self) -> None:
        """Kill any SteamCMD process this instance started."""
        self._runner.kill()

    async def login(
        self,
        username: str,
        password: str | None = None,
        steam_guard_code: str | None = None,
    ) -> None:
        """Log in and remember ``username`` for later sessions.

        The password and Steam Guard code may be omitted for anonymous
        login or when SteamCMD has cached the account's credentials.

        Raises:
            SteamCmdError: The login failed (INVALID_PASSWORD,
                STEAM_GUARD_REQUIRED, ...).
        """
        parts = ["login", f'"{username}"']
        if password:
            parts.append(f'"{password}"')
        if steam_guard_code:
            parts.append(f'"{steam_guard_code}"')

        async for _ in self.run([" ".join(parts)], skip_auto_login=True):
            pass
        self._runner.username = username
        logger.info("Logged in as %s", username)

    async def is_logged_in(self) -> bool:
        """Whether the stored user can log in without a password."""
        try:
            await self.login(self.username)
        except SteamCmdError as e:
            logger.debug("Login check for %s failed: %s", self.username, e)
            return False
        return True

    def update_app(
        self,
        app_id: int,
        *,
        platform_type: PlatformType | None = None,
        platform_bitness: int | None = None,
        validate: bool = False,
        language: str | None = None,
        beta_name: str | None = None,
        beta_password: str | None = None,
    ) -> AsyncIterator[UpdateProgress]:
        """Install or update an app, yielding progress as it goes.

        A partially downloaded app in the install directory is resumed.

        Raises:
            ValueError: Immediately, if the install directory is relative;
                SteamCMD does not support relative install directories.
            SteamCmdError: During iteration, if the update failed.
        """
        if not os.path.isabs(self.install_dir):
            raise ValueError("install_dir must be an absolute path to update an app")

        update = [f"app_update {app_id}"]
        if validate:
            update.append("-validate")
        if language:
            update.append(f"-language {language}")
        if beta_name:
            update.append(f"-beta {beta_name}")
        if beta_password:
            update.append(f"-betapassword {beta_password}")

        commands: list[str] = []
        if platform_type in _PLATFORM_TYPES:
            commands.append(f"@sSteamCmdForcePlatformType {platform_type}")
        if platform_bitness in _PLATFORM_BITNESS:
            commands.append(f"@sSteamCmdForcePlatformBitness {platform_bitness}")
        commands.append(f'force_install_dir "{self.install_dir}"')
        commands.append(" ".join(update))

        return self._update_progress(commands)

    async def _update_progress(
        self, commands: list[str]
    ) -> AsyncIterator[UpdateProgress]:
        os.makedirs(self.install_dir, exist_ok=True)
        async for line in self.run(commands):
            progress = parse_progress(line)
            if progress is not None:
                yield progress

"""SessionRunner: one scripted SteamCMD invocation per ``run()`` call.

Commands are written to a temporary script and executed with
``steamcmd +runscript <file>`` inside a PTY. Output comes back as an async
sequence of cleaned lines; the exit code is checked once the sequence ends.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections import deque
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager, suppress

import aiofiles
import aiofiles.os

from steamcmd_interface.errors import SUCCESS_CODES, ExitCode, SteamCmdError
from steamcmd_interface.interpreter import FailureMarkerTracker
from steamcmd_interface.pty.lines import exit_outcome, iter_lines
from steamcmd_interface.pty.session import PtyProcess, PTYSession, PTYStatus

logger = logging.getLogger(__name__)

# Quit as soon as a command fails, and never block on a password prompt
# (there is nobody on the other end of the PTY to answer it).
SAFETY_DIRECTIVES: tuple[str, ...] = (
    "@ShutdownOnFailedCommand 1",
    "@NoPromptForPassword 1",
)
QUIT_COMMAND = "quit"

_KNOWN_CODES = frozenset(int(code) for code in ExitCode)

SessionFactory = Callable[[list[str], str | None, dict[str, str]], PtyProcess]


def _default_session_factory(
    command: list[str], cwd: str | None, env: dict[str, str]
) -> PtyProcess:
    return PTYSession(command=command, cwd=cwd, env=env)


def build_script(
    commands: Sequence[str],
    username: str,
    skip_auto_login: bool = False,
) -> list[str]:
    """Compose the full script: directives, login, commands, quit.

    Callers may override a safety directive by repeating it in ``commands``;
    SteamCMD applies the last occurrence.
    """
    script = list(SAFETY_DIRECTIVES)
    if not skip_auto_login:
        script.append(f'login "{username}"')
    script.extend(commands)
    script.append(QUIT_COMMAND)
    return script


@asynccontextmanager
async def script_file(lines: Sequence[str]) -> AsyncIterator[str]:
    """Write ``lines`` to a fresh temp file; remove it on exit, always."""
    fd, path = tempfile.mkstemp(prefix="steamcmd-", suffix=".txt")
    os.close(fd)
    try:
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write("\n".join(lines) + "\n")
        yield path
    finally:
        with suppress(FileNotFoundError):
            await aiofiles.os.remove(path)


class SessionRunner:
    """Runs command scripts through the SteamCMD executable.

    Every live process is tracked by session id until its exit code has been
    observed, so concurrent runs on one runner don't clobber each other and
    :meth:`kill` can reach all of them.
    """

    def __init__(
        self,
        exe_path: str,
        *,
        username: str = "anonymous",
        cwd: str | None = None,
        debug_output: bool = False,
        scan_failure_markers: bool = True,
        session_factory: SessionFactory | None = None,
        tail_lines: int = 10,
    ) -> None:
        self.exe_path = exe_path
        self.username = username
        self.cwd = cwd
        self.debug_output = debug_output
        self.scan_failure_markers = scan_failure_markers
        self._session_factory = session_factory or _default_session_factory
        self._tail_lines = tail_lines
        self._live: dict[str, PtyProcess] = {}

    @property
    def current_process(self) -> PtyProcess | None:
        """The most recently spawned process still running, if any."""
        if not self._live:
            return None
        return next(reversed(self._live.values()))

    @property
    def live_sessions(self) -> list[PtyProcess]:
        return list(self._live.values())

    def kill(self, session_id: str | None = None) -> None:
        """Forcefully terminate one live session, or all of them.

        The affected ``run()`` calls fail with a PROCESS_KILLED error.
        """
        if session_id is not None:
            targets = [self._live[session_id]] if session_id in self._live else []
        else:
            targets = list(self._live.values())
        for session in targets:
            session.kill()

    async def run(
        self,
        commands: Sequence[str],
        *,
        skip_auto_login: bool = False,
    ) -> AsyncIterator[str]:
        """Run ``commands`` and yield each line of SteamCMD output.

        Nothing is spawned until the first line is requested. Stopping
        iteration early kills the process; the script file is removed on
        every path.

        Raises:
            SpawnError: The executable could not be started.
            SteamCmdError: SteamCMD exited with a failing code, or was killed.
        """
        script = build_script(commands, self.username, skip_auto_login)
        level = logging.INFO if self.debug_output else logging.DEBUG

        async with script_file(script) as path:
            session = self._session_factory(
                [self.exe_path, "+runscript", path], self.cwd, {}
            )
            self._live[session.id] = session
            tracker = FailureMarkerTracker()
            tail: deque[str] = deque(maxlen=self._tail_lines)
            try:
                await session.start()
                exit_future = exit_outcome(session)
                async for line in iter_lines(session):
                    logger.log(level, "[%s] %s", session.id, line)
                    tracker.feed(line)
                    tail.append(line)
                    yield line
                exit_code = await exit_future
            finally:
                self._live.pop(session.id, None)
                if session.status is PTYStatus.RUNNING:
                    logger.debug("Output abandoned, killing session %s", session.id)
                    session.kill()

            self._check_exit(exit_code, tracker.code, list(tail))

    def _check_exit(
        self, exit_code: int | None, marker_code: int | None, tail: list[str]
    ) -> None:
        if exit_code in SUCCESS_CODES:
            return

        code = exit_code
        ambiguous = exit_code is not None and (
            exit_code == ExitCode.UNKNOWN_ERROR
            or exit_code not in _KNOWN_CODES
        )
        if (
            ambiguous
            and self.scan_failure_markers
            and marker_code is not None
            and marker_code not in SUCCESS_CODES
        ):
            logger.debug(
                "Exit code %s is ambiguous, using failure marker %s",
                exit_code,
                marker_code,
            )
            code = marker_code

        raise SteamCmdError(code, output_tail=tail)

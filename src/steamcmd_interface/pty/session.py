"""PTY session: SteamCMD running inside a pseudo-terminal.

SteamCMD behaves differently (and can hang on prompts) when its stdio is a
plain pipe, so it always runs attached to a PTY. Consumers see the process
through the small event interface in :class:`PtyProcess`: subscribe to
output chunks and to the exit event, write input, kill.
"""

from __future__ import annotations

import asyncio
import codecs
import enum
import logging
import os
import signal
import subprocess
import sys
import uuid
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import NoReturn, Protocol, runtime_checkable

from steamcmd_interface.errors import SpawnError

logger = logging.getLogger(__name__)

DataHandler = Callable[[str], None]
ExitHandler = Callable[[int | None], None]


class PTYStatus(enum.Enum):
    """Lifecycle states for a PTY session."""

    PENDING = "pending"
    RUNNING = "running"
    KILLING = "killing"  # Kill requested, waiting for the exit event
    KILLED = "killed"
    EXITED = "exited"
    FAILED = "failed"  # Never started


@dataclass
class Disposable:
    """Handle returned by event subscriptions. ``dispose()`` unsubscribes."""

    _dispose: Callable[[], None]
    _disposed: bool = field(default=False, init=False)

    def dispose(self) -> None:
        if not self._disposed:
            self._disposed = True
            self._dispose()


@runtime_checkable
class PtyProcess(Protocol):
    """What the line bridge and runner need from a terminal process."""

    id: str

    @property
    def status(self) -> PTYStatus: ...

    @property
    def exit_code(self) -> int | None: ...

    @property
    def spawn_error(self) -> BaseException | None: ...

    async def start(self) -> None: ...

    def on_data(self, handler: DataHandler) -> Disposable: ...

    def on_exit(self, handler: ExitHandler) -> Disposable: ...

    def write(self, data: str) -> None: ...

    def kill(self) -> None: ...


class PtyEventSource:
    """Data/exit listener lists with disposable subscriptions."""

    def __init__(self) -> None:
        self._data_handlers: list[DataHandler] = []
        self._exit_handlers: list[ExitHandler] = []

    def on_data(self, handler: DataHandler) -> Disposable:
        self._data_handlers.append(handler)
        return Disposable(lambda: _discard(self._data_handlers, handler))

    def on_exit(self, handler: ExitHandler) -> Disposable:
        self._exit_handlers.append(handler)
        return Disposable(lambda: _discard(self._exit_handlers, handler))

    def _emit_data(self, chunk: str) -> None:
        for handler in list(self._data_handlers):
            try:
                handler(chunk)
            except Exception:
                logger.exception("Error in data handler")

    def _emit_exit(self, exit_code: int | None) -> None:
        for handler in list(self._exit_handlers):
            try:
                handler(exit_code)
            except Exception:
                logger.exception("Error in exit handler")


def _discard(handlers: list, handler: Callable) -> None:
    with suppress(ValueError):
        handlers.remove(handler)


class PTYSession(PtyEventSource):
    """A process attached to a fresh pseudo-terminal.

    - Process group isolation (start_new_session) so kill() takes the whole
      tree down
    - A reader task that decodes output incrementally and emits chunks
    - Exactly one exit event, fired after the last chunk; the exit code is
      ``None`` when the process was killed through :meth:`kill`

    Uses subprocess.Popen (not os.fork) to avoid deadlocks when
    spawned from within an asyncio event loop on macOS.
    """

    def __init__(
        self,
        command: list[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        read_size: int = 4096,
    ) -> None:
        super().__init__()
        self.id: str = uuid.uuid4().hex[:8]
        self.command = list(command)
        self.cwd = cwd
        self.env = dict(env or {})
        self._read_size = read_size
        self._master_fd: int = -1
        self._proc: subprocess.Popen | None = None
        self._pgid: int = 0
        self._reader_task: asyncio.Task | None = None
        self._status = PTYStatus.PENDING
        self._exit_code: int | None = None
        self._spawn_error: BaseException | None = None

    @property
    def status(self) -> PTYStatus:
        return self._status

    @property
    def alive(self) -> bool:
        return self._status in (PTYStatus.RUNNING, PTYStatus.KILLING)

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def spawn_error(self) -> BaseException | None:
        return self._spawn_error

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    async def start(self) -> None:
        """Spawn the process in a new PTY with its own process group.

        Raises:
            SpawnError: If the PTY could not be allocated or the executable
                could not be started.
        """
        if self._status is not PTYStatus.PENDING:
            raise RuntimeError(f"PTY session {self.id} was already started")
        if sys.platform == "win32":
            self._fail(SpawnError("PTY sessions require a POSIX platform"))

        import pty

        env = {**os.environ, **self.env}
        env["TERM"] = "dumb"  # Minimize ANSI escape sequences

        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            self._fail(SpawnError(f"Could not allocate a PTY: {e}"), e)

        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
                env=env,
                cwd=self.cwd,
            )
        except OSError as e:
            os.close(master_fd)
            self._fail(SpawnError(f"Could not start {self.command[0]}: {e}"), e)
        finally:
            # Parent always closes slave fd
            os.close(slave_fd)

        self._master_fd = master_fd
        self._pgid = os.getpgid(self._proc.pid)
        self._status = PTYStatus.RUNNING
        self._reader_task = asyncio.create_task(self._read_loop())

        logger.info(
            "PTY session %s started: pid=%d cmd=%s",
            self.id,
            self._proc.pid,
            " ".join(self.command),
        )

    def _fail(
        self, error: SpawnError, cause: BaseException | None = None
    ) -> NoReturn:
        self._status = PTYStatus.FAILED
        error.__cause__ = cause
        self._spawn_error = error
        raise error

    async def _read_loop(self) -> None:
        """Read the master fd until EOF, then reap and fire the exit event."""
        loop = asyncio.get_running_loop()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                try:
                    data = await loop.run_in_executor(
                        None, os.read, self._master_fd, self._read_size
                    )
                except OSError:
                    # EIO: every slave handle is closed, the process is gone
                    break
                if not data:
                    break
                text = decoder.decode(data)
                if text:
                    self._emit_data(text)

            tail = decoder.decode(b"", final=True)
            if tail:
                self._emit_data(tail)

            returncode = await loop.run_in_executor(None, self._proc.wait)
        finally:
            with suppress(OSError):
                os.close(self._master_fd)
            self._master_fd = -1

        if self._status is PTYStatus.KILLING:
            self._status = PTYStatus.KILLED
            self._exit_code = None
        else:
            self._status = PTYStatus.EXITED
            self._exit_code = returncode
        logger.info(
            "PTY session %s %s (code=%s)",
            self.id,
            self._status.value,
            self._exit_code,
        )
        self._emit_exit(self._exit_code)

    def write(self, data: str) -> None:
        """Send input to the process."""
        if self._status is not PTYStatus.RUNNING:
            raise RuntimeError(f"PTY session {self.id} is not running")
        os.write(self._master_fd, data.encode())

    def kill(self) -> None:
        """Kill the entire process tree.

        The exit event still fires from the reader task, with a ``None``
        exit code.
        """
        if self._status is not PTYStatus.RUNNING:
            return
        if self._proc is not None and self._proc.poll() is not None:
            # Already exited; the reader reports the real exit code.
            return

        self._status = PTYStatus.KILLING
        try:
            os.killpg(self._pgid, signal.SIGKILL)
            logger.info("Killed PTY session %s (pgid=%d)", self.id, self._pgid)
        except ProcessLookupError:
            logger.debug("Process group already gone: %d", self._pgid)

    async def wait_closed(self) -> None:
        """Wait until the exit event has been dispatched."""
        if self._reader_task is not None:
            await asyncio.shield(self._reader_task)

"""Shared fixtures: a scripted stand-in for a PTY session."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from steamcmd_interface.errors import SpawnError
from steamcmd_interface.pty.session import PtyEventSource, PTYStatus


class FakeSession(PtyEventSource):
    """Plays back canned output chunks, then exits with a fixed code.

    With ``manual=True`` nothing is played back; the test drives the
    session with :meth:`emit` and :meth:`finish`. With ``hang=True`` the
    session keeps running after its output until killed.
    """

    _counter = 0

    def __init__(
        self,
        command: list[str] | None = None,
        chunks: list[str] | None = None,
        exit_code: int | None = 0,
        fail_spawn: bool = False,
        hang: bool = False,
        manual: bool = False,
    ) -> None:
        super().__init__()
        FakeSession._counter += 1
        self.id = f"fake{FakeSession._counter}"
        self.command = list(command or [])
        self.chunks = list(chunks or [])
        self.planned_exit_code = exit_code
        self.fail_spawn = fail_spawn
        self.hang = hang
        self.manual = manual
        self.script: str | None = None
        self.script_path: str | None = None
        self._status = PTYStatus.PENDING
        self._exit_code: int | None = None
        self._spawn_error: BaseException | None = None
        self._killed = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def status(self) -> PTYStatus:
        return self._status

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def spawn_error(self) -> BaseException | None:
        return self._spawn_error

    async def start(self) -> None:
        if self.fail_spawn:
            self._status = PTYStatus.FAILED
            self._spawn_error = SpawnError("No such file or directory")
            raise self._spawn_error
        if "+runscript" in self.command:
            self.script_path = self.command[self.command.index("+runscript") + 1]
            self.script = Path(self.script_path).read_text(encoding="utf-8")
        self._status = PTYStatus.RUNNING
        if not self.manual:
            self._task = asyncio.create_task(self._play())

    async def _play(self) -> None:
        for chunk in self.chunks:
            await asyncio.sleep(0)
            if self._status is not PTYStatus.RUNNING:
                break
            self._emit_data(chunk)
        if self.hang:
            await self._killed.wait()
        await asyncio.sleep(0)
        self.finish(self.planned_exit_code)

    def emit(self, chunk: str) -> None:
        self._emit_data(chunk)

    def finish(self, exit_code: int | None) -> None:
        if self._status is PTYStatus.KILLING:
            self._status = PTYStatus.KILLED
            self._exit_code = None
        else:
            self._status = PTYStatus.EXITED
            self._exit_code = exit_code
        self._emit_exit(self._exit_code)

    def write(self, data: str) -> None:
        pass

    def kill(self) -> None:
        if self._status is PTYStatus.RUNNING:
            self._status = PTYStatus.KILLING
            self._killed.set()
            if self.manual:
                self.finish(None)


class FakeSessionFactory:
    """Session factory for SessionRunner that records what it created."""

    def __init__(self, **session_kwargs) -> None:
        self.session_kwargs = session_kwargs
        self.sessions: list[FakeSession] = []
        self.cwds: list[str | None] = []

    def __call__(
        self, command: list[str], cwd: str | None, env: dict[str, str]
    ) -> FakeSession:
        session = FakeSession(command=command, **self.session_kwargs)
        self.sessions.append(session)
        self.cwds.append(cwd)
        return session

    @property
    def last(self) -> FakeSession:
        return self.sessions[-1]


@pytest.fixture
def manual_session() -> FakeSession:
    return FakeSession(manual=True)


@pytest.fixture
def make_factory():
    return FakeSessionFactory


@pytest.fixture
def make_session():
    return FakeSession

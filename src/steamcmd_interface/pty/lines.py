"""Turn PTY data/exit events into an async line sequence and an exit future."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from steamcmd_interface.pty.queue import AsyncQueue
from steamcmd_interface.pty.session import PtyProcess, PTYStatus
from steamcmd_interface.text import clean_chunk

_FINISHED = (PTYStatus.EXITED, PTYStatus.KILLED)


class LineFramer:
    """Split cleaned text into lines, carrying partial lines between chunks.

    The partial line is kept raw and only cleaned once complete, so escape
    sequences split across PTY reads are still stripped. Lines are
    whitespace-trimmed and blank lines are dropped.
    """

    def __init__(self) -> None:
        self._partial = ""

    def feed(self, chunk: str) -> list[str]:
        # Escape sequences never contain "\n", so splitting raw text is safe.
        *complete, self._partial = (self._partial + chunk).split("\n")
        return _clean_lines(complete)

    def flush(self) -> list[str]:
        rest, self._partial = self._partial, ""
        return _clean_lines([rest])


def _clean_lines(raw_lines: list[str]) -> list[str]:
    lines = (clean_chunk(line).strip() for line in raw_lines)
    return [line for line in lines if line]


def iter_lines(session: PtyProcess, raw: bool = False) -> AsyncIterator[str]:
    """Subscribe to ``session`` and return its output as an async sequence.

    The subscription happens immediately, so no output emitted after this
    call is missed; reading is lazy and the sequence is single-pass. It ends
    (without raising) when the session's exit event fires, after every line
    received up to that point has been delivered.

    Args:
        session: The PTY process to follow.
        raw: Forward chunks exactly as received instead of cleaned lines.

    Raises:
        SpawnError: On first iteration, if the session failed to start.
    """
    if session.status is PTYStatus.FAILED:
        return _raise_spawn_error(session)

    queue: AsyncQueue[str] = AsyncQueue()
    if session.status in _FINISHED:
        queue.close()
        return aiter(queue)

    framer = LineFramer()

    def on_data(chunk: str) -> None:
        if queue.closed:
            return
        if raw:
            queue.enqueue(chunk)
            return
        for line in framer.feed(chunk):
            queue.enqueue(line)

    def on_exit(_exit_code: int | None) -> None:
        data_sub.dispose()
        exit_sub.dispose()
        if not raw:
            for line in framer.flush():
                queue.enqueue(line)
        queue.close(drain=True)

    data_sub = session.on_data(on_data)
    exit_sub = session.on_exit(on_exit)
    return aiter(queue)


async def _raise_spawn_error(session: PtyProcess) -> AsyncIterator[str]:
    assert session.spawn_error is not None
    raise session.spawn_error
    yield  # pragma: no cover


def exit_outcome(session: PtyProcess) -> asyncio.Future[int | None]:
    """Return a future for the session's exit code.

    Resolves with the exit code (``None`` if the process was killed) the
    moment the exit event fires. Fails with the spawn error if the session
    never started.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[int | None] = loop.create_future()

    if session.status is PTYStatus.FAILED:
        assert session.spawn_error is not None
        future.set_exception(session.spawn_error)
        return future
    if session.status in _FINISHED:
        future.set_result(session.exit_code)
        return future

    def on_exit(exit_code: int | None) -> None:
        subscription.dispose()
        if not future.done():
            future.set_result(exit_code)

    subscription = session.on_exit(on_exit)
    return future

"""PTY plumbing: spawn SteamCMD in a pseudo-terminal and read it as lines.

The session emits raw chunks and one exit event; the line bridge turns
those callbacks into an ``async for``-able sequence through AsyncQueue.
"""

from steamcmd_interface.pty.lines import LineFramer, exit_outcome, iter_lines
from steamcmd_interface.pty.queue import AsyncQueue, QueueClosedError
from steamcmd_interface.pty.session import (
    Disposable,
    PtyEventSource,
    PtyProcess,
    PTYSession,
    PTYStatus,
)

__all__ = [
    "AsyncQueue",
    "QueueClosedError",
    "Disposable",
    "PtyEventSource",
    "PtyProcess",
    "PTYSession",
    "PTYStatus",
    "LineFramer",
    "exit_outcome",
    "iter_lines",
]

"""Recognise structured messages inside SteamCMD's free-text output."""

from __future__ import annotations

import re
from dataclasses import dataclass

# "Update state (0x61) downloading, progress: 12.34 (1000 / 8000)"
_PROGRESS_RE = re.compile(
    r"Update state \((0x[0-9a-fA-F]+)\) (.+?), progress: (\d+(?:\.\d+)?) "
    r"\((\d+) / (\d+)\)$"
)

# "Logging in user 'x' to Steam Public...FAILED with result code 5"
_FAILURE_RE = re.compile(r"FAILED with result code (\d+)")


@dataclass(frozen=True)
class UpdateProgress:
    """A progress report emitted while an app update runs.

    An update goes through several states (pre-allocating, downloading,
    verifying, ...); each reports how far along it is. The unit of the
    amounts depends on the state.
    """

    state_code: str
    state: str
    progress_percent: float
    progress_amount: int
    progress_total_amount: int


def parse_progress(line: str) -> UpdateProgress | None:
    """Parse an ``Update state`` progress line, or return ``None``."""
    match = _PROGRESS_RE.search(line.strip())
    if match is None:
        return None
    state_code, state, percent, amount, total = match.groups()
    return UpdateProgress(
        state_code=state_code,
        state=state,
        progress_percent=float(percent),
        progress_amount=int(amount),
        progress_total_amount=int(total),
    )


def parse_failure_code(line: str) -> int | None:
    """Return the result code from a ``FAILED with result code N`` marker."""
    match = _FAILURE_RE.search(line)
    return int(match.group(1)) if match else None


class FailureMarkerTracker:
    """Remember the first failure marker seen in a session's output.

    Only consulted when the process exit code is ambiguous; the exit code
    is authoritative otherwise.
    """

    def __init__(self) -> None:
        self.code: int | None = None

    def feed(self, line: str) -> None:
        if self.code is None:
            self.code = parse_failure_code(line)

"""Terminal text cleanup: line endings, ANSI escapes, stray control bytes."""

from __future__ import annotations

import re

# CSI (colours, cursor movement, private modes like ``ESC[?25l``), OSC
# (window titles, terminated by BEL or ST) and two-byte ESC sequences.
_ANSI_RE = re.compile(
    r"""
    \x1b\[[0-?]*[ -/]*[@-~]
    | \x1b\][^\x07\x1b]*(?:\x07|\x1b\\)
    | \x1b[@-Z\\-_]
    """,
    re.VERBOSE,
)

# C0 controls other than tab and newline, DEL, C1 controls, and the Unicode
# interlinear annotation marks. SteamCMD's progress redraws and its bundled
# shell scripts leave these behind.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f\ufff9-\ufffb]")


def strip_ansi(text: str) -> str:
    """Strip ANSI/VT100 escape sequences from text."""
    return _ANSI_RE.sub("", text)


def normalize_newlines(text: str) -> str:
    """Rewrite CRLF to LF and drop any remaining carriage returns."""
    return text.replace("\r\n", "\n").replace("\r", "")


def strip_control_chars(text: str) -> str:
    """Drop control characters left over once escapes and CRs are gone."""
    return _CONTROL_RE.sub("", text)


def clean_chunk(text: str) -> str:
    """Full cleanup applied to PTY text before it is handed out as lines.

    Escape sequences must be complete: a sequence split across two chunks
    is only recognised once the pieces are joined.
    """
    return strip_control_chars(strip_ansi(normalize_newlines(text)))

"""Exit-code taxonomy and exception types for SteamCMD sessions."""

from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Exit codes SteamCMD is known to use. Not exhaustive."""

    NO_ERROR = 0
    UNKNOWN_ERROR = 1
    ALREADY_LOGGED_IN = 2
    NO_CONNECTION = 3
    INVALID_PASSWORD = 5
    # Seen on the first run after the binary has been installed. Harmless.
    INITIALIZED = 7
    FAILED_TO_INSTALL = 8
    MISSING_PARAMETERS_OR_NOT_LOGGED_IN = 10
    STEAM_GUARD_CODE_REQUIRED = 63


# Codes the runner treats as a successful session.
SUCCESS_CODES: frozenset[int] = frozenset({ExitCode.NO_ERROR, ExitCode.INITIALIZED})


class ErrorKind(enum.StrEnum):
    NO_ERROR = "no_error"
    UNKNOWN_ERROR = "unknown_error"
    ALREADY_LOGGED_IN = "already_logged_in"
    NO_CONNECTION = "no_connection"
    INVALID_PASSWORD = "invalid_password"
    INITIALIZED = "initialized"
    FAILED_TO_INSTALL = "failed_to_install"
    MISSING_PARAMETERS_OR_NOT_LOGGED_IN = "missing_parameters_or_not_logged_in"
    STEAM_GUARD_REQUIRED = "steam_guard_required"
    PROCESS_KILLED = "process_killed"


_KIND_BY_CODE: dict[int, ErrorKind] = {
    ExitCode.NO_ERROR: ErrorKind.NO_ERROR,
    ExitCode.UNKNOWN_ERROR: ErrorKind.UNKNOWN_ERROR,
    ExitCode.ALREADY_LOGGED_IN: ErrorKind.ALREADY_LOGGED_IN,
    ExitCode.NO_CONNECTION: ErrorKind.NO_CONNECTION,
    ExitCode.INVALID_PASSWORD: ErrorKind.INVALID_PASSWORD,
    ExitCode.INITIALIZED: ErrorKind.INITIALIZED,
    ExitCode.FAILED_TO_INSTALL: ErrorKind.FAILED_TO_INSTALL,
    ExitCode.MISSING_PARAMETERS_OR_NOT_LOGGED_IN: (
        ErrorKind.MISSING_PARAMETERS_OR_NOT_LOGGED_IN
    ),
    ExitCode.STEAM_GUARD_CODE_REQUIRED: ErrorKind.STEAM_GUARD_REQUIRED,
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NO_ERROR: "No error",
    ErrorKind.UNKNOWN_ERROR: "An unknown error occurred",
    ErrorKind.ALREADY_LOGGED_IN: "A user was already logged into SteamCMD",
    ErrorKind.NO_CONNECTION: "SteamCMD cannot connect to the internet",
    ErrorKind.INVALID_PASSWORD: "Invalid password",
    ErrorKind.FAILED_TO_INSTALL: (
        "The application failed to install for some reason. Reasons include: "
        "you do not own the application, you do not have enough hard drive "
        "space, a network error occurred, or the application is not "
        "available for your selected platform."
    ),
    ErrorKind.MISSING_PARAMETERS_OR_NOT_LOGGED_IN: (
        "One of your commands has missing parameters or you are not logged in"
    ),
    ErrorKind.STEAM_GUARD_REQUIRED: "A Steam Guard code was required to log in",
    ErrorKind.PROCESS_KILLED: "The SteamCMD process was forcefully terminated",
}


def error_kind(exit_code: int | None) -> ErrorKind:
    """Map an exit code (``None`` = killed) to its :class:`ErrorKind`."""
    if exit_code is None:
        return ErrorKind.PROCESS_KILLED
    return _KIND_BY_CODE.get(exit_code, ErrorKind.UNKNOWN_ERROR)


def error_message(exit_code: int | None) -> str:
    """Human-readable message for an exit code.

    Code 7 has no known meaning, so it shares the generic fallback that
    names the raw code.
    """
    kind = error_kind(exit_code)
    if kind is ErrorKind.INITIALIZED or exit_code not in _KIND_BY_CODE:
        if exit_code is not None:
            return f"An unknown error occurred. Exit code: {exit_code}"
    return _MESSAGES[kind]


class SteamCmdError(Exception):
    """SteamCMD finished a session with a failing exit code.

    Attributes:
        exit_code: Raw exit code, or ``None`` if the process was killed.
        kind: Symbolic classification of ``exit_code``.
        output_tail: The last few output lines seen before exit.
    """

    def __init__(
        self, exit_code: int | None, output_tail: list[str] | None = None
    ) -> None:
        self.exit_code = exit_code
        self.kind = error_kind(exit_code)
        self.output_tail = list(output_tail or [])
        super().__init__(error_message(exit_code))

    def __repr__(self) -> str:
        return f"SteamCmdError(exit_code={self.exit_code!r}, kind={self.kind.value!r})"


class SpawnError(OSError):
    """The SteamCMD process could not be started at all."""


class SetupError(RuntimeError):
    """The SteamCMD binary could not be provisioned on this machine."""

"""steamcmd-interface: drive SteamCMD from asyncio code.

Downloads the SteamCMD binary, runs command scripts through it inside a
pseudo-terminal, and turns its text output into typed results.
"""

from steamcmd_interface.client import SteamCmd
from steamcmd_interface.config import RetryConfig, SteamCmdConfig
from steamcmd_interface.errors import (
    ErrorKind,
    ExitCode,
    SetupError,
    SpawnError,
    SteamCmdError,
)
from steamcmd_interface.interpreter import UpdateProgress
from steamcmd_interface.runner import SessionRunner

__all__ = [
    "SteamCmd",
    "SteamCmdConfig",
    "RetryConfig",
    "SessionRunner",
    "UpdateProgress",
    "ErrorKind",
    "ExitCode",
    "SteamCmdError",
    "SpawnError",
    "SetupError",
]

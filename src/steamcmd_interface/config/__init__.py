"""Configuration: Pydantic models for steamcmd-interface settings."""

from __future__ import annotations

import os
import sys
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_HOME_DIR = "~/.steamcmd-interface"


class RetryConfig(BaseModel):
    """Caller-side retry of whole operations (login, app update)."""

    attempts: int = Field(
        default=1, ge=1, description="Total attempts; 1 disables retrying"
    )
    delay: float = Field(default=3.0, ge=0, description="Seconds between attempts")


class SteamCmdConfig(BaseModel):
    """Top-level steamcmd-interface configuration."""

    bin_dir: str = Field(
        default=f"{_HOME_DIR}/bin/{sys.platform}",
        description="Directory the SteamCMD binaries are downloaded into",
    )
    install_dir: str = Field(
        default=f"{_HOME_DIR}/apps",
        description="Directory apps are installed into. Must be absolute "
        "(after ~ expansion) when updating an app.",
    )
    username: str = Field(default="anonymous", description="Steam account name")
    debug_output: bool = Field(
        default=False, description="Log every SteamCMD output line at INFO"
    )
    scan_failure_markers: bool = Field(
        default=True,
        description="Use 'FAILED with result code N' output lines to refine "
        "ambiguous exit codes",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @property
    def bin_path(self) -> str:
        return os.path.expanduser(self.bin_dir)

    @property
    def install_path(self) -> str:
        return os.path.expanduser(self.install_dir)

    @classmethod
    def load(cls, config_path: str | None = None) -> SteamCmdConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            STEAMCMD_BIN_DIR       - Override the binaries directory
            STEAMCMD_INSTALL_DIR   - Override the app install directory
            STEAMCMD_USERNAME      - Override the Steam account name
            STEAMCMD_DEBUG_OUTPUT  - "1"/"true" to log all SteamCMD output
            STEAMCMD_RETRIES       - Total attempts for retried operations
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            import json

            with open(config_path) as f:
                config_data = json.load(f)

        env_bin_dir = os.environ.get("STEAMCMD_BIN_DIR")
        if env_bin_dir:
            config_data["bin_dir"] = env_bin_dir

        env_install_dir = os.environ.get("STEAMCMD_INSTALL_DIR")
        if env_install_dir:
            config_data["install_dir"] = env_install_dir

        env_username = os.environ.get("STEAMCMD_USERNAME")
        if env_username:
            config_data["username"] = env_username

        env_debug = os.environ.get("STEAMCMD_DEBUG_OUTPUT")
        if env_debug:
            config_data["debug_output"] = env_debug.lower() in ("1", "true", "yes")

        env_retries = os.environ.get("STEAMCMD_RETRIES")
        if env_retries:
            retry = config_data.get("retry", {})
            retry["attempts"] = int(env_retries)
            config_data["retry"] = retry

        return cls.model_validate(config_data)

"""Provision the SteamCMD binary: pick the platform archive, fetch, unpack."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import tarfile
import tempfile
import zipfile
from contextlib import suppress
from dataclasses import dataclass

import aiofiles
import aiofiles.os
import httpx

from steamcmd_interface.errors import SetupError

logger = logging.getLogger(__name__)

_CDN = "https://steamcdn-a.akamaihd.net/client/installer"


@dataclass(frozen=True)
class PlatformBinary:
    """Where to fetch SteamCMD for one platform and what the archive holds."""

    download_url: str
    exe_name: str


PLATFORM_BINARIES: dict[str, PlatformBinary] = {
    "win32": PlatformBinary(f"{_CDN}/steamcmd.zip", "steamcmd.exe"),
    "darwin": PlatformBinary(f"{_CDN}/steamcmd_osx.tar.gz", "steamcmd.sh"),
    "linux": PlatformBinary(f"{_CDN}/steamcmd_linux.tar.gz", "steamcmd.sh"),
}

_ZIP_MAGIC = b"PK\x03\x04"
_GZIP_MAGIC = b"\x1f\x8b"


def platform_binary(platform: str | None = None) -> PlatformBinary:
    """Look up the download details for ``platform`` (default: this host).

    Raises:
        SetupError: SteamCMD is not distributed for the platform.
    """
    platform = platform or sys.platform
    try:
        return PLATFORM_BINARIES[platform]
    except KeyError:
        raise SetupError(f'Platform "{platform}" is not supported') from None


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def sniff_archive_format(path: str) -> str:
    """Return ``"zip"`` or ``"tar.gz"`` based on the file's magic bytes."""
    with open(path, "rb") as f:
        header = f.read(4)
    if header.startswith(_ZIP_MAGIC):
        return "zip"
    if header.startswith(_GZIP_MAGIC):
        return "tar.gz"
    raise SetupError("Archive format not recognised")


def _extract(archive_path: str, dest_dir: str) -> None:
    fmt = sniff_archive_format(archive_path)
    if fmt == "zip":
        with zipfile.ZipFile(archive_path) as zf:
            zf.extractall(dest_dir)
    else:
        with tarfile.open(archive_path, "r:gz") as tf:
            tf.extractall(dest_dir, filter="data")


async def extract_archive(archive_path: str, dest_dir: str) -> None:
    """Extract a zip or gzip-tar archive into ``dest_dir``."""
    await asyncio.to_thread(_extract, archive_path, dest_dir)


async def fetch_to_file(
    url: str, path: str, client: httpx.AsyncClient | None = None
) -> None:
    """Stream ``url`` into ``path``."""
    owns_client = client is None
    client = client or httpx.AsyncClient(follow_redirects=True, timeout=60.0)
    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            async with aiofiles.open(path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    await f.write(chunk)
    finally:
        if owns_client:
            await client.aclose()


async def download_steamcmd(
    bin_dir: str,
    binary: PlatformBinary | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Make sure a runnable SteamCMD executable exists in ``bin_dir``.

    Does nothing if the executable is already there. Otherwise downloads
    the platform archive to a temp file, extracts it and marks the
    executable as such.

    Returns:
        Path to the executable.

    Raises:
        SetupError: Download, extraction or the final executable check failed.
    """
    binary = binary or platform_binary()
    exe_path = os.path.join(bin_dir, binary.exe_name)
    if is_executable(exe_path):
        return exe_path

    os.makedirs(bin_dir, exist_ok=True)
    logger.info("Downloading SteamCMD from %s", binary.download_url)

    fd, archive_path = tempfile.mkstemp(prefix="steamcmd-archive-")
    os.close(fd)
    try:
        try:
            await fetch_to_file(binary.download_url, archive_path, client)
        except httpx.HTTPError as e:
            raise SetupError(f"Failed to download SteamCMD: {e}") from e
        await extract_archive(archive_path, bin_dir)
    finally:
        with suppress(FileNotFoundError):
            await aiofiles.os.remove(archive_path)

    try:
        os.chmod(exe_path, 0o755)
    except OSError as e:
        raise SetupError("SteamCMD executable's permissions could not be set") from e

    if not is_executable(exe_path):
        raise SetupError("SteamCMD executable cannot be run")

    logger.info("SteamCMD installed at %s", exe_path)
    return exe_path

"""Optional caller-side retry of whole SteamCMD operations."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from steamcmd_interface.config import RetryConfig
from steamcmd_interface.errors import ErrorKind, SteamCmdError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_KINDS = frozenset({ErrorKind.NO_CONNECTION, ErrorKind.UNKNOWN_ERROR})


def is_transient(exc: BaseException) -> bool:
    """Failures worth another attempt: connectivity and unexplained exits.

    Credential problems, Steam Guard prompts, and killed processes are
    never retried.
    """
    if isinstance(exc, SteamCmdError):
        return exc.kind in _TRANSIENT_KINDS
    return isinstance(exc, httpx.TransportError)


async def retrying(
    operation: Callable[[], Awaitable[T]],
    policy: RetryConfig | None = None,
) -> T:
    """Await ``operation()`` until it succeeds or the policy is exhausted.

    The last exception is re-raised unchanged.
    """
    policy = policy or RetryConfig()
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_transient),
        stop=stop_after_attempt(policy.attempts),
        wait=wait_fixed(policy.delay),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await operation()
    raise AssertionError("unreachable")  # pragma: no cover

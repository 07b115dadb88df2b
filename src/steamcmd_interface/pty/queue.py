"""Closable asynchronous FIFO bridging callbacks to ``async for``."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Iterable
from contextlib import suppress
from typing import Generic, TypeVar

T = TypeVar("T")


class QueueClosedError(Exception):
    """Raised by enqueue/dequeue once the queue has been closed."""


class AsyncQueue(Generic[T]):
    """A FIFO queue with an awaitable ``dequeue``.

    Producers call :meth:`enqueue` from plain callbacks (PTY data events);
    the consumer awaits :meth:`dequeue` or iterates with ``async for``.
    Suspended dequeues are served oldest first. Everything runs on one
    event loop, so no locking is needed.

    Closing is one-way. By default :meth:`close` drops whatever is still
    buffered so shutdown is prompt; ``close(drain=True)`` instead lets the
    consumer take the buffered items before iteration ends.
    """

    def __init__(self, values: Iterable[T] | None = None) -> None:
        self._items: deque[T] = deque(values or ())
        self._waiters: deque[asyncio.Future[T]] = deque()
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, item: T) -> None:
        """Append ``item``, waking a suspended consumer if there is one."""
        if self._closed:
            raise QueueClosedError("Cannot enqueue when queue is closed")

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(item)
                return
        self._items.append(item)

    async def dequeue(self) -> T:
        """Return the oldest item, waiting for one if the queue is empty.

        Raises:
            QueueClosedError: If the queue is closed (and drained), either
                before the call or while waiting.
        """
        if self._items:
            return self._items.popleft()
        if self._closed:
            raise QueueClosedError("Cannot dequeue when queue is closed")

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[T] = loop.create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        finally:
            with suppress(ValueError):
                self._waiters.remove(waiter)

    def close(self, drain: bool = False) -> None:
        """Close the queue. Idempotent.

        Args:
            drain: Keep buffered items available to the consumer instead of
                discarding them.
        """
        if self._closed:
            return
        self._closed = True
        if not drain:
            self._items.clear()

        waiters, self._waiters = self._waiters, deque()
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(QueueClosedError("Queue closed while waiting"))

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.dequeue()
            except QueueClosedError:
                return
            yield item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

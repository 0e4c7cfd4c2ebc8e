"""Coalesced refetching for realtime-driven reconciliation."""
from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RefetchState(StrEnum):
    IDLE = "idle"
    REFETCHING = "refetching"


class RefetchCoalescer:
    """Run ``fetch`` at most once at a time.

    Triggers that arrive while a fetch is in flight do not start their own
    request. They are all answered by a single follow-up fetch issued when
    the current one finishes, so each trigger sees data read after it fired.

    Each trigger returns a future that resolves to ``None`` on success or to
    the exception the serving fetch raised.
    """

    def __init__(self, fetch: Callable[[], Awaitable[None]]) -> None:
        self._fetch = fetch
        self._waiting: list[asyncio.Future[Exception | None]] = []
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self.fetch_count = 0

    @property
    def state(self) -> RefetchState:
        if self._task is not None and not self._task.done():
            return RefetchState.REFETCHING
        return RefetchState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    def trigger(self) -> asyncio.Future[Exception | None]:
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[Exception | None] = loop.create_future()
        if self._closed:
            waiter.cancel()
            return waiter
        self._waiting.append(waiter)
        if self.state is RefetchState.IDLE:
            self._task = loop.create_task(self._drain())
        return waiter

    async def request(self) -> Exception | None:
        """Trigger a refetch and wait for the fetch that serves it."""
        return await self.trigger()

    async def _drain(self) -> None:
        while self._waiting and not self._closed:
            batch, self._waiting = self._waiting, []
            self.fetch_count += 1
            error: Exception | None = None
            try:
                await self._fetch()
            except asyncio.CancelledError:
                for waiter in batch:
                    waiter.cancel()
                raise
            except Exception as exc:
                logger.warning("Refetch failed: %s", exc)
                error = exc
            for waiter in batch:
                if not waiter.done():
                    waiter.set_result(error)

    def close(self) -> None:
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        for waiter in self._waiting:
            waiter.cancel()
        self._waiting.clear()


__all__ = ["RefetchCoalescer", "RefetchState"]

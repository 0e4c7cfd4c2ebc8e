"""Realtime consumers that turn change events into refetches."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .coalesce import RefetchState
from .errors import RemoteUnavailableError
from .gateway import DataGateway
from .records import ChangeEvent

if TYPE_CHECKING:
    from .feed import FeedStore

logger = logging.getLogger(__name__)

POST_TABLE = "posts"
_REFETCH_EVENTS = frozenset({"INSERT", "DELETE"})


def is_post_change(event: ChangeEvent) -> bool:
    return event.table == POST_TABLE and (event.event or "").upper() in _REFETCH_EVENTS


class FeedSubscription:
    """Consumes the feed channel and asks the store for a full refetch.

    No incremental patching: every post insert or delete replaces the whole
    feed through the store's coalescer. A dropped connection is retried with
    exponential backoff and followed by one refetch to cover missed events.
    """

    def __init__(
        self,
        gateway: DataGateway,
        store: "FeedStore",
        *,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self.events_handled = 0

    @property
    def state(self) -> RefetchState:
        return self._store.refetch_state

    def handle(self, event: ChangeEvent) -> bool:
        if not is_post_change(event):
            return False
        self.events_handled += 1
        logger.debug("Post %s event; refetching feed", event.event)
        self._store.request_refetch()
        return True

    async def run(self) -> None:
        delay = self._reconnect_delay
        reconnecting = False
        while not self._store.closed:
            if reconnecting:
                self._store.request_refetch()
            try:
                async for event in self._gateway.subscribe_feed():
                    if self._store.closed:
                        return
                    self.handle(event)
                    delay = self._reconnect_delay
            except RemoteUnavailableError as exc:
                logger.warning("Feed stream dropped (%s); reconnecting in %.1fs", exc.message, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_reconnect_delay)
                reconnecting = True
                continue
            return


__all__ = ["FeedSubscription", "is_post_change", "POST_TABLE"]

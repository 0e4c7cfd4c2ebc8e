"""Notification inbox with monotonic read state."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable
from uuid import UUID

from pydantic import ValidationError

from ..config import get_client_settings
from .errors import FailureKind, RemoteUnavailableError, SyncError
from .gateway import DataGateway
from .optimistic import apply_optimistic, fetch_result, with_timeout
from .records import ChangeEvent, NotificationRecord
from .results import MutationResult

logger = logging.getLogger(__name__)


class NotificationInbox:
    """Newest-first notifications for the signed-in profile.

    Once a notification is read locally it stays read for the lifetime of the
    inbox, across reloads and realtime deliveries, even if the remote
    mark-read call fails.
    """

    def __init__(
        self,
        gateway: DataGateway,
        *,
        timeout: float | None = None,
        on_auth_required: Callable[[], None] | None = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self._gateway = gateway
        self._timeout = get_client_settings().request_timeout if timeout is None else timeout
        self._on_auth_required = on_auth_required
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self.items: list[NotificationRecord] = []
        self._read_ids: set[UUID] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self.items if not item.is_read)

    @property
    def closed(self) -> bool:
        return self._closed

    def _apply_read_state(self, item: NotificationRecord) -> NotificationRecord:
        if item.is_read:
            self._read_ids.add(item.id)
        elif item.id in self._read_ids:
            item.is_read = True
        return item

    async def _fetch(self) -> list[NotificationRecord]:
        rows = await with_timeout(self._gateway.fetch_notifications, self._timeout, "notification fetch")
        if self._closed:
            return rows
        self.items = [self._apply_read_state(row) for row in rows]
        return list(self.items)

    async def load(self) -> MutationResult[list[NotificationRecord]]:
        if self._closed:
            return MutationResult.noop("Inbox is closed")
        return await fetch_result(self._fetch, on_auth_required=self._on_auth_required)

    async def mark_all_read(self) -> MutationResult[None]:
        unread = [item for item in self.items if not item.is_read]
        if not unread:
            return MutationResult.noop("Nothing to mark as read")

        def mutate() -> None:
            for item in unread:
                item.is_read = True
                self._read_ids.add(item.id)

        def keep_read(_: None) -> None:
            # Read state never goes back to unread.
            return None

        return await apply_optimistic(
            mutate,
            self._gateway.mark_notifications_read,
            keep_read,
            timeout=self._timeout,
            on_auth_required=self._on_auth_required,
        )

    def receive(self, event: ChangeEvent) -> NotificationRecord | None:
        """Apply one realtime frame; return the inserted notification, if any."""

        if self._closed:
            return None
        if event.type == "notification.read_all":
            for item in self.items:
                item.is_read = True
                self._read_ids.add(item.id)
            return None
        if event.type != "notification.created":
            return None

        try:
            record = NotificationRecord.model_validate(event.record)
        except ValidationError:
            logger.warning("Dropping malformed notification frame")
            return None
        if any(item.id == record.id for item in self.items):
            return None
        record = self._apply_read_state(record)
        self.items.insert(0, record)
        return record

    async def _consume(self) -> None:
        delay = self._reconnect_delay
        reconnecting = False
        while not self._closed:
            if reconnecting:
                # Rows inserted while disconnected never arrive as frames.
                await self.load()
            try:
                async for event in self._gateway.subscribe_notifications():
                    if self._closed:
                        return
                    self.receive(event)
                    delay = self._reconnect_delay
            except RemoteUnavailableError as exc:
                logger.warning("Notification stream dropped (%s); reconnecting in %.1fs", exc.message, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_reconnect_delay)
                reconnecting = True
                continue
            except SyncError as exc:
                logger.warning("Notification stream refused: %s", exc.message)
                if exc.kind is FailureKind.AUTH and self._on_auth_required is not None:
                    self._on_auth_required()
            return

    def start_realtime(self) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(self._consume())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def close(self) -> None:
        self._closed = True
        for task in list(self._tasks):
            task.cancel()


__all__ = ["NotificationInbox"]

"""In-memory WebSocket fanout for realtime change events."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

from fastapi import WebSocket

from ..constants import FEED_CHANNEL, NOTIFICATION_CHANNEL

logger = logging.getLogger(__name__)


def notification_channel(user_id: object) -> str:
    return f"{NOTIFICATION_CHANNEL}:{user_id}"


def change_event(type_: str, *, table: str, event: str, record: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wire shape shared by every realtime frame."""

    return {"type": type_, "table": table, "event": event, "record": record or {}}


class RealtimeHub:
    """Tracks WebSocket connections per channel and broadcasts JSON payloads."""

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = {}
        self._connections: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._channels.setdefault(channel, set()).add(websocket)
            self._connections[websocket] = channel

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            channel = self._connections.pop(websocket, None)
            if channel is None:
                return
            group = self._channels.get(channel)
            if group is None:
                return
            group.discard(websocket)
            if not group:
                self._channels.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def broadcast(self, channels: str | Iterable[str], payload: dict[str, Any]) -> None:
        names = [channels] if isinstance(channels, str) else [name for name in channels if name]
        if not names:
            return
        serialized = json.dumps(payload, default=str)
        async with self._lock:
            targets: list[WebSocket] = []
            for name in names:
                targets.extend(self._channels.get(name, ()))
        for ws in targets:
            try:
                await ws.send_text(serialized)
            except Exception:
                logger.warning("Dropping realtime subscriber after failed send")
                await self.disconnect(ws)

    async def publish_feed_change(self, type_: str, *, event: str, record: dict[str, Any]) -> None:
        await self.broadcast(FEED_CHANNEL, change_event(type_, table="posts", event=event, record=record))


realtime_hub = RealtimeHub()


__all__ = ["RealtimeHub", "realtime_hub", "notification_channel", "change_event"]

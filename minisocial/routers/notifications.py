"""Notification API routes and the per-user notification socket."""
from __future__ import annotations

import json
import logging
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Profile
from ..schemas import NotificationListResponse, NotificationSummaryResponse
from ..services import (
    count_unread_notifications,
    decode_access_token,
    get_current_user,
    list_notifications,
    mark_all_read,
    notification_channel,
    realtime_hub,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

logger = logging.getLogger(__name__)


@router.get("/", response_model=NotificationListResponse)
async def list_my_notifications(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationListResponse:
    return NotificationListResponse(items=list_notifications(db, cast(UUID, current_user.id)))


@router.post("/mark-read", response_model=NotificationSummaryResponse)
async def mark_notifications_read(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationSummaryResponse:
    updated = mark_all_read(db, cast(UUID, current_user.id))
    logger.debug("Marked %s notifications read for %s", updated, current_user.id)
    return NotificationSummaryResponse(unread_count=0)


@router.get("/summary", response_model=NotificationSummaryResponse)
async def notification_summary_endpoint(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationSummaryResponse:
    return NotificationSummaryResponse(unread_count=count_unread_notifications(db, cast(UUID, current_user.id)))


@router.websocket("/ws")
async def notifications_socket(
    websocket: WebSocket,
    token: str = Query(..., alias="token"),
) -> None:
    try:
        user_id = decode_access_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await realtime_hub.connect(notification_channel(user_id), websocket)
    await websocket.send_text(json.dumps({"type": "ready"}))
    try:
        while True:
            try:
                payload = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            if payload.strip().lower() == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    finally:
        await realtime_hub.disconnect(websocket)


__all__ = ["router"]

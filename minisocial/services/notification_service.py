"""Notification helper logic for PostgreSQL-backed storage."""
from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..constants import NOTIFICATION_COMMENT, NOTIFICATION_FOLLOW, NOTIFICATION_LIKE
from ..models import Notification, Profile
from ..schemas import NotificationResponse
from .realtime import change_event, notification_channel, realtime_hub

logger = logging.getLogger(__name__)


class NotificationType(StrEnum):
    LIKE = NOTIFICATION_LIKE
    COMMENT = NOTIFICATION_COMMENT
    FOLLOW = NOTIFICATION_FOLLOW


def to_notification_response(record: Notification, actor: Profile | None = None) -> NotificationResponse:
    return NotificationResponse(
        id=record.id,
        recipient_id=record.recipient_id,
        actor_id=record.actor_id,
        actor_username=actor.username if actor is not None else None,
        actor_avatar_url=actor.avatar_url if actor is not None else None,
        type=record.type,
        post_id=record.post_id,
        is_read=bool(record.is_read),
        created_at=record.created_at,
    )


def list_notifications(db: Session, user_id: UUID) -> list[NotificationResponse]:
    """Return notifications for the supplied recipient ordered newest first."""

    stmt = (
        select(Notification, Profile)
        .join(Profile, Notification.actor_id == Profile.id)
        .where(Notification.recipient_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id)
    )
    return [to_notification_response(record, actor) for record, actor in db.execute(stmt).all()]


def count_unread_notifications(db: Session, user_id: UUID) -> int:
    """Return the unread notification total for the supplied user."""

    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
    )
    return int(db.scalar(stmt) or 0)


def add_notification(
    db: Session,
    *,
    recipient_id: UUID,
    actor_id: UUID,
    type_: NotificationType | str,
    post_id: UUID | None = None,
) -> Notification | None:
    """Persist a notification unless the actor is notifying themselves."""

    if recipient_id == actor_id:
        return None

    kind = NotificationType(str(type_))

    if db.get(Profile, recipient_id) is None:
        raise ValueError("Recipient does not exist")

    actor = db.get(Profile, actor_id)
    if actor is None:
        raise ValueError("Actor does not exist")

    notification = Notification(
        recipient_id=recipient_id,
        actor_id=actor_id,
        type=str(kind),
        post_id=post_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    _broadcast_notification(notification, actor)
    return notification


def mark_all_read(db: Session, recipient_id: UUID) -> int:
    """Mark all unread notifications for the recipient as read.

    Only ever flips ``is_read`` from false to true.
    """

    stmt = (
        update(Notification)
        .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    result = db.execute(stmt)
    db.commit()
    _schedule_notification_event(
        recipient_id,
        change_event("notification.read_all", table="notifications", event="UPDATE", record={"recipient_id": str(recipient_id)}),
    )
    return int(result.rowcount or 0)


def _broadcast_notification(notification: Notification, actor: Profile) -> None:
    payload = change_event(
        "notification.created",
        table="notifications",
        event="INSERT",
        record=to_notification_response(notification, actor).model_dump(mode="json"),
    )
    _schedule_notification_event(notification.recipient_id, payload)


def _schedule_notification_event(user_id: UUID | str, payload: dict[str, Any]) -> None:
    target = notification_channel(user_id)
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running loop; skipping realtime push for %s", target)
        return
    loop.create_task(realtime_hub.broadcast(target, payload))


__all__ = [
    "NotificationType",
    "to_notification_response",
    "list_notifications",
    "count_unread_notifications",
    "add_notification",
    "mark_all_read",
]

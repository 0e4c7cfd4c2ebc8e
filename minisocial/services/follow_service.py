"""Business logic for follower relationships."""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import NOTIFICATION_FOLLOW
from ..models import Follow, Profile
from .notification_service import add_notification


@dataclass(slots=True)
class FollowStats:
    user_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


def _get_profile_or_404(db: Session, user_id: UUID) -> Profile:
    profile = db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def follow_user(db: Session, *, follower: Profile, target_id: UUID) -> bool:
    """Create the follower → target edge; return False when it already exists."""

    follower_id = follower.id
    if follower_id == target_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")

    _get_profile_or_404(db, target_id)

    existing = db.get(Follow, (follower_id, target_id))
    if existing is not None:
        return False

    db.add(Follow(follower_id=follower_id, following_id=target_id))
    try:
        db.commit()
    except SQLAlchemyError as exc:  # pragma: no cover - database errors
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to follow user") from exc

    add_notification(db, recipient_id=target_id, actor_id=follower_id, type_=NOTIFICATION_FOLLOW)
    return True


def unfollow_user(db: Session, *, follower: Profile, target_id: UUID) -> bool:
    record = db.get(Follow, (follower.id, target_id))
    if record is None:
        return False
    try:
        db.delete(record)
        db.commit()
        return True
    except SQLAlchemyError as exc:  # pragma: no cover - database errors
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to unfollow user") from exc


def list_following_ids(db: Session, *, user_id: UUID) -> list[UUID]:
    stmt = select(Follow.following_id).where(Follow.follower_id == user_id).order_by(Follow.created_at.asc())
    return list(db.scalars(stmt))


def get_follow_stats(db: Session, *, user_id: UUID, viewer_id: UUID | None = None) -> FollowStats:
    _get_profile_or_404(db, user_id)

    followers_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    ) or 0
    following_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    ) or 0

    is_following = False
    if viewer_id is not None and viewer_id != user_id:
        is_following = db.get(Follow, (viewer_id, user_id)) is not None

    return FollowStats(
        user_id=user_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        is_following=is_following,
    )


__all__ = ["FollowStats", "follow_user", "unfollow_user", "list_following_ids", "get_follow_stats"]

"""Profile lookups, edits and follow suggestions."""
from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Follow, Profile
from ..schemas import ProfileUpdateRequest


def get_profile_by_username(db: Session, username: str) -> Profile:
    profile = db.scalar(select(Profile).where(Profile.username == username))
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def update_profile(db: Session, *, user_id: UUID, payload: ProfileUpdateRequest) -> Profile:
    """Apply profile updates for the supplied ``user_id``."""

    profile = db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    # Only update fields that were actually sent by the client
    update_data = payload.model_dump(exclude_unset=True)

    username = update_data.get("username")
    if "username" in update_data and not username:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Username is required")
    if username and username != profile.username:
        taken = db.scalar(select(Profile.id).where(Profile.username == username, Profile.id != user_id))
        if taken is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already in use")

    # An empty avatar keeps the existing one
    if update_data.get("avatar_url") in (None, ""):
        update_data.pop("avatar_url", None)

    for field, value in update_data.items():
        setattr(profile, field, value)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile",
        ) from exc

    db.refresh(profile)
    return profile


def list_suggested_profiles(db: Session, *, viewer_id: UUID, limit: int = 5) -> list[Profile]:
    """Profiles the viewer does not follow yet, excluding the viewer."""

    followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
    stmt = (
        select(Profile)
        .where(Profile.id != viewer_id, Profile.id.not_in(followed))
        .order_by(Profile.created_at.desc(), Profile.username)
        .limit(limit)
    )
    return list(db.scalars(stmt))


__all__ = ["get_profile_by_username", "update_profile", "list_suggested_profiles"]

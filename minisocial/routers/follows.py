"""Follow management API routes."""
from __future__ import annotations

from dataclasses import asdict
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Profile
from ..schemas import FollowActionResponse, FollowingListResponse, FollowStatsResponse
from ..services import (
    follow_user,
    get_current_user,
    get_follow_stats,
    get_optional_user,
    list_following_ids,
    unfollow_user,
)

router = APIRouter(prefix="/follows", tags=["follows"])


@router.get("/following", response_model=FollowingListResponse)
async def following_endpoint(
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> FollowingListResponse:
    return FollowingListResponse(items=list_following_ids(db, user_id=cast(UUID, current_user.id)))


@router.get("/stats/{user_id}", response_model=FollowStatsResponse)
async def follow_stats_endpoint(
    user_id: UUID,
    db: Session = Depends(get_session),
    viewer: Profile | None = Depends(get_optional_user),
) -> FollowStatsResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    stats = get_follow_stats(db, user_id=user_id, viewer_id=viewer_id)
    return FollowStatsResponse(**asdict(stats))


@router.post("/{target_id}", response_model=FollowActionResponse, status_code=status.HTTP_201_CREATED)
async def follow_user_endpoint(
    target_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> FollowActionResponse:
    changed = follow_user(db, follower=current_user, target_id=target_id)
    stats = get_follow_stats(db, user_id=target_id, viewer_id=cast(UUID, current_user.id))
    return FollowActionResponse(**asdict(stats), status="followed" if changed else "noop")


@router.delete("/{target_id}", response_model=FollowActionResponse)
async def unfollow_user_endpoint(
    target_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> FollowActionResponse:
    changed = unfollow_user(db, follower=current_user, target_id=target_id)
    stats = get_follow_stats(db, user_id=target_id, viewer_id=cast(UUID, current_user.id))
    return FollowActionResponse(**asdict(stats), status="unfollowed" if changed else "noop")


__all__ = ["router"]

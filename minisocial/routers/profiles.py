"""Profile API routes."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import Profile
from ..schemas import ProfileListResponse, ProfileResponse, ProfileUpdateRequest
from ..services import get_current_user, get_profile_by_username, list_suggested_profiles, update_profile

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/suggestions", response_model=ProfileListResponse)
async def suggestions_endpoint(
    limit: int | None = Query(default=None, ge=1, le=50),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ProfileListResponse:
    """Profiles the caller could follow next."""
    profiles = list_suggested_profiles(
        db,
        viewer_id=cast(UUID, current_user.id),
        limit=limit or get_settings().suggestion_limit,
    )
    return ProfileListResponse(items=[ProfileResponse.model_validate(item) for item in profiles])


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ProfileResponse:
    updated = update_profile(db, user_id=cast(UUID, current_user.id), payload=payload)
    return ProfileResponse.model_validate(updated)


@router.get("/{username}", response_model=ProfileResponse)
async def retrieve_profile(
    username: str,
    db: Session = Depends(get_session),
) -> ProfileResponse:
    return ProfileResponse.model_validate(get_profile_by_username(db, username))


__all__ = ["router"]

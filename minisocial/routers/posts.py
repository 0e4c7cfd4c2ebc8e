"""Post, comment and like routes."""
from __future__ import annotations

import logging
from typing import Any, cast
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Profile
from ..schemas import (
    CommentCreate,
    CommentEngagementResponse,
    CommentListResponse,
    CommentResponse,
    PostCreate,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
)
from ..services import (
    create_post_comment,
    create_post_record,
    delete_comment_record,
    delete_post_record,
    get_current_user,
    get_optional_user,
    get_profile_by_username,
    list_feed_records,
    list_post_comments,
    realtime_hub,
    set_comment_like_state,
    set_post_like_state,
)

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


async def _safe_feed_broadcast(type_: str, *, event: str, record: dict[str, Any]) -> None:
    try:
        await realtime_hub.publish_feed_change(type_, event=event, record=record)
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Failed to broadcast %s", type_)


def _viewer_id(viewer: Profile | None) -> UUID | None:
    return cast(UUID, viewer.id) if viewer is not None else None


@router.get("/feed", response_model=PostFeedResponse)
async def feed_endpoint(
    db: Session = Depends(get_session),
    viewer: Profile | None = Depends(get_optional_user),
) -> PostFeedResponse:
    records = list_feed_records(db, viewer_id=_viewer_id(viewer))
    return PostFeedResponse(items=[PostResponse.model_validate(item) for item in records])


@router.get("/by-user/{username}", response_model=PostFeedResponse)
async def posts_by_user_endpoint(
    username: str,
    db: Session = Depends(get_session),
    viewer: Profile | None = Depends(get_optional_user),
) -> PostFeedResponse:
    author = get_profile_by_username(db, username)
    records = list_feed_records(db, viewer_id=_viewer_id(viewer), author_id=cast(UUID, author.id))
    return PostFeedResponse(items=[PostResponse.model_validate(item) for item in records])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    payload: PostCreate,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> PostResponse:
    post = create_post_record(
        db,
        user_id=cast(UUID, current_user.id),
        content=payload.content,
        media_url=payload.media_url,
        media_type=payload.media_type,
    )
    response = PostResponse(
        id=post.id,
        user_id=post.user_id,
        content=post.content,
        media_url=post.media_url,
        media_type=post.media_type,
        created_at=post.created_at,
        username=current_user.username,
        avatar_url=current_user.avatar_url,
    )
    await _safe_feed_broadcast("post_created", event="INSERT", record=response.model_dump(mode="json"))
    return response


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> None:
    delete_post_record(db, post_id=post_id, requester_id=cast(UUID, current_user.id))
    await _safe_feed_broadcast("post_deleted", event="DELETE", record={"id": str(post_id)})


@router.put("/{post_id}/likes", response_model=PostEngagementResponse)
async def like_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> PostEngagementResponse:
    payload = set_post_like_state(db, post_id=post_id, user_id=cast(UUID, current_user.id), should_like=True)
    return PostEngagementResponse(**payload)


@router.delete("/{post_id}/likes", response_model=PostEngagementResponse)
async def unlike_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> PostEngagementResponse:
    payload = set_post_like_state(db, post_id=post_id, user_id=cast(UUID, current_user.id), should_like=False)
    return PostEngagementResponse(**payload)


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_post_comments_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    viewer: Profile | None = Depends(get_optional_user),
) -> CommentListResponse:
    items = list_post_comments(db, post_id=post_id, viewer_id=_viewer_id(viewer))
    return CommentListResponse(items=[CommentResponse(**item) for item in items])


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_post_comment_endpoint(
    post_id: UUID,
    payload: CommentCreate,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> CommentResponse:
    comment = create_post_comment(db, post_id=post_id, author=current_user, content=payload.content)
    return CommentResponse(**comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> None:
    delete_comment_record(db, comment_id=comment_id, requester_id=cast(UUID, current_user.id))


@router.put("/comments/{comment_id}/likes", response_model=CommentEngagementResponse)
async def like_comment_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> CommentEngagementResponse:
    payload = set_comment_like_state(db, comment_id=comment_id, user_id=cast(UUID, current_user.id), should_like=True)
    return CommentEngagementResponse(**payload)


@router.delete("/comments/{comment_id}/likes", response_model=CommentEngagementResponse)
async def unlike_comment_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
) -> CommentEngagementResponse:
    payload = set_comment_like_state(db, comment_id=comment_id, user_id=cast(UUID, current_user.id), should_like=False)
    return CommentEngagementResponse(**payload)


__all__ = ["router"]

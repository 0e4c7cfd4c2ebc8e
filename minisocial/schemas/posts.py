"""Pydantic schemas for post, comment and like resources."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..constants import MAX_COMMENT_LENGTH, MAX_POST_LENGTH


class PostCreate(BaseModel):
    """Payload used by clients when publishing a post."""

    content: str = Field(default="", max_length=MAX_POST_LENGTH)
    media_url: str | None = Field(default=None, max_length=1024)
    media_type: Literal["image", "video"] | None = None

    @model_validator(mode="after")
    def _require_content_or_media(self) -> "PostCreate":
        if not self.content.strip() and not self.media_url:
            raise ValueError("A post needs text or media")
        return self


class PostResponse(BaseModel):
    """Serialized post row with derived engagement counters."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    content: str
    media_url: str | None = None
    media_type: str | None = None
    created_at: datetime
    username: str | None = None
    avatar_url: str | None = None
    like_count: int = 0
    comment_count: int = 0
    viewer_has_liked: bool = False


class PostFeedResponse(BaseModel):
    """Envelope used when returning a collection of posts."""

    items: list[PostResponse]


class PostEngagementResponse(BaseModel):
    """Like/comment counters used by interactive clients."""

    post_id: UUID
    like_count: int
    comment_count: int
    viewer_has_liked: bool


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    username: str | None = None
    avatar_url: str | None = None
    content: str
    created_at: datetime
    like_count: int = 0
    viewer_has_liked: bool = False


class CommentListResponse(BaseModel):
    items: list[CommentResponse]


class CommentEngagementResponse(BaseModel):
    comment_id: UUID
    like_count: int
    viewer_has_liked: bool


__all__ = [
    "PostCreate",
    "PostResponse",
    "PostFeedResponse",
    "PostEngagementResponse",
    "CommentCreate",
    "CommentResponse",
    "CommentListResponse",
    "CommentEngagementResponse",
]

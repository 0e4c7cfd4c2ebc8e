"""Typed rows exchanged with the data service.

Every payload the gateway receives is parsed into one of these models before
it reaches a store, so stores never handle raw dictionaries.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ProfileRecord(_Record):
    id: UUID
    username: str
    email: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime | None = None


class AuthSession(_Record):
    access_token: str
    user_id: UUID
    username: str
    token_type: str = "bearer"


class PostRecord(_Record):
    id: UUID
    user_id: UUID
    content: str = ""
    media_url: str | None = None
    media_type: Literal["image", "video"] | None = None
    created_at: datetime = Field(default_factory=_now)
    username: str | None = None
    avatar_url: str | None = None
    like_count: int = 0
    comment_count: int = 0
    viewer_has_liked: bool = False
    # Set on optimistic placeholders until the service confirms the row.
    pending: bool = False


class CommentRecord(_Record):
    id: UUID
    post_id: UUID
    user_id: UUID
    content: str
    created_at: datetime = Field(default_factory=_now)
    username: str | None = None
    avatar_url: str | None = None
    like_count: int = 0
    viewer_has_liked: bool = False
    pending: bool = False


class PostEngagement(_Record):
    post_id: UUID
    like_count: int
    comment_count: int = 0
    viewer_has_liked: bool


class CommentEngagement(_Record):
    comment_id: UUID
    like_count: int
    viewer_has_liked: bool


class FollowStats(_Record):
    user_id: UUID
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False
    status: Literal["followed", "unfollowed", "noop"] | None = None


class NotificationRecord(_Record):
    id: UUID
    recipient_id: UUID
    actor_id: UUID
    type: Literal["like", "comment", "follow"]
    post_id: UUID | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=_now)
    actor_username: str | None = None
    actor_avatar_url: str | None = None


class ChangeEvent(_Record):
    """One realtime frame: which table changed, how, and the affected row."""

    type: str
    table: str | None = None
    event: str | None = None
    record: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "AuthSession",
    "ChangeEvent",
    "CommentEngagement",
    "CommentRecord",
    "FollowStats",
    "NotificationRecord",
    "PostEngagement",
    "PostRecord",
    "ProfileRecord",
]

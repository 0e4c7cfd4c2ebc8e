"""Shared fixtures: environment defaults and an in-memory data gateway."""
from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator
from uuid import UUID, uuid4

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_minisocial.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from minisocial.client.errors import (  # noqa: E402
    AuthRequiredError,
    RemoteRejectedError,
    SyncError,
    ValidationFailedError,
)
from minisocial.client.records import (  # noqa: E402
    AuthSession,
    ChangeEvent,
    CommentEngagement,
    CommentRecord,
    FollowStats,
    NotificationRecord,
    PostEngagement,
    PostRecord,
    ProfileRecord,
)

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryGateway:
    """Data gateway double holding authoritative rows in memory.

    ``failures`` maps a method name to an error raised on every call;
    ``gates`` maps a method name to an event the call waits on first.
    """

    def __init__(self, viewer: ProfileRecord) -> None:
        self.viewer = viewer
        self.profiles: dict[UUID, ProfileRecord] = {viewer.id: viewer}
        self.posts: list[PostRecord] = []
        self.likes: set[tuple[UUID, UUID]] = set()
        self.comments: dict[UUID, list[CommentRecord]] = {}
        self.comment_likes: set[tuple[UUID, UUID]] = set()
        self.follows: set[tuple[UUID, UUID]] = set()
        self.notifications: list[NotificationRecord] = []
        self.calls: list[str] = []
        self.failures: dict[str, SyncError] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.feed_events: asyncio.Queue[ChangeEvent | SyncError | None] | None = None
        self.notification_events: asyncio.Queue[ChangeEvent | SyncError | None] | None = None
        self._clock = 0

    # -- seeding -----------------------------------------------------------

    def add_profile(self, username: str) -> ProfileRecord:
        profile = ProfileRecord(id=uuid4(), username=username)
        self.profiles[profile.id] = profile
        return profile

    def add_post(self, content: str, author: ProfileRecord | None = None, **fields) -> PostRecord:
        author = author or self.viewer
        self._clock += 1
        post = PostRecord(
            id=uuid4(),
            user_id=author.id,
            username=author.username,
            content=content,
            created_at=_EPOCH + timedelta(minutes=self._clock),
            **fields,
        )
        self.posts.insert(0, post)
        return post

    def add_comment_row(self, post_id: UUID, content: str, author: ProfileRecord | None = None) -> CommentRecord:
        author = author or self.viewer
        self._clock += 1
        comment = CommentRecord(
            id=uuid4(),
            post_id=post_id,
            user_id=author.id,
            username=author.username,
            content=content,
            created_at=_EPOCH + timedelta(minutes=self._clock),
        )
        self.comments.setdefault(post_id, []).insert(0, comment)
        return comment

    def add_notification(self, type_: str = "like", *, is_read: bool = False) -> NotificationRecord:
        self._clock += 1
        record = NotificationRecord(
            id=uuid4(),
            recipient_id=self.viewer.id,
            actor_id=uuid4(),
            type=type_,
            is_read=is_read,
            created_at=_EPOCH + timedelta(minutes=self._clock),
        )
        self.notifications.insert(0, record)
        return record

    # -- plumbing ----------------------------------------------------------

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        error = self.failures.get(name)
        if error is not None:
            raise error

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def _post_view(self, post: PostRecord) -> PostRecord:
        return post.model_copy(
            update={
                "like_count": sum(1 for pid, _ in self.likes if pid == post.id),
                "comment_count": len(self.comments.get(post.id, [])),
                "viewer_has_liked": (post.id, self.viewer.id) in self.likes,
            }
        )

    def _find_post(self, post_id: UUID) -> PostRecord:
        for post in self.posts:
            if post.id == post_id:
                return post
        raise RemoteRejectedError("Post not found", status_code=404)

    # -- posts -------------------------------------------------------------

    async def fetch_feed(self) -> list[PostRecord]:
        await self._enter("fetch_feed")
        return [self._post_view(post) for post in self.posts]

    async def fetch_posts_by_user(self, username: str) -> list[PostRecord]:
        await self._enter("fetch_posts_by_user")
        return [self._post_view(post) for post in self.posts if post.username == username]

    async def create_post(self, content: str, *, media_url=None, media_type=None) -> PostRecord:
        await self._enter("create_post")
        return self.add_post(content, media_url=media_url, media_type=media_type)

    async def delete_post(self, post_id: UUID) -> None:
        await self._enter("delete_post")
        post = self._find_post(post_id)
        self.posts.remove(post)
        self.comments.pop(post_id, None)
        self.likes = {pair for pair in self.likes if pair[0] != post_id}

    async def set_post_like(self, post_id: UUID, liked: bool) -> PostEngagement:
        await self._enter("set_post_like")
        self._find_post(post_id)
        pair = (post_id, self.viewer.id)
        if liked:
            self.likes.add(pair)
        else:
            self.likes.discard(pair)
        view = self._post_view(self._find_post(post_id))
        return PostEngagement(
            post_id=post_id,
            like_count=view.like_count,
            comment_count=view.comment_count,
            viewer_has_liked=view.viewer_has_liked,
        )

    # -- comments ----------------------------------------------------------

    def _comment_view(self, comment: CommentRecord) -> CommentRecord:
        return comment.model_copy(
            update={
                "like_count": sum(1 for cid, _ in self.comment_likes if cid == comment.id),
                "viewer_has_liked": (comment.id, self.viewer.id) in self.comment_likes,
            }
        )

    async def fetch_comments(self, post_id: UUID) -> list[CommentRecord]:
        await self._enter("fetch_comments")
        return [self._comment_view(comment) for comment in self.comments.get(post_id, [])]

    async def add_comment(self, post_id: UUID, content: str) -> CommentRecord:
        await self._enter("add_comment")
        self._find_post(post_id)
        return self.add_comment_row(post_id, content)

    async def delete_comment(self, comment_id: UUID) -> None:
        await self._enter("delete_comment")
        for thread in self.comments.values():
            for comment in thread:
                if comment.id == comment_id:
                    thread.remove(comment)
                    return
        raise RemoteRejectedError("Comment not found", status_code=404)

    async def set_comment_like(self, comment_id: UUID, liked: bool) -> CommentEngagement:
        await self._enter("set_comment_like")
        pair = (comment_id, self.viewer.id)
        if liked:
            self.comment_likes.add(pair)
        else:
            self.comment_likes.discard(pair)
        return CommentEngagement(
            comment_id=comment_id,
            like_count=sum(1 for cid, _ in self.comment_likes if cid == comment_id),
            viewer_has_liked=liked,
        )

    # -- follows and profiles ----------------------------------------------

    def _stats(self, user_id: UUID, status: str | None = None) -> FollowStats:
        return FollowStats(
            user_id=user_id,
            followers_count=sum(1 for _, following in self.follows if following == user_id),
            following_count=sum(1 for follower, _ in self.follows if follower == user_id),
            is_following=(self.viewer.id, user_id) in self.follows,
            status=status,
        )

    async def follow(self, target_id: UUID) -> FollowStats:
        await self._enter("follow")
        if target_id == self.viewer.id:
            raise ValidationFailedError("Cannot follow yourself", status_code=400)
        pair = (self.viewer.id, target_id)
        status = "noop" if pair in self.follows else "followed"
        self.follows.add(pair)
        return self._stats(target_id, status)

    async def unfollow(self, target_id: UUID) -> FollowStats:
        await self._enter("unfollow")
        pair = (self.viewer.id, target_id)
        status = "unfollowed" if pair in self.follows else "noop"
        self.follows.discard(pair)
        return self._stats(target_id, status)

    async def fetch_following_ids(self) -> list[UUID]:
        await self._enter("fetch_following_ids")
        return [following for follower, following in self.follows if follower == self.viewer.id]

    async def fetch_follow_stats(self, user_id: UUID) -> FollowStats:
        await self._enter("fetch_follow_stats")
        return self._stats(user_id)

    async def fetch_suggestions(self, limit: int) -> list[ProfileRecord]:
        await self._enter("fetch_suggestions")
        followed = {following for follower, following in self.follows if follower == self.viewer.id}
        candidates = [p for p in self.profiles.values() if p.id != self.viewer.id and p.id not in followed]
        return candidates[:limit]

    async def fetch_profile(self, username: str) -> ProfileRecord:
        await self._enter("fetch_profile")
        for profile in self.profiles.values():
            if profile.username == username:
                return profile
        raise RemoteRejectedError("Profile not found", status_code=404)

    async def update_username(self, username: str) -> ProfileRecord:
        await self._enter("update_username")
        if any(p.username == username and p.id != self.viewer.id for p in self.profiles.values()):
            raise ValidationFailedError("Username already in use", status_code=409)
        updated = self.viewer.model_copy(update={"username": username})
        self.viewer = updated
        self.profiles[updated.id] = updated
        return updated

    # -- notifications -----------------------------------------------------

    async def fetch_notifications(self) -> list[NotificationRecord]:
        await self._enter("fetch_notifications")
        return [record.model_copy() for record in self.notifications]

    async def mark_notifications_read(self) -> None:
        await self._enter("mark_notifications_read")
        self.notifications = [record.model_copy(update={"is_read": True}) for record in self.notifications]

    # -- session -----------------------------------------------------------

    async def sign_up(self, username: str, password: str, email: str | None = None) -> AuthSession:
        await self._enter("sign_up")
        if any(p.username == username for p in self.profiles.values()):
            raise ValidationFailedError("Username already in use", status_code=409)
        profile = self.add_profile(username)
        self.viewer = profile
        return AuthSession(access_token="token", user_id=profile.id, username=username)

    async def sign_in(self, username: str, password: str) -> AuthSession:
        await self._enter("sign_in")
        for profile in self.profiles.values():
            if profile.username == username:
                self.viewer = profile
                return AuthSession(access_token="token", user_id=profile.id, username=username)
        raise AuthRequiredError("Invalid credentials", status_code=401)

    async def sign_out(self) -> None:
        await self._enter("sign_out")

    async def current_profile(self) -> ProfileRecord:
        await self._enter("current_profile")
        return self.viewer

    # -- realtime ----------------------------------------------------------

    async def _drain(
        self, name: str, queue: asyncio.Queue[ChangeEvent | SyncError | None]
    ) -> AsyncIterator[ChangeEvent]:
        # None ends the stream; a queued error drops the connection.
        await self._enter(name)
        while True:
            event = await queue.get()
            if event is None:
                return
            if isinstance(event, SyncError):
                raise event
            yield event

    def subscribe_feed(self) -> AsyncIterator[ChangeEvent]:
        if self.feed_events is None:
            self.feed_events = asyncio.Queue()
        return self._drain("subscribe_feed", self.feed_events)

    def subscribe_notifications(self) -> AsyncIterator[ChangeEvent]:
        if self.notification_events is None:
            self.notification_events = asyncio.Queue()
        return self._drain("subscribe_notifications", self.notification_events)


@pytest.fixture
def viewer() -> ProfileRecord:
    return ProfileRecord(id=uuid4(), username="viewer")


@pytest.fixture
def gateway(viewer: ProfileRecord) -> InMemoryGateway:
    return InMemoryGateway(viewer)

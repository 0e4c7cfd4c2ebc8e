"""Local mirror of the feed with optimistic mutations.

:class:`FeedStore` keeps posts, loaded comment threads and the viewer's
follow set in memory. Every mutation goes through :func:`apply_optimistic`:
the local change is visible at once, confirmed remotely, then replaced by a
fresh read. Realtime post events trigger coalesced full refetches.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable
from uuid import UUID, uuid4

from ..config import get_client_settings
from ..constants import MAX_COMMENT_LENGTH, MAX_POST_LENGTH
from .coalesce import RefetchCoalescer, RefetchState
from .derived import TrendingTag, filter_posts, posts_by_author, trending_tags
from .errors import AuthRequiredError, SyncError, ValidationFailedError
from .gateway import DataGateway
from .optimistic import apply_optimistic, fetch_result, with_timeout
from .realtime import FeedSubscription
from .records import CommentEngagement, CommentRecord, FollowStats, PostEngagement, PostRecord, ProfileRecord
from .results import MutationResult

logger = logging.getLogger(__name__)

_MEDIA_TYPES = frozenset({"image", "video"})


class FeedStore:
    def __init__(
        self,
        gateway: DataGateway,
        *,
        viewer: ProfileRecord | None = None,
        timeout: float | None = None,
        on_auth_required: Callable[[], None] | None = None,
        trending_limit: int | None = None,
        suggestion_limit: int | None = None,
    ) -> None:
        if None in (timeout, trending_limit, suggestion_limit):
            settings = get_client_settings()
            timeout = settings.request_timeout if timeout is None else timeout
            trending_limit = settings.trending_limit if trending_limit is None else trending_limit
            suggestion_limit = settings.suggestion_limit if suggestion_limit is None else suggestion_limit

        self._gateway = gateway
        self._timeout = timeout
        self._on_auth_required = on_auth_required
        self._trending_limit = trending_limit
        self._suggestion_limit = suggestion_limit
        self.viewer = viewer

        self.posts: list[PostRecord] = []
        self.comments: dict[UUID, list[CommentRecord]] = {}
        self.following: set[UUID] = set()
        self.following_count = 0
        self.suggestions: list[ProfileRecord] = []

        self._follow_in_flight: set[UUID] = set()
        self._coalescer = RefetchCoalescer(self._fetch_feed)
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    # -- state ---------------------------------------------------------------

    @property
    def viewer_id(self) -> UUID | None:
        return self.viewer.id if self.viewer is not None else None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def refetch_state(self) -> RefetchState:
        return self._coalescer.state

    @property
    def fetch_count(self) -> int:
        return self._coalescer.fetch_count

    def find_post(self, post_id: UUID) -> PostRecord | None:
        return next((post for post in self.posts if post.id == post_id), None)

    def find_comment(self, post_id: UUID, comment_id: UUID) -> CommentRecord | None:
        return next((c for c in self.comments.get(post_id, []) if c.id == comment_id), None)

    def _fail(self, error: SyncError) -> MutationResult:
        logger.info("Rejected before remote call: %s", error.message)
        if isinstance(error, AuthRequiredError) and self._on_auth_required is not None:
            self._on_auth_required()
        return MutationResult.from_error(error)

    # -- derived views -----------------------------------------------------

    def trending(self, limit: int | None = None) -> list[TrendingTag]:
        return trending_tags(self.posts, self._trending_limit if limit is None else limit)

    def visible_posts(self, search: str | None = None, tag: str | None = None) -> list[PostRecord]:
        return filter_posts(self.posts, search=search, tag=tag)

    def posts_by(self, author_id: UUID) -> list[PostRecord]:
        return posts_by_author(self.posts, author_id)

    # -- reads ---------------------------------------------------------------

    async def _fetch_feed(self) -> None:
        posts = await with_timeout(self._gateway.fetch_feed, self._timeout, "feed fetch")
        if self._closed:
            logger.debug("Discarding feed fetched after close")
            return
        self.posts = posts

    async def _reconcile_feed(self) -> None:
        if self._closed:
            return
        try:
            error = await self._coalescer.request()
        except asyncio.CancelledError:
            if self._closed:
                return
            raise
        if error is not None:
            raise error

    async def _fetch_following(self) -> None:
        if self.viewer is None:
            self.following = set()
            self.following_count = 0
            return
        ids = await with_timeout(self._gateway.fetch_following_ids, self._timeout, "following fetch")
        if self._closed:
            return
        self.following = set(ids)
        self.following_count = len(self.following)

    async def _reload_comments(self, post_id: UUID) -> list[CommentRecord]:
        rows = await with_timeout(lambda: self._gateway.fetch_comments(post_id), self._timeout, "comment fetch")
        if self._closed:
            return rows
        self.comments[post_id] = rows
        post = self.find_post(post_id)
        if post is not None:
            post.comment_count = len(rows)
        return rows

    async def load(self) -> MutationResult[list[PostRecord]]:
        """Fetch the feed and, when signed in, the viewer's follow set."""

        async def _load() -> list[PostRecord]:
            await self._reconcile_feed()
            await self._fetch_following()
            return list(self.posts)

        if self._closed:
            return MutationResult.noop("Store is closed")
        return await fetch_result(_load, on_auth_required=self._on_auth_required)

    async def refresh(self) -> MutationResult[list[PostRecord]]:
        if self._closed:
            return MutationResult.noop("Store is closed")
        return await fetch_result(self._refresh_posts, on_auth_required=self._on_auth_required)

    async def _refresh_posts(self) -> list[PostRecord]:
        await self._reconcile_feed()
        return list(self.posts)

    async def load_comments(self, post_id: UUID) -> MutationResult[list[CommentRecord]]:
        return await fetch_result(lambda: self._reload_comments(post_id), on_auth_required=self._on_auth_required)

    async def load_profile_posts(self, username: str) -> MutationResult[list[PostRecord]]:
        return await fetch_result(
            lambda: self._gateway.fetch_posts_by_user(username),
            timeout=self._timeout,
            on_auth_required=self._on_auth_required,
        )

    async def load_suggestions(self, limit: int | None = None) -> MutationResult[list[ProfileRecord]]:
        """Profiles the viewer does not follow yet, excluding the viewer."""

        result = await fetch_result(
            lambda: self._gateway.fetch_suggestions(self._suggestion_limit if limit is None else limit),
            timeout=self._timeout,
            on_auth_required=self._on_auth_required,
        )
        if result.ok and not self._closed:
            viewer_id = self.viewer_id
            self.suggestions = [
                profile for profile in result.value or [] if profile.id != viewer_id and profile.id not in self.following
            ]
        return result

    # -- likes ---------------------------------------------------------------

    async def toggle_like(self, post_id: UUID) -> MutationResult[PostEngagement]:
        if self.viewer is None:
            return self._fail(AuthRequiredError("Sign in to like posts"))
        post = self.find_post(post_id)
        if post is None:
            return self._fail(ValidationFailedError("Post is not in the feed"))
        if post.pending:
            return self._fail(ValidationFailedError("Post has not been published yet"))

        target = not post.viewer_has_liked

        def mutate() -> tuple[bool, int]:
            previous = (post.viewer_has_liked, post.like_count)
            post.viewer_has_liked = target
            post.like_count = max(0, post.like_count + (1 if target else -1))
            return previous

        def revert(previous: tuple[bool, int]) -> None:
            post.viewer_has_liked, post.like_count = previous

        return await apply_optimistic(
            mutate,
            lambda: self._gateway.set_post_like(post_id, target),
            revert,
            timeout=self._timeout,
            reconcile=self._reconcile_feed,
            on_auth_required=self._on_auth_required,
        )

    # -- follows -------------------------------------------------------------

    async def toggle_follow(self, target_id: UUID) -> MutationResult[FollowStats]:
        if self.viewer is None:
            return self._fail(AuthRequiredError("Sign in to follow people"))
        if target_id == self.viewer.id:
            return self._fail(ValidationFailedError("You cannot follow yourself"))
        if target_id in self._follow_in_flight:
            return MutationResult.noop("A follow request for this profile is already in flight")

        self._follow_in_flight.add(target_id)
        try:
            was_following = target_id in self.following

            def mutate() -> tuple[bool, int]:
                previous = (was_following, self.following_count)
                if was_following:
                    self.following.discard(target_id)
                    self.following_count = max(0, self.following_count - 1)
                else:
                    self.following.add(target_id)
                    self.following_count += 1
                return previous

            def revert(previous: tuple[bool, int]) -> None:
                following, self.following_count = previous
                if following:
                    self.following.add(target_id)
                else:
                    self.following.discard(target_id)

            async def remote() -> FollowStats:
                if was_following:
                    return await self._gateway.unfollow(target_id)
                return await self._gateway.follow(target_id)

            return await apply_optimistic(
                mutate,
                remote,
                revert,
                timeout=self._timeout,
                reconcile=self._fetch_following,
                on_auth_required=self._on_auth_required,
            )
        finally:
            self._follow_in_flight.discard(target_id)

    # -- comments ------------------------------------------------------------

    async def add_comment(self, post_id: UUID, content: str) -> MutationResult[CommentRecord]:
        viewer = self.viewer
        if viewer is None:
            return self._fail(AuthRequiredError("Sign in to comment"))
        text = (content or "").strip()
        if not text:
            return self._fail(ValidationFailedError("Comment cannot be empty"))
        if len(text) > MAX_COMMENT_LENGTH:
            return self._fail(ValidationFailedError(f"Comments are limited to {MAX_COMMENT_LENGTH} characters"))
        post = self.find_post(post_id)
        if post is None:
            return self._fail(ValidationFailedError("Post is not in the feed"))

        placeholder = CommentRecord(
            id=uuid4(),
            post_id=post_id,
            user_id=viewer.id,
            username=viewer.username,
            avatar_url=viewer.avatar_url,
            content=text,
            pending=True,
        )
        thread = self.comments.setdefault(post_id, [])

        def mutate() -> int:
            thread.insert(0, placeholder)
            post.comment_count += 1
            return post.comment_count - 1

        def revert(previous_count: int) -> None:
            if placeholder in thread:
                thread.remove(placeholder)
            post.comment_count = previous_count

        async def remote() -> CommentRecord:
            row = await self._gateway.add_comment(post_id, text)
            if placeholder in thread:
                thread[thread.index(placeholder)] = row
            return row

        return await apply_optimistic(
            mutate,
            remote,
            revert,
            timeout=self._timeout,
            reconcile=lambda: self._reload_comments(post_id),
            on_auth_required=self._on_auth_required,
        )

    async def delete_comment(self, post_id: UUID, comment_id: UUID) -> MutationResult[None]:
        viewer = self.viewer
        if viewer is None:
            return self._fail(AuthRequiredError("Sign in to delete comments"))
        thread = self.comments.get(post_id, [])
        comment = self.find_comment(post_id, comment_id)
        if comment is None:
            return self._fail(ValidationFailedError("Comment is not loaded"))
        if comment.user_id != viewer.id:
            return self._fail(ValidationFailedError("Only the author can delete this comment"))
        if comment.pending:
            return self._fail(ValidationFailedError("Comment has not been published yet"))
        post = self.find_post(post_id)

        def mutate() -> tuple[int, int | None]:
            index = thread.index(comment)
            thread.pop(index)
            previous_count = post.comment_count if post is not None else None
            if post is not None:
                post.comment_count = max(0, post.comment_count - 1)
            return index, previous_count

        def revert(previous: tuple[int, int | None]) -> None:
            index, previous_count = previous
            thread.insert(min(index, len(thread)), comment)
            if post is not None and previous_count is not None:
                post.comment_count = previous_count

        return await apply_optimistic(
            mutate,
            lambda: self._gateway.delete_comment(comment_id),
            revert,
            timeout=self._timeout,
            reconcile=lambda: self._reload_comments(post_id),
            on_auth_required=self._on_auth_required,
        )

    async def toggle_comment_like(self, post_id: UUID, comment_id: UUID) -> MutationResult[CommentEngagement]:
        if self.viewer is None:
            return self._fail(AuthRequiredError("Sign in to like comments"))
        comment = self.find_comment(post_id, comment_id)
        if comment is None:
            return self._fail(ValidationFailedError("Comment is not loaded"))
        if comment.pending:
            return self._fail(ValidationFailedError("Comment has not been published yet"))

        target = not comment.viewer_has_liked

        def mutate() -> tuple[bool, int]:
            previous = (comment.viewer_has_liked, comment.like_count)
            comment.viewer_has_liked = target
            comment.like_count = max(0, comment.like_count + (1 if target else -1))
            return previous

        def revert(previous: tuple[bool, int]) -> None:
            comment.viewer_has_liked, comment.like_count = previous

        return await apply_optimistic(
            mutate,
            lambda: self._gateway.set_comment_like(comment_id, target),
            revert,
            timeout=self._timeout,
            reconcile=lambda: self._reload_comments(post_id),
            on_auth_required=self._on_auth_required,
        )

    # -- posts ---------------------------------------------------------------

    async def create_post(
        self,
        content: str,
        media_url: str | None = None,
        media_type: str | None = None,
    ) -> MutationResult[PostRecord]:
        viewer = self.viewer
        if viewer is None:
            return self._fail(AuthRequiredError("Sign in to post"))
        text = (content or "").strip()
        media = (media_url or "").strip() or None
        if not text and media is None:
            return self._fail(ValidationFailedError("A post needs text or media"))
        if len(text) > MAX_POST_LENGTH:
            return self._fail(ValidationFailedError(f"Posts are limited to {MAX_POST_LENGTH} characters"))
        if media is not None and media_type is not None and media_type not in _MEDIA_TYPES:
            return self._fail(ValidationFailedError("Media must be an image or a video"))
        kind = media_type if media is not None else None

        placeholder = PostRecord(
            id=uuid4(),
            user_id=viewer.id,
            content=text,
            media_url=media,
            media_type=kind,
            username=viewer.username,
            avatar_url=viewer.avatar_url,
            pending=True,
        )

        def mutate() -> None:
            self.posts.insert(0, placeholder)

        def revert(_: None) -> None:
            if placeholder in self.posts:
                self.posts.remove(placeholder)

        async def remote() -> PostRecord:
            row = await self._gateway.create_post(text, media_url=media, media_type=kind)
            if placeholder in self.posts:
                self.posts[self.posts.index(placeholder)] = row
            return row

        return await apply_optimistic(
            mutate,
            remote,
            revert,
            timeout=self._timeout,
            reconcile=self._reconcile_feed,
            on_auth_required=self._on_auth_required,
        )

    async def delete_post(self, post_id: UUID) -> MutationResult[None]:
        viewer = self.viewer
        if viewer is None:
            return self._fail(AuthRequiredError("Sign in to delete posts"))
        post = self.find_post(post_id)
        if post is None:
            return self._fail(ValidationFailedError("Post is not in the feed"))
        if post.user_id != viewer.id:
            return self._fail(ValidationFailedError("Only the author can delete this post"))
        if post.pending:
            return self._fail(ValidationFailedError("Post has not been published yet"))
        posts = self.posts

        def mutate() -> tuple[int, list[CommentRecord] | None]:
            index = posts.index(post)
            posts.pop(index)
            return index, self.comments.pop(post_id, None)

        def revert(previous: tuple[int, list[CommentRecord] | None]) -> None:
            index, thread = previous
            # A refetch in the meantime already holds the authoritative list.
            if self.posts is posts:
                posts.insert(min(index, len(posts)), post)
            if thread is not None:
                self.comments.setdefault(post_id, thread)

        return await apply_optimistic(
            mutate,
            lambda: self._gateway.delete_post(post_id),
            revert,
            timeout=self._timeout,
            reconcile=self._reconcile_feed,
            on_auth_required=self._on_auth_required,
        )

    # -- realtime ------------------------------------------------------------

    def request_refetch(self) -> None:
        """Schedule a coalesced feed refetch without waiting for it."""
        if self._closed:
            return
        self._coalescer.trigger()

    def start_realtime(self) -> asyncio.Task[None]:
        subscription = FeedSubscription(self._gateway, self)
        task = asyncio.get_running_loop().create_task(subscription.run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def close(self) -> None:
        """Stop realtime consumption and drop any fetch still in flight."""
        if self._closed:
            return
        self._closed = True
        self._coalescer.close()
        for task in list(self._tasks):
            task.cancel()


__all__ = ["FeedStore"]

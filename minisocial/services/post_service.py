"""Business logic for posts, comments and like sets stored in PostgreSQL."""
from __future__ import annotations

import logging
from typing import Any, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import NOTIFICATION_COMMENT, NOTIFICATION_LIKE
from ..models import Comment, CommentLike, Notification, Post, PostLike, Profile
from .notification_service import add_notification

logger = logging.getLogger(__name__)


def create_post_record(
    db: Session,
    *,
    user_id: UUID,
    content: str,
    media_url: str | None = None,
    media_type: str | None = None,
) -> Post:
    """Create and persist a new post for the given author."""

    author = db.get(Profile, user_id)
    if author is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    text = (content or "").strip()
    media = (media_url or "").strip() or None
    if not text and media is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="A post needs text or media")

    post = Post(user_id=user_id, content=text, media_url=media, media_type=media_type if media else None)
    db.add(post)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create post") from exc
    db.refresh(post)
    return post


def list_feed_records(
    db: Session,
    *,
    viewer_id: UUID | None = None,
    author_id: UUID | None = None,
) -> list[dict[str, Any]]:
    """Return posts newest first with author details and engagement counters."""

    like_count_subquery = (
        select(func.count(PostLike.id)).where(PostLike.post_id == Post.id).scalar_subquery()
    )
    comment_count_subquery = (
        select(func.count(Comment.id)).where(Comment.post_id == Post.id).scalar_subquery()
    )
    statement = (
        select(
            Post,
            Profile.username.label("username"),
            Profile.avatar_url.label("avatar_url"),
            like_count_subquery,
            comment_count_subquery,
        )
        .join(Profile, Post.user_id == Profile.id)
    )

    viewer_like_col = None
    if viewer_id is not None:
        viewer_like_col = (
            select(func.count(PostLike.id))
            .where(PostLike.post_id == Post.id, PostLike.user_id == viewer_id)
            .scalar_subquery()
        )
        statement = statement.add_columns(viewer_like_col)

    if author_id is not None:
        statement = statement.where(Post.user_id == author_id)

    statement = statement.order_by(Post.created_at.desc(), Post.id)

    records: list[dict[str, Any]] = []
    for row in db.execute(statement).all():
        post, username, avatar_url, like_count, comment_count = row[:5]
        viewer_like_value = row[5] if viewer_like_col is not None else None
        records.append(
            {
                "id": post.id,
                "user_id": post.user_id,
                "content": post.content,
                "media_url": post.media_url,
                "media_type": post.media_type,
                "created_at": post.created_at,
                "username": cast(str | None, username),
                "avatar_url": cast(str | None, avatar_url),
                "like_count": int(like_count or 0),
                "comment_count": int(comment_count or 0),
                "viewer_has_liked": bool(viewer_like_value),
            }
        )
    return records


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _get_comment_or_404(db: Session, comment_id: UUID) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def get_post_engagement_snapshot(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    like_count = db.scalar(select(func.count(PostLike.id)).where(PostLike.post_id == post_id)) or 0
    comment_count = db.scalar(select(func.count(Comment.id)).where(Comment.post_id == post_id)) or 0
    viewer_has_liked = False
    if viewer_id is not None:
        viewer_has_liked = (
            db.scalar(
                select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == viewer_id).limit(1)
            )
            is not None
        )
    return {
        "post_id": post_id,
        "like_count": int(like_count),
        "comment_count": int(comment_count),
        "viewer_has_liked": viewer_has_liked,
    }


def set_post_like_state(
    db: Session,
    *,
    post_id: UUID,
    user_id: UUID,
    should_like: bool,
) -> dict[str, Any]:
    """Converge the (post, user) like pair to ``should_like``.

    Repeating the same request is a no-op, so the pair stays unique.
    """

    post = _get_post_or_404(db, post_id)

    existing = db.scalar(select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id))
    created = False
    if should_like and existing is None:
        db.add(PostLike(post_id=post_id, user_id=user_id))
        created = True
    elif not should_like and existing is not None:
        db.delete(existing)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same pair first; the state already matches.
        db.rollback()
        created = False
        logger.info("Like on post %s by %s already recorded", post_id, user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update like") from exc

    if created:
        _notify(db, recipient_id=post.user_id, actor_id=user_id, type_=NOTIFICATION_LIKE, post_id=post_id)

    return get_post_engagement_snapshot(db, post_id=post_id, viewer_id=user_id)


def list_post_comments(db: Session, *, post_id: UUID, viewer_id: UUID | None = None) -> list[dict[str, Any]]:
    """Return comments for a post newest first, each with its like counters."""

    _get_post_or_404(db, post_id)
    like_count_subquery = (
        select(func.count(CommentLike.id)).where(CommentLike.comment_id == Comment.id).scalar_subquery()
    )
    stmt = (
        select(Comment, Profile.username, Profile.avatar_url, like_count_subquery)
        .join(Profile, Comment.user_id == Profile.id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id)
    )
    liked_ids: set[UUID] = set()
    if viewer_id is not None:
        liked_ids = set(
            db.scalars(
                select(CommentLike.comment_id)
                .join(Comment, CommentLike.comment_id == Comment.id)
                .where(Comment.post_id == post_id, CommentLike.user_id == viewer_id)
            )
        )

    return [
        _comment_payload(comment, username, avatar_url, int(like_count or 0), comment.id in liked_ids)
        for comment, username, avatar_url, like_count in db.execute(stmt).all()
    ]


def _comment_payload(
    comment: Comment,
    username: str | None,
    avatar_url: str | None,
    like_count: int = 0,
    viewer_has_liked: bool = False,
) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "user_id": comment.user_id,
        "username": username,
        "avatar_url": avatar_url,
        "content": comment.content,
        "created_at": comment.created_at,
        "like_count": like_count,
        "viewer_has_liked": viewer_has_liked,
    }


def create_post_comment(
    db: Session,
    *,
    post_id: UUID,
    author: Profile,
    content: str,
) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")

    comment = Comment(post_id=post.id, user_id=author.id, content=text)
    db.add(comment)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add comment") from exc

    db.refresh(comment)
    _notify(db, recipient_id=post.user_id, actor_id=author.id, type_=NOTIFICATION_COMMENT, post_id=post.id)
    return _comment_payload(comment, author.username, author.avatar_url)


def delete_comment_record(db: Session, *, comment_id: UUID, requester_id: UUID) -> UUID:
    """Delete a comment owned by ``requester_id`` and return its post id."""

    comment = _get_comment_or_404(db, comment_id)
    if comment.user_id != requester_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this comment")
    post_id = cast(UUID, comment.post_id)
    db.delete(comment)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete comment") from exc
    return post_id


def set_comment_like_state(
    db: Session,
    *,
    comment_id: UUID,
    user_id: UUID,
    should_like: bool,
) -> dict[str, Any]:
    _get_comment_or_404(db, comment_id)

    existing = db.scalar(
        select(CommentLike).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
    )
    if should_like and existing is None:
        db.add(CommentLike(comment_id=comment_id, user_id=user_id))
    elif not should_like and existing is not None:
        db.delete(existing)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Like on comment %s by %s already recorded", comment_id, user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update like") from exc

    like_count = db.scalar(select(func.count(CommentLike.id)).where(CommentLike.comment_id == comment_id)) or 0
    viewer_has_liked = (
        db.scalar(
            select(CommentLike.id).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id).limit(1)
        )
        is not None
    )
    return {"comment_id": comment_id, "like_count": int(like_count), "viewer_has_liked": viewer_has_liked}


def delete_post_record(db: Session, *, post_id: UUID, requester_id: UUID) -> None:
    """Delete a post when the requester is its author.

    Comments and likes go with it; notifications about it survive without the
    post reference.
    """

    post = _get_post_or_404(db, post_id)
    if cast(UUID, post.user_id) != requester_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this post")

    try:
        db.execute(update(Notification).where(Notification.post_id == post_id).values(post_id=None))
        db.delete(post)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete post") from exc


def _notify(db: Session, *, recipient_id: UUID, actor_id: UUID, type_: str, post_id: UUID | None) -> None:
    try:
        add_notification(db, recipient_id=recipient_id, actor_id=actor_id, type_=type_, post_id=post_id)
    except (ValueError, SQLAlchemyError):
        db.rollback()
        logger.warning("Failed to record %s notification for post %s", type_, post_id)


__all__ = [
    "create_post_record",
    "list_feed_records",
    "get_post_engagement_snapshot",
    "set_post_like_state",
    "list_post_comments",
    "create_post_comment",
    "delete_comment_record",
    "set_comment_like_state",
    "delete_post_record",
]

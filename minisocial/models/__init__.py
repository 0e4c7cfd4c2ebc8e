"""Convenience exports for ORM models."""
from .follow import Follow
from .notification import Notification
from .post import Comment, CommentLike, Post, PostLike
from .profile import Profile

__all__ = [
    "Comment",
    "CommentLike",
    "Follow",
    "Notification",
    "Post",
    "PostLike",
    "Profile",
]

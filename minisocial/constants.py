"""Project-wide constant values."""
from __future__ import annotations

MAX_POST_LENGTH = 280
MAX_COMMENT_LENGTH = 500

# Notification types emitted by the data service.
NOTIFICATION_LIKE = "like"
NOTIFICATION_COMMENT = "comment"
NOTIFICATION_FOLLOW = "follow"

FEED_CHANNEL = "posts"  # realtime channel carrying post inserts/deletes
NOTIFICATION_CHANNEL = "notifications"

__all__ = [
    "MAX_POST_LENGTH",
    "MAX_COMMENT_LENGTH",
    "NOTIFICATION_LIKE",
    "NOTIFICATION_COMMENT",
    "NOTIFICATION_FOLLOW",
    "FEED_CHANNEL",
    "NOTIFICATION_CHANNEL",
]

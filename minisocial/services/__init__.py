"""Convenience exports for service layer."""
from .auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_optional_user,
    register_user,
)
from .follow_service import FollowStats, follow_user, get_follow_stats, list_following_ids, unfollow_user
from .notification_service import (
    NotificationType,
    add_notification,
    count_unread_notifications,
    list_notifications,
    mark_all_read,
)
from .post_service import (
    create_post_comment,
    create_post_record,
    delete_comment_record,
    delete_post_record,
    get_post_engagement_snapshot,
    list_feed_records,
    list_post_comments,
    set_comment_like_state,
    set_post_like_state,
)
from .profile_service import get_profile_by_username, list_suggested_profiles, update_profile
from .realtime import RealtimeHub, change_event, notification_channel, realtime_hub

__all__ = [
    "authenticate_user",
    "register_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
    "FollowStats",
    "follow_user",
    "unfollow_user",
    "get_follow_stats",
    "list_following_ids",
    "NotificationType",
    "add_notification",
    "count_unread_notifications",
    "list_notifications",
    "mark_all_read",
    "create_post_comment",
    "create_post_record",
    "delete_comment_record",
    "delete_post_record",
    "get_post_engagement_snapshot",
    "list_feed_records",
    "list_post_comments",
    "set_comment_like_state",
    "set_post_like_state",
    "get_profile_by_username",
    "list_suggested_profiles",
    "update_profile",
    "RealtimeHub",
    "change_event",
    "notification_channel",
    "realtime_hub",
]

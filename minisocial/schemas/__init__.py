"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, RegisterRequest
from .follow import FollowActionResponse, FollowingListResponse, FollowStatsResponse
from .notifications import NotificationListResponse, NotificationResponse, NotificationSummaryResponse
from .posts import (
    CommentCreate,
    CommentEngagementResponse,
    CommentListResponse,
    CommentResponse,
    PostCreate,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
)
from .profiles import ProfileListResponse, ProfileResponse, ProfileUpdateRequest

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "FollowActionResponse",
    "FollowingListResponse",
    "FollowStatsResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "NotificationSummaryResponse",
    "CommentCreate",
    "CommentEngagementResponse",
    "CommentListResponse",
    "CommentResponse",
    "PostCreate",
    "PostEngagementResponse",
    "PostFeedResponse",
    "PostResponse",
    "ProfileListResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
]

"""Client synchronisation core for MiniSocial."""
from .coalesce import RefetchCoalescer, RefetchState
from .derived import TrendingTag, extract_tags, filter_posts, posts_by_author, trending_tags
from .errors import (
    AuthRequiredError,
    FailureKind,
    RemoteRejectedError,
    RemoteUnavailableError,
    SyncError,
    ValidationFailedError,
)
from .feed import FeedStore
from .gateway import DataGateway, HttpGateway
from .inbox import NotificationInbox
from .optimistic import apply_optimistic
from .realtime import FeedSubscription
from .records import (
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
from .results import MutationResult, Outcome
from .session import AccountSession

__all__ = [
    "AccountSession",
    "AuthRequiredError",
    "AuthSession",
    "ChangeEvent",
    "CommentEngagement",
    "CommentRecord",
    "DataGateway",
    "FailureKind",
    "FeedStore",
    "FeedSubscription",
    "FollowStats",
    "HttpGateway",
    "MutationResult",
    "NotificationInbox",
    "NotificationRecord",
    "Outcome",
    "PostEngagement",
    "PostRecord",
    "ProfileRecord",
    "RefetchCoalescer",
    "RefetchState",
    "RemoteRejectedError",
    "RemoteUnavailableError",
    "SyncError",
    "TrendingTag",
    "ValidationFailedError",
    "apply_optimistic",
    "extract_tags",
    "filter_posts",
    "posts_by_author",
    "trending_tags",
]

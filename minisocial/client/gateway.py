"""Remote access to the MiniSocial data service.

Stores talk to a :class:`DataGateway`. :class:`HttpGateway` implements it over
``httpx`` for the HTTP routes and ``websockets`` for the change channels; tests
swap in in-memory doubles.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Protocol, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import WebSocketException

from ..config import get_client_settings
from .errors import AuthRequiredError, RemoteRejectedError, RemoteUnavailableError, error_for_status
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

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

# Control frames the service sends that carry no row change.
_CONTROL_FRAMES = frozenset({"ready", "pong"})


class DataGateway(Protocol):
    async def fetch_feed(self) -> list[PostRecord]: ...

    async def fetch_posts_by_user(self, username: str) -> list[PostRecord]: ...

    async def create_post(
        self, content: str, *, media_url: str | None = None, media_type: str | None = None
    ) -> PostRecord: ...

    async def delete_post(self, post_id: UUID) -> None: ...

    async def set_post_like(self, post_id: UUID, liked: bool) -> PostEngagement: ...

    async def fetch_comments(self, post_id: UUID) -> list[CommentRecord]: ...

    async def add_comment(self, post_id: UUID, content: str) -> CommentRecord: ...

    async def delete_comment(self, comment_id: UUID) -> None: ...

    async def set_comment_like(self, comment_id: UUID, liked: bool) -> CommentEngagement: ...

    async def follow(self, target_id: UUID) -> FollowStats: ...

    async def unfollow(self, target_id: UUID) -> FollowStats: ...

    async def fetch_following_ids(self) -> list[UUID]: ...

    async def fetch_follow_stats(self, user_id: UUID) -> FollowStats: ...

    async def fetch_suggestions(self, limit: int) -> list[ProfileRecord]: ...

    async def fetch_profile(self, username: str) -> ProfileRecord: ...

    async def update_username(self, username: str) -> ProfileRecord: ...

    async def fetch_notifications(self) -> list[NotificationRecord]: ...

    async def mark_notifications_read(self) -> None: ...

    async def sign_up(self, username: str, password: str, email: str | None = None) -> AuthSession: ...

    async def sign_in(self, username: str, password: str) -> AuthSession: ...

    async def sign_out(self) -> None: ...

    async def current_profile(self) -> ProfileRecord: ...

    def subscribe_feed(self) -> AsyncIterator[ChangeEvent]: ...

    def subscribe_notifications(self) -> AsyncIterator[ChangeEvent]: ...


def _parse(model: type[R], data: Any) -> R:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise RemoteRejectedError(f"Malformed {model.__name__} row", detail=str(exc)) from exc


def _parse_items(model: type[R], data: Any) -> list[R]:
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise RemoteRejectedError(f"Expected a list of {model.__name__} rows")
    return [_parse(model, item) for item in items]


def _error_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    return body.get("detail") if isinstance(body, dict) else body


class HttpGateway:
    """:class:`DataGateway` over the service's HTTP and WebSocket routes.

    Reads (``GET``) are retried with exponential backoff on network failures;
    writes are sent exactly once.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        read_retries: int | None = None,
        retry_backoff: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if None in (base_url, timeout, read_retries, retry_backoff):
            settings = get_client_settings()
            base_url = base_url or settings.api_base_url
            timeout = settings.request_timeout if timeout is None else timeout
            read_retries = settings.read_retries if read_retries is None else read_retries
            retry_backoff = settings.retry_backoff if retry_backoff is None else retry_backoff

        self._base_url = base_url.rstrip("/")
        self._read_retries = max(1, int(read_retries))
        self._retry_backoff = float(retry_backoff)
        self._token = token
        self._client = httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=transport)

    @property
    def token(self) -> str | None:
        return self._token

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- transport ---------------------------------------------------------

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise RemoteUnavailableError(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise RemoteUnavailableError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise error_for_status(response.status_code, _error_detail(response))
        return response

    async def _read(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        delay = self._retry_backoff
        for attempt in range(1, self._read_retries + 1):
            try:
                response = await self._send("GET", path, params=params)
            except RemoteUnavailableError as exc:
                if attempt >= self._read_retries:
                    raise
                logger.warning(
                    "GET %s failed (%s); retry %d/%d in %.2fs",
                    path,
                    exc.message,
                    attempt,
                    self._read_retries - 1,
                    delay,
                )
                await asyncio.sleep(delay)
                delay *= 2
                continue
            return response.json()
        raise RemoteUnavailableError(f"GET {path} failed")  # pragma: no cover - loop always returns or raises

    async def _write(self, method: str, path: str, *, json: Any = None) -> Any:
        response = await self._send(method, path, json=json)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -- posts -------------------------------------------------------------

    async def fetch_feed(self) -> list[PostRecord]:
        return _parse_items(PostRecord, await self._read("/posts/feed"))

    async def fetch_posts_by_user(self, username: str) -> list[PostRecord]:
        return _parse_items(PostRecord, await self._read(f"/posts/by-user/{username}"))

    async def create_post(
        self, content: str, *, media_url: str | None = None, media_type: str | None = None
    ) -> PostRecord:
        payload = {"content": content, "media_url": media_url, "media_type": media_type}
        return _parse(PostRecord, await self._write("POST", "/posts", json=payload))

    async def delete_post(self, post_id: UUID) -> None:
        await self._write("DELETE", f"/posts/{post_id}")

    async def set_post_like(self, post_id: UUID, liked: bool) -> PostEngagement:
        method = "PUT" if liked else "DELETE"
        return _parse(PostEngagement, await self._write(method, f"/posts/{post_id}/likes"))

    # -- comments ----------------------------------------------------------

    async def fetch_comments(self, post_id: UUID) -> list[CommentRecord]:
        return _parse_items(CommentRecord, await self._read(f"/posts/{post_id}/comments"))

    async def add_comment(self, post_id: UUID, content: str) -> CommentRecord:
        data = await self._write("POST", f"/posts/{post_id}/comments", json={"content": content})
        return _parse(CommentRecord, data)

    async def delete_comment(self, comment_id: UUID) -> None:
        await self._write("DELETE", f"/posts/comments/{comment_id}")

    async def set_comment_like(self, comment_id: UUID, liked: bool) -> CommentEngagement:
        method = "PUT" if liked else "DELETE"
        return _parse(CommentEngagement, await self._write(method, f"/posts/comments/{comment_id}/likes"))

    # -- follows and profiles ----------------------------------------------

    async def follow(self, target_id: UUID) -> FollowStats:
        return _parse(FollowStats, await self._write("POST", f"/follows/{target_id}"))

    async def unfollow(self, target_id: UUID) -> FollowStats:
        return _parse(FollowStats, await self._write("DELETE", f"/follows/{target_id}"))

    async def fetch_following_ids(self) -> list[UUID]:
        data = await self._read("/follows/following")
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise RemoteRejectedError("Expected a list of followed profile ids")
        try:
            return [UUID(str(item)) for item in items]
        except ValueError as exc:
            raise RemoteRejectedError("Malformed followed profile id") from exc

    async def fetch_follow_stats(self, user_id: UUID) -> FollowStats:
        return _parse(FollowStats, await self._read(f"/follows/stats/{user_id}"))

    async def fetch_suggestions(self, limit: int) -> list[ProfileRecord]:
        return _parse_items(ProfileRecord, await self._read("/profiles/suggestions", params={"limit": limit}))

    async def fetch_profile(self, username: str) -> ProfileRecord:
        return _parse(ProfileRecord, await self._read(f"/profiles/{username}"))

    async def update_username(self, username: str) -> ProfileRecord:
        return _parse(ProfileRecord, await self._write("PATCH", "/profiles/me", json={"username": username}))

    # -- notifications -----------------------------------------------------

    async def fetch_notifications(self) -> list[NotificationRecord]:
        return _parse_items(NotificationRecord, await self._read("/notifications/"))

    async def mark_notifications_read(self) -> None:
        await self._write("POST", "/notifications/mark-read")

    # -- session -----------------------------------------------------------

    async def sign_up(self, username: str, password: str, email: str | None = None) -> AuthSession:
        payload = {"username": username, "password": password, "email": email}
        session = _parse(AuthSession, await self._write("POST", "/auth/register", json=payload))
        self._token = session.access_token
        return session

    async def sign_in(self, username: str, password: str) -> AuthSession:
        payload = {"username": username, "password": password}
        session = _parse(AuthSession, await self._write("POST", "/auth/login", json=payload))
        self._token = session.access_token
        return session

    async def sign_out(self) -> None:
        try:
            await self._write("POST", "/auth/logout")
        finally:
            self._token = None

    async def current_profile(self) -> ProfileRecord:
        return _parse(ProfileRecord, await self._read("/auth/me"))

    # -- realtime ----------------------------------------------------------

    def _ws_url(self, path: str, params: dict[str, str] | None = None) -> str:
        url = httpx.URL(self._base_url)
        scheme = "wss" if url.scheme == "https" else "ws"
        target = url.copy_with(scheme=scheme, path=url.path.rstrip("/") + path)
        if params:
            target = target.copy_merge_params(params)
        return str(target)

    async def _stream(self, url: str, *, label: str) -> AsyncIterator[ChangeEvent]:
        try:
            async with ws_connect(url) as connection:
                async for raw in connection:
                    try:
                        event = ChangeEvent.model_validate_json(raw)
                    except ValidationError:
                        logger.warning("Dropping malformed realtime frame")
                        continue
                    if event.type in _CONTROL_FRAMES:
                        continue
                    yield event
        except (OSError, WebSocketException) as exc:
            raise RemoteUnavailableError(f"Realtime connection to {label} lost") from exc

    def subscribe_feed(self) -> AsyncIterator[ChangeEvent]:
        return self._stream(self._ws_url("/ws/feed"), label="/ws/feed")

    def subscribe_notifications(self) -> AsyncIterator[ChangeEvent]:
        if not self._token:
            raise AuthRequiredError("Notification stream requires a signed-in session")
        return self._stream(self._ws_url("/notifications/ws", {"token": self._token}), label="/notifications/ws")


__all__ = ["DataGateway", "HttpGateway"]

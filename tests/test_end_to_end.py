"""Client stores driven against the real application over ASGI."""
from __future__ import annotations

import asyncio
import os
from typing import Iterator

import httpx
import pytest
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_minisocial.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from minisocial.client import (  # noqa: E402
    AccountSession,
    FailureKind,
    FeedStore,
    HttpGateway,
    NotificationInbox,
    Outcome,
)
from minisocial.database import Base, SessionLocal, engine  # noqa: E402
from minisocial.main import app  # noqa: E402
from minisocial.models import Profile  # noqa: E402


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    # ASGITransport does not run startup handlers.
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(Profile))
        session.commit()
    yield


def _gateway() -> HttpGateway:
    return HttpGateway(
        "http://testserver",
        timeout=5.0,
        read_retries=1,
        retry_backoff=0,
        transport=httpx.ASGITransport(app=app),
    )


def test_two_accounts_interact_through_the_service() -> None:
    async def scenario():
        async with _gateway() as alice_gateway, _gateway() as bob_gateway:
            alice = AccountSession(alice_gateway, timeout=5.0)
            bob = AccountSession(bob_gateway, timeout=5.0)
            assert (await alice.sign_up("alice", "password123")).ok
            assert (await bob.sign_up("bob", "password123")).ok

            bob_feed = FeedStore(bob_gateway, viewer=bob.profile, timeout=5.0, trending_limit=5, suggestion_limit=5)
            created = await bob_feed.create_post("first post #hello")
            assert created.outcome is Outcome.APPLIED
            assert bob_feed.posts[0].pending is False

            alice_feed = FeedStore(
                alice_gateway, viewer=alice.profile, timeout=5.0, trending_limit=5, suggestion_limit=5
            )
            assert (await alice_feed.load()).ok
            post = alice_feed.posts[0]

            liked = await alice_feed.toggle_like(post.id)
            commented = await alice_feed.add_comment(post.id, "nice one")
            followed = await alice_feed.toggle_follow(bob.profile.id)
            suggestions = await alice_feed.load_suggestions()

            inbox = NotificationInbox(bob_gateway, timeout=5.0)
            assert (await inbox.load()).ok
            unread_before = inbox.unread_count
            marked = await inbox.mark_all_read()

            alice_feed.close()
            bob_feed.close()
            inbox.close()
            return alice_feed, post, liked, commented, followed, suggestions, inbox, unread_before, marked

    alice_feed, post, liked, commented, followed, suggestions, inbox, unread_before, marked = asyncio.run(scenario())

    assert liked.outcome is Outcome.APPLIED
    assert post.viewer_has_liked is True
    assert post.like_count == 1
    assert commented.outcome is Outcome.APPLIED
    assert alice_feed.comments[post.id][0].content == "nice one"
    assert followed.outcome is Outcome.APPLIED
    assert followed.value.followers_count == 1
    assert post.user_id in alice_feed.following
    assert suggestions.ok
    assert alice_feed.suggestions == []
    assert alice_feed.trending() == [("#hello", 1)]
    assert unread_before == 3
    assert [item.type for item in inbox.items] == ["follow", "comment", "like"]
    assert marked.outcome is Outcome.APPLIED
    assert inbox.unread_count == 0


def test_rejected_writes_surface_as_failures() -> None:
    async def scenario():
        async with _gateway() as gateway:
            session = AccountSession(gateway, timeout=5.0)
            bad_login = await session.sign_in("ghost", "password123")
            await session.sign_up("carol", "password123")
            duplicate = await AccountSession(gateway, timeout=5.0).sign_up("carol", "password123")
            feed = FeedStore(gateway, viewer=session.profile, timeout=5.0, trending_limit=5, suggestion_limit=5)
            await feed.load()
            too_short = await session.update_username("ab")
            renamed = await session.update_username("caroline")
            feed.close()
            return session, bad_login, duplicate, too_short, renamed

    session, bad_login, duplicate, too_short, renamed = asyncio.run(scenario())

    assert bad_login.failure is FailureKind.AUTH
    assert duplicate.failure is FailureKind.VALIDATION
    assert too_short.failure is FailureKind.VALIDATION
    assert renamed.outcome is Outcome.APPLIED
    assert session.profile.username == "caroline"

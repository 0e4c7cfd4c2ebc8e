"""Integration tests for session, follow and profile routes."""
from __future__ import annotations

import os
from typing import Iterator
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_minisocial.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from minisocial.database import Base, SessionLocal, engine  # noqa: E402
from minisocial.main import app  # noqa: E402
from minisocial.models import Profile  # noqa: E402
from minisocial.services import get_current_user  # noqa: E402


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(Profile))
        session.commit()
    yield
    app.dependency_overrides.clear()


def _register(client: TestClient, username: str, email: str | None = None) -> tuple[dict[str, str], UUID]:
    response = client.post(
        "/auth/register",
        json={"username": username, "password": "password123", "email": email},
    )
    assert response.status_code == 201, response.text
    payload = response.json()
    return {"Authorization": f"Bearer {payload['access_token']}"}, UUID(payload["user_id"])


def test_register_login_me_logout() -> None:
    with TestClient(app) as client:
        headers, user_id = _register(client, "alice", "alice@example.com")
        duplicate = client.post("/auth/register", json={"username": "alice", "password": "password123"})
        same_email = client.post(
            "/auth/register",
            json={"username": "alice2", "password": "password123", "email": "alice@example.com"},
        )
        bad_login = client.post("/auth/login", json={"username": "alice", "password": "wrong-password"})
        login = client.post("/auth/login", json={"username": "alice", "password": "password123"})
        me = client.get("/auth/me", headers=headers)
        garbage = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        logout = client.post("/auth/logout", headers=headers)

    assert duplicate.status_code == 409
    assert same_email.status_code == 409
    assert bad_login.status_code == 401
    assert login.status_code == 200
    assert login.json()["user_id"] == str(user_id)
    assert me.json()["username"] == "alice"
    assert me.json()["email"] == "alice@example.com"
    assert garbage.status_code == 401
    assert logout.status_code == 204


def test_follow_unfollow_and_stats() -> None:
    with TestClient(app) as client:
        alice_headers, alice_id = _register(client, "alice")
        _, bob_id = _register(client, "bob")

        followed = client.post(f"/follows/{bob_id}", headers=alice_headers)
        repeat = client.post(f"/follows/{bob_id}", headers=alice_headers)
        following = client.get("/follows/following", headers=alice_headers)
        stats = client.get(f"/follows/stats/{bob_id}", headers=alice_headers)
        unfollowed = client.delete(f"/follows/{bob_id}", headers=alice_headers)
        noop = client.delete(f"/follows/{bob_id}", headers=alice_headers)
        self_follow = client.post(f"/follows/{alice_id}", headers=alice_headers)

    assert followed.status_code == 201
    assert followed.json()["status"] == "followed"
    assert followed.json()["followers_count"] == 1
    assert repeat.json()["status"] == "noop"
    assert following.json() == {"items": [str(bob_id)]}
    assert stats.json() == {
        "user_id": str(bob_id),
        "followers_count": 1,
        "following_count": 0,
        "is_following": True,
    }
    assert unfollowed.json()["status"] == "unfollowed"
    assert unfollowed.json()["followers_count"] == 0
    assert noop.json()["status"] == "noop"
    assert self_follow.status_code == 400


def test_follow_unknown_profile_is_404() -> None:
    with TestClient(app) as client:
        headers, _ = _register(client, "alice")
        response = client.post("/follows/00000000-0000-0000-0000-000000000000", headers=headers)

    assert response.status_code == 404


def test_suggestions_exclude_self_and_followed() -> None:
    with TestClient(app) as client:
        headers, _ = _register(client, "viewer")
        _, followed_id = _register(client, "followed")
        _register(client, "stranger")
        client.post(f"/follows/{followed_id}", headers=headers)

        suggestions = client.get("/profiles/suggestions", headers=headers).json()["items"]
        limited = client.get("/profiles/suggestions?limit=1", headers=headers).json()["items"]

    assert [item["username"] for item in suggestions] == ["stranger"]
    assert len(limited) == 1


def test_profile_lookup_and_username_update() -> None:
    with TestClient(app) as client:
        headers, _ = _register(client, "original")
        _register(client, "taken")

        profile = client.get("/profiles/original")
        missing = client.get("/profiles/nobody")
        conflict = client.patch("/profiles/me", json={"username": "taken"}, headers=headers)
        blank = client.patch("/profiles/me", json={"username": "   "}, headers=headers)
        renamed = client.patch("/profiles/me", json={"username": "renamed", "bio": "hi"}, headers=headers)

    assert profile.status_code == 200
    assert missing.status_code == 404
    assert conflict.status_code == 409
    assert blank.status_code == 422
    assert renamed.json()["username"] == "renamed"
    assert renamed.json()["bio"] == "hi"


def test_dependency_override_for_current_user() -> None:
    with TestClient(app) as client:
        _, user_id = _register(client, "override")
        with SessionLocal() as session:
            profile = session.get(Profile, user_id)

        app.dependency_overrides[get_current_user] = lambda: profile
        response = client.get("/auth/me")

    assert response.status_code == 200
    assert response.json()["id"] == str(user_id)

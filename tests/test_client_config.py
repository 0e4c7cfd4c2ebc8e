"""Client components start from client settings alone."""
from __future__ import annotations

import asyncio
from typing import Iterator

import pytest
from pydantic import ValidationError

from minisocial.client import AccountSession, FeedStore, HttpGateway, NotificationInbox
from minisocial.config import Settings, get_client_settings, get_settings


@pytest.fixture
def no_database_url(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    get_client_settings.cache_clear()
    get_settings.cache_clear()
    yield monkeypatch
    get_client_settings.cache_clear()
    get_settings.cache_clear()


def test_server_settings_still_require_database_url(no_database_url) -> None:
    with pytest.raises(ValidationError):
        Settings()


def test_client_classes_build_without_database_url(no_database_url, gateway, viewer) -> None:
    async def scenario():
        async with HttpGateway() as http:
            return http.token

    inbox = NotificationInbox(gateway)
    store = FeedStore(gateway, viewer=viewer)
    session = AccountSession(gateway)

    assert asyncio.run(scenario()) is None
    assert inbox.items == []
    assert store.posts == []
    assert session.signed_in is False


def test_client_settings_read_their_own_environment(no_database_url) -> None:
    no_database_url.setenv("REQUEST_TIMEOUT", "2.5")
    no_database_url.setenv("TRENDING_LIMIT", "3")

    settings = get_client_settings()

    assert settings.request_timeout == 2.5
    assert settings.trending_limit == 3
    assert settings.api_base_url == "http://localhost:8000"

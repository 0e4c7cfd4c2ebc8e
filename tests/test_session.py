"""Account session flows through the gateway double."""
from __future__ import annotations

import asyncio

from minisocial.client.errors import FailureKind
from minisocial.client.results import Outcome
from minisocial.client.session import AccountSession


def test_sign_up_and_sign_out(gateway) -> None:
    async def scenario():
        session = AccountSession(gateway, timeout=1.0)
        signed_up = await session.sign_up("newcomer", "secret123")
        was_signed_in = session.signed_in
        signed_out = await session.sign_out()
        return session, signed_up, was_signed_in, signed_out

    session, signed_up, was_signed_in, signed_out = asyncio.run(scenario())

    assert signed_up.outcome is Outcome.APPLIED
    assert signed_up.value.username == "newcomer"
    assert was_signed_in is True
    assert signed_out.outcome is Outcome.APPLIED
    assert session.profile is None


def test_sign_in_with_unknown_user_fails_with_auth(gateway) -> None:
    session = AccountSession(gateway, timeout=1.0)

    result = asyncio.run(session.sign_in("ghost", "whatever"))

    assert result.failure is FailureKind.AUTH
    assert session.profile is None


def test_update_username_rejects_empty_without_remote_call(gateway) -> None:
    async def scenario():
        session = AccountSession(gateway, timeout=1.0)
        await session.sign_in("viewer", "pw")
        return await session.update_username("   ")

    result = asyncio.run(scenario())

    assert result.failure is FailureKind.VALIDATION
    assert gateway.count("update_username") == 0


def test_duplicate_username_rolls_back(gateway) -> None:
    gateway.add_profile("taken")

    async def scenario():
        session = AccountSession(gateway, timeout=1.0)
        await session.sign_in("viewer", "pw")
        return session, await session.update_username("taken")

    session, result = asyncio.run(scenario())

    assert result.failure is FailureKind.VALIDATION
    assert session.profile.username == "viewer"


def test_update_username_applies(gateway) -> None:
    async def scenario():
        session = AccountSession(gateway, timeout=1.0)
        await session.sign_in("viewer", "pw")
        return session, await session.update_username("renamed")

    session, result = asyncio.run(scenario())

    assert result.outcome is Outcome.APPLIED
    assert session.profile.username == "renamed"

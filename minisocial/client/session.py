"""Sign-up, sign-in and identity edits for the client."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from ..config import get_client_settings
from .errors import AuthRequiredError, ValidationFailedError
from .gateway import DataGateway
from .optimistic import apply_optimistic, fetch_result
from .records import ProfileRecord
from .results import MutationResult

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 32


class AccountSession:
    """Tracks the signed-in profile; the bearer token itself lives in the gateway."""

    def __init__(
        self,
        gateway: DataGateway,
        *,
        timeout: float | None = None,
        on_auth_required: Callable[[], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._timeout = get_client_settings().request_timeout if timeout is None else timeout
        self._on_auth_required = on_auth_required
        self.profile: ProfileRecord | None = None

    @property
    def signed_in(self) -> bool:
        return self.profile is not None

    async def _start(self, authenticate: Callable[[], Awaitable[object]]) -> MutationResult[ProfileRecord]:
        async def _run() -> ProfileRecord:
            await authenticate()
            return await self._gateway.current_profile()

        result = await fetch_result(_run, timeout=self._timeout)
        if result.ok:
            self.profile = result.value
            logger.info("Signed in as %s", self.profile.username)
        return result

    async def sign_up(self, username: str, password: str, email: str | None = None) -> MutationResult[ProfileRecord]:
        return await self._start(lambda: self._gateway.sign_up(username.strip(), password, email))

    async def sign_in(self, username: str, password: str) -> MutationResult[ProfileRecord]:
        return await self._start(lambda: self._gateway.sign_in(username.strip(), password))

    async def sign_out(self) -> MutationResult[None]:
        if self.profile is None:
            return MutationResult.noop("Not signed in")
        result = await fetch_result(self._gateway.sign_out, timeout=self._timeout)
        # The local session ends even when the service could not be reached.
        self.profile = None
        return result

    async def update_username(self, new_username: str) -> MutationResult[ProfileRecord]:
        profile = self.profile
        if profile is None:
            error = AuthRequiredError("Sign in to change your username")
            if self._on_auth_required is not None:
                self._on_auth_required()
            return MutationResult.from_error(error)

        username = (new_username or "").strip()
        if not username:
            return MutationResult.from_error(ValidationFailedError("Username is required"))
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            return MutationResult.from_error(
                ValidationFailedError(
                    f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
                )
            )
        if username == profile.username:
            return MutationResult.noop("Username unchanged")

        def mutate() -> str:
            previous = profile.username
            profile.username = username
            return previous

        def revert(previous: str) -> None:
            profile.username = previous

        async def remote() -> ProfileRecord:
            updated = await self._gateway.update_username(username)
            self.profile = updated
            return updated

        return await apply_optimistic(
            mutate,
            remote,
            revert,
            timeout=self._timeout,
            on_auth_required=self._on_auth_required,
        )


__all__ = ["AccountSession", "USERNAME_MIN_LENGTH", "USERNAME_MAX_LENGTH"]

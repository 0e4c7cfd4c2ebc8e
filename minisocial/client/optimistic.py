"""The optimistic mutation helper every store action goes through."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import AuthRequiredError, RemoteUnavailableError, SyncError
from .results import MutationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")

AuthCallback = Callable[[], None]


async def with_timeout(call: Callable[[], Awaitable[T]], timeout: float | None, label: str) -> T:
    try:
        if timeout is None:
            return await call()
        return await asyncio.wait_for(call(), timeout)
    except TimeoutError as exc:
        raise RemoteUnavailableError(f"{label} timed out after {timeout}s") from exc


def _report(error: SyncError, on_auth_required: AuthCallback | None) -> None:
    if isinstance(error, AuthRequiredError) and on_auth_required is not None:
        on_auth_required()


async def apply_optimistic(
    mutate_local: Callable[[], S],
    remote_call: Callable[[], Awaitable[T]],
    revert_local: Callable[[S], None],
    *,
    timeout: float | None = None,
    reconcile: Callable[[], Awaitable[object]] | None = None,
    on_auth_required: AuthCallback | None = None,
) -> MutationResult[T]:
    """Apply a local change, confirm it remotely and reconcile or roll back.

    ``mutate_local`` returns a snapshot that ``revert_local`` restores when the
    remote call fails. A failed ``reconcile`` after a successful remote call
    yields ``PARTIAL``; the local change is kept. Exceptions outside the
    :class:`SyncError` family roll back and propagate.
    """

    snapshot = mutate_local()
    try:
        value = await with_timeout(remote_call, timeout, "remote call")
    except SyncError as exc:
        revert_local(snapshot)
        logger.warning("Optimistic change rolled back (%s): %s", exc.kind, exc.message)
        _report(exc, on_auth_required)
        return MutationResult.from_error(exc)
    except BaseException:
        revert_local(snapshot)
        raise

    if reconcile is not None:
        try:
            await with_timeout(reconcile, timeout, "reconcile")
        except SyncError as exc:
            logger.warning("Remote change applied but refetch failed (%s): %s", exc.kind, exc.message)
            _report(exc, on_auth_required)
            return MutationResult.partial(value, exc)
    return MutationResult.applied(value)


async def fetch_result(
    call: Callable[[], Awaitable[T]],
    *,
    timeout: float | None = None,
    on_auth_required: AuthCallback | None = None,
) -> MutationResult[T]:
    """Run a read with the same timeout and failure reporting as mutations."""

    try:
        value = await with_timeout(call, timeout, "read")
    except SyncError as exc:
        logger.warning("Read failed (%s): %s", exc.kind, exc.message)
        _report(exc, on_auth_required)
        return MutationResult.from_error(exc)
    return MutationResult.applied(value)


__all__ = ["apply_optimistic", "fetch_result", "with_timeout"]

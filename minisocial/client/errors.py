"""Failure taxonomy for the client synchronisation core."""
from __future__ import annotations

from enum import StrEnum
from typing import Any


class FailureKind(StrEnum):
    NETWORK = "network"
    VALIDATION = "validation"
    AUTH = "auth"
    REMOTE = "remote"


class SyncError(Exception):
    """Base class for every failure a store can report."""

    kind: FailureKind = FailureKind.REMOTE

    def __init__(self, message: str, *, status_code: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


class RemoteUnavailableError(SyncError):
    """Transport failure, timeout or 5xx from the data service."""

    kind = FailureKind.NETWORK


class ValidationFailedError(SyncError):
    """Rejected locally before any remote call, or by the service as invalid."""

    kind = FailureKind.VALIDATION


class AuthRequiredError(SyncError):
    """The session is missing or expired."""

    kind = FailureKind.AUTH


class RemoteRejectedError(SyncError):
    """The service refused the request (forbidden, not found, malformed row)."""

    kind = FailureKind.REMOTE


def error_for_status(status_code: int, detail: Any = None) -> SyncError:
    """Map an HTTP error status from the data service onto the taxonomy."""

    message = detail if isinstance(detail, str) else f"HTTP {status_code}"
    if status_code == 401:
        return AuthRequiredError(message, status_code=status_code, detail=detail)
    if status_code in (400, 409, 422):
        return ValidationFailedError(message, status_code=status_code, detail=detail)
    if status_code >= 500:
        return RemoteUnavailableError(message, status_code=status_code, detail=detail)
    return RemoteRejectedError(message, status_code=status_code, detail=detail)


__all__ = [
    "FailureKind",
    "SyncError",
    "RemoteUnavailableError",
    "ValidationFailedError",
    "AuthRequiredError",
    "RemoteRejectedError",
    "error_for_status",
]

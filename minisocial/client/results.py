"""Explicit outcomes returned by every store action."""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from .errors import FailureKind, SyncError

T = TypeVar("T")


class Outcome(StrEnum):
    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"
    # The remote call succeeded but the follow-up refetch did not.
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class MutationResult(Generic[T]):
    outcome: Outcome
    value: T | None = None
    failure: FailureKind | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.APPLIED

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED

    @classmethod
    def applied(cls, value: T | None = None) -> "MutationResult[T]":
        return cls(Outcome.APPLIED, value=value)

    @classmethod
    def noop(cls, reason: str) -> "MutationResult[T]":
        return cls(Outcome.NOOP, reason=reason)

    @classmethod
    def from_error(cls, error: SyncError) -> "MutationResult[T]":
        return cls(Outcome.FAILED, failure=error.kind, reason=error.message)

    @classmethod
    def partial(cls, value: T | None, error: SyncError) -> "MutationResult[T]":
        return cls(Outcome.PARTIAL, value=value, failure=error.kind, reason=error.message)


__all__ = ["Outcome", "MutationResult"]

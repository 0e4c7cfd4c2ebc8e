"""Signing-key lookup for issued access tokens."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

__all__ = ["MissingSecretError", "TokenSigning", "is_placeholder", "require_secret", "load_token_signing"]


class MissingSecretError(RuntimeError):
    """Raised when a required secret environment variable is absent or a placeholder."""


_PLACEHOLDERS: Final[frozenset[str]] = frozenset({"changeme", "change-me", "secret", "placeholder", "your-key-here"})


def is_placeholder(value: str | None) -> bool:
    return not value or value.strip().lower() in _PLACEHOLDERS


def require_secret(name: str) -> str:
    value = os.getenv(name)
    if is_placeholder(value):
        raise MissingSecretError(f"Environment variable {name} must be set to a real value")
    return value.strip()


@dataclass(frozen=True, slots=True)
class TokenSigning:
    key: str
    algorithm: str
    expires_minutes: int


def load_token_signing() -> TokenSigning:
    """Read the JWT signing material from the environment."""

    return TokenSigning(
        key=require_secret("JWT_SECRET_KEY"),
        algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "1440")),
    )

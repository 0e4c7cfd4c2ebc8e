"""Column helpers shared across ORM models."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def created_at_column() -> Column:
    """Timezone-aware creation timestamp with sub-second client-side resolution."""

    return Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)


__all__ = ["utcnow", "created_at_column"]

"""SQLAlchemy ORM model for the directed follow graph."""
from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from minisocial.database import Base
from .base import created_at_column


class Follow(Base):
    __tablename__ = "follows"

    follower_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    following_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    created_at = created_at_column()

    follower = relationship("Profile", foreign_keys=[follower_id], back_populates="following_relations")
    following = relationship("Profile", foreign_keys=[following_id], back_populates="follower_relations")

    __table_args__ = (CheckConstraint("follower_id <> following_id", name="ck_follows_no_self_follow"),)


__all__ = ["Follow"]

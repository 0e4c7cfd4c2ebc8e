"""Schemas for profile endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=32)
    avatar_url: str | None = None
    bio: str | None = Field(default=None, max_length=500)

    @field_validator("username", mode="before")
    def strip_username(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ProfileListResponse(BaseModel):
    items: list[ProfileResponse]


__all__ = ["ProfileResponse", "ProfileUpdateRequest", "ProfileListResponse"]

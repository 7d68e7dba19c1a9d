"""Schemas for profile, administration and leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ProfileUpdateRequest(BaseModel):
    username: str | None = Field(None, min_length=2, max_length=64, pattern=r"^[\w .-]+$")
    full_name: str | None = Field(None, max_length=128)
    avatar_url: str | None = Field(None, max_length=1024)


class RoleUpdateRequest(BaseModel):
    role: Literal["admin", "user"]


class BlockUpdateRequest(BaseModel):
    is_blocked: bool


class PointsGrantRequest(BaseModel):
    points: int = Field(..., ge=-100_000, le=100_000)
    reason: str = Field(..., min_length=1, max_length=256)


class PointsGrantResponse(BaseModel):
    user_id: int
    points: int
    new_total: int


class PointsHistoryEntry(BaseModel):
    id: int
    points: int
    new_total: int
    type: str
    reason: str | None = None
    task_id: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    avatar_url: str | None = None
    points: int

"""Schemas for task endpoints.

API names (``point_value``) differ from column names (``points_value``);
``TaskResponse.from_task`` does the mapping.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from perfo.db.models import Task
from perfo.keys.schemas import KeyAmount


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    point_value: int = Field(..., gt=0, le=100_000)
    category: str = Field("general", min_length=1, max_length=64)
    recurring: bool = False
    status: Literal["active", "inactive"] = "active"
    deadline: datetime | None = None
    key_rewards: list[KeyAmount] = Field(default_factory=list)


class TaskUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    point_value: int | None = Field(None, gt=0, le=100_000)
    category: str | None = Field(None, min_length=1, max_length=64)
    recurring: bool | None = None
    status: Literal["active", "inactive"] | None = None
    deadline: datetime | None = None


class TaskKeyRewardsRequest(BaseModel):
    key_rewards: list[KeyAmount]


class TaskResponse(BaseModel):
    id: int
    title: str
    description: str
    point_value: int
    category: str
    recurring: bool
    status: str
    deadline: datetime | None = None
    created_by: int | None = None
    created_at: datetime | None = None
    key_rewards: list[KeyAmount] = []

    @classmethod
    def from_task(cls, task: Task) -> TaskResponse:
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            point_value=task.points_value,
            category=task.category,
            recurring=task.recurring,
            status=task.status,
            deadline=task.deadline,
            created_by=task.created_by,
            created_at=task.created_at,
            key_rewards=[KeyAmount(key_type=r.key_type, quantity=r.quantity) for r in task.key_rewards],
        )

"""Schemas for point and custom request endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from perfo.db.models import CustomRequest, PointRequest

RequestStatus = Literal["pending", "approved", "rejected"]


class ReviewRequest(BaseModel):
    status: Literal["approved", "rejected"]


class PointRequestCreate(BaseModel):
    task_id: int
    photo_url: str | None = Field(None, max_length=1024)
    comment: str | None = Field(None, max_length=2000)


class PointRequestResponse(BaseModel):
    id: int
    user_id: int
    username: str | None = None
    task_id: int
    task_title: str | None = None
    point_value: int | None = None
    status: str
    photo_url: str | None = None
    comment: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    reviewed_by: int | None = None

    @classmethod
    def from_request(cls, req: PointRequest) -> PointRequestResponse:
        return cls(
            id=req.id,
            user_id=req.user_id,
            username=req.user.username if req.user else None,
            task_id=req.task_id,
            task_title=req.task.title if req.task else None,
            point_value=req.task.points_value if req.task else None,
            status=req.status,
            photo_url=req.photo_url,
            comment=req.comment,
            created_at=req.created_at,
            updated_at=req.updated_at,
            reviewed_by=req.reviewed_by,
        )


class CustomRequestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    type: Literal["task", "reward", "other"]


class CustomRequestResponse(BaseModel):
    id: int
    user_id: int
    username: str | None = None
    title: str
    description: str | None = None
    type: str
    status: str
    created_at: datetime
    updated_at: datetime | None = None
    reviewed_by: int | None = None

    @classmethod
    def from_request(cls, req: CustomRequest) -> CustomRequestResponse:
        return cls(
            id=req.id,
            user_id=req.user_id,
            username=req.user.username if req.user else None,
            title=req.title,
            description=req.description,
            type=req.type,
            status=req.status,
            created_at=req.created_at,
            updated_at=req.updated_at,
            reviewed_by=req.reviewed_by,
        )

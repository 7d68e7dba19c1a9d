"""Schemas for reward endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from perfo.db.models import Reward
from perfo.keys.schemas import KeyAmount


class RewardCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    point_cost: int = Field(..., gt=0, le=1_000_000)
    category: str = Field("general", min_length=1, max_length=64)
    approval_key_required: bool = False
    key_requirements: list[KeyAmount] = Field(default_factory=list)


class RewardUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    point_cost: int | None = Field(None, gt=0, le=1_000_000)
    category: str | None = Field(None, min_length=1, max_length=64)
    approval_key_required: bool | None = None


class RewardKeyRequirementsRequest(BaseModel):
    key_requirements: list[KeyAmount]


class RedeemRequest(BaseModel):
    approval_key: str | None = Field(None, max_length=128)


class RewardResponse(BaseModel):
    id: int
    title: str
    description: str
    point_cost: int
    category: str
    approval_key_required: bool
    created_by: int | None = None
    created_at: datetime | None = None
    key_requirements: list[KeyAmount] = []
    can_redeem: bool | None = None

    @classmethod
    def from_reward(cls, reward: Reward, can_redeem: bool | None = None) -> RewardResponse:
        return cls(
            id=reward.id,
            title=reward.title,
            description=reward.description,
            point_cost=reward.points_cost,
            category=reward.category,
            approval_key_required=reward.requires_approval,
            created_by=reward.created_by,
            created_at=reward.created_at,
            key_requirements=[KeyAmount(key_type=r.key_type, quantity=r.quantity) for r in reward.key_requirements],
            can_redeem=can_redeem,
        )


class RedemptionResponse(BaseModel):
    id: int
    reward_id: int | None = None
    reward_title: str
    points_cost: int
    created_at: datetime
    new_balance: int | None = None

    model_config = {"from_attributes": True}

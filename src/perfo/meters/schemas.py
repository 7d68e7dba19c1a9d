"""Schemas for meter endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from perfo.db.models import UserMeter
from perfo.meters.service import state_of


class MeterCreateRequest(BaseModel):
    user_ids: list[int] = Field(..., min_length=1)
    meter_type: str = Field("standard", min_length=1, max_length=32)
    target_percentage: int = Field(100, ge=1, le=100)
    description: str | None = Field(None, max_length=1000)


class MeterAdjustRequest(BaseModel):
    percentage_change: int = Field(..., ge=-100, le=100)
    reason: str | None = Field(None, max_length=256)


class MeterResponse(BaseModel):
    id: int
    user_id: int
    username: str | None = None
    meter_type: str
    current_percentage: int
    target_percentage: int
    is_active: bool
    prize_unlocked: bool
    status: str
    description: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_meter(cls, meter: UserMeter) -> MeterResponse:
        return cls(
            id=meter.id,
            user_id=meter.user_id,
            username=meter.user.username if meter.user else None,
            meter_type=meter.meter_type,
            current_percentage=meter.current_percentage,
            target_percentage=meter.target_percentage,
            is_active=meter.is_active,
            prize_unlocked=meter.prize_unlocked,
            status=state_of(meter).status,
            description=meter.description,
            created_at=meter.created_at,
            completed_at=meter.completed_at,
        )


class MeterHistoryEntry(BaseModel):
    id: int
    meter_id: int
    old_percentage: int
    new_percentage: int
    change_amount: int
    change_reason: str | None = None
    changed_by: int | None = None
    changed_at: datetime

    model_config = {"from_attributes": True}


class MeterAdjustResponse(BaseModel):
    meter: MeterResponse
    history: MeterHistoryEntry

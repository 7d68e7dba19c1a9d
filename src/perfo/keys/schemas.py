"""Schemas for key inventory endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from perfo.keys.key_types import KeyType


class KeyTypeInfo(BaseModel):
    key_type: KeyType
    name: str
    color: str
    emoji: str


class KeyAmount(BaseModel):
    """A (key type, quantity) pair, used for requirements, rewards and gifts."""

    key_type: KeyType
    quantity: int = Field(..., ge=1, le=10_000)

    def as_pair(self) -> tuple[str, int]:
        return self.key_type.value, self.quantity


class KeyInventoryResponse(BaseModel):
    keys: dict[str, int]
    total: int


class KeyGiftRequest(KeyAmount):
    reason: str = Field("Admin gift", max_length=256)


class KeyGiftResponse(BaseModel):
    user_id: int
    key_type: KeyType
    quantity: int
    new_total: int


class KeyCheckRequest(BaseModel):
    requirements: list[KeyAmount] = Field(default_factory=list)


class KeyCheckResponse(BaseModel):
    has_required_keys: bool
    missing: dict[str, int]


class KeysHistoryEntry(BaseModel):
    id: int
    key_type: str
    quantity: int
    new_total: int
    type: str
    reason: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

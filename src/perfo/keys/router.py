"""Key inventory endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_admin, get_current_user
from perfo.database import get_session
from perfo.db.models import User
from perfo.keys.gate import missing_keys
from perfo.keys.key_types import KEY_DISPLAY
from perfo.keys.schemas import (
    KeyCheckRequest,
    KeyCheckResponse,
    KeyGiftRequest,
    KeyGiftResponse,
    KeyInventoryResponse,
    KeysHistoryEntry,
    KeyTypeInfo,
)
from perfo.keys.service import get_inventory, get_keys_history, grant_keys
from perfo.users.service import require_user

router = APIRouter(prefix="/api/v1", tags=["Keys"])


@router.get("/keys/types", response_model=list[KeyTypeInfo])
async def key_types() -> list[KeyTypeInfo]:
    return [
        KeyTypeInfo(key_type=kt, name=d.name, color=d.color, emoji=d.emoji)
        for kt, d in KEY_DISPLAY.items()
    ]


@router.get("/users/me/keys", response_model=KeyInventoryResponse)
async def my_keys(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> KeyInventoryResponse:
    inventory = await get_inventory(db, user.id)
    return KeyInventoryResponse(keys=inventory, total=sum(inventory.values()))


@router.get("/users/me/keys/history", response_model=list[KeysHistoryEntry])
async def my_keys_history(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[KeysHistoryEntry]:
    return [KeysHistoryEntry.model_validate(e) for e in await get_keys_history(db, user.id, limit=limit)]


@router.post("/keys/check", response_model=KeyCheckResponse)
async def check_keys(
    body: KeyCheckRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> KeyCheckResponse:
    """Would the caller's inventory cover these requirements right now?"""
    missing = missing_keys(await get_inventory(db, user.id), [r.as_pair() for r in body.requirements])
    return KeyCheckResponse(has_required_keys=not missing, missing=missing)


@router.post("/users/{user_id}/keys", response_model=KeyGiftResponse)
async def gift_keys(
    user_id: int,
    body: KeyGiftRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> KeyGiftResponse:
    try:
        await require_user(db, user_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    new_total = await grant_keys(db, user_id, body.key_type.value, body.quantity, reason=body.reason)
    await db.commit()
    return KeyGiftResponse(user_id=user_id, key_type=body.key_type, quantity=body.quantity, new_total=new_total)

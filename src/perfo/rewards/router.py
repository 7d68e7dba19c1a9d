"""Reward catalogue and redemption endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_admin, get_current_user
from perfo.database import get_session
from perfo.db.models import User
from perfo.errors import InsufficientKeysError
from perfo.keys.schemas import KeyAmount
from perfo.keys.service import get_inventory
from perfo.rewards.schemas import (
    RedeemRequest,
    RedemptionResponse,
    RewardCreateRequest,
    RewardKeyRequirementsRequest,
    RewardResponse,
    RewardUpdateRequest,
)
from perfo.rewards.service import (
    can_redeem,
    create_reward,
    delete_reward,
    get_redemptions,
    get_reward,
    list_rewards,
    redeem_reward,
    set_key_requirements,
    update_reward,
)

router = APIRouter(prefix="/api/v1", tags=["Rewards"])


@router.get("/rewards", response_model=list[RewardResponse])
async def rewards(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[RewardResponse]:
    """All rewards, each with the caller's ``can_redeem`` hint."""
    inventory = await get_inventory(db, user.id)
    return [
        RewardResponse.from_reward(r, can_redeem=can_redeem(r, user.points, inventory))
        for r in await list_rewards(db)
    ]


@router.post("/rewards", response_model=RewardResponse, status_code=201)
async def new_reward(
    body: RewardCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardResponse:
    fields = body.model_dump(exclude={"key_requirements"})
    reward = await create_reward(db, admin, fields, [r.as_pair() for r in body.key_requirements])
    await db.commit()
    return RewardResponse.from_reward(reward)


@router.patch("/rewards/{reward_id}", response_model=RewardResponse)
async def edit_reward(
    reward_id: int,
    body: RewardUpdateRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardResponse:
    try:
        reward = await update_reward(db, reward_id, body.model_dump(exclude_none=True))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return RewardResponse.from_reward(reward)


@router.delete("/rewards/{reward_id}", status_code=204)
async def remove_reward(
    reward_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await delete_reward(db, reward_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return Response(status_code=204)


@router.get("/rewards/{reward_id}/key-requirements", response_model=list[KeyAmount])
async def reward_key_requirements(
    reward_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[KeyAmount]:
    try:
        reward = await get_reward(db, reward_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return RewardResponse.from_reward(reward).key_requirements


@router.put("/rewards/{reward_id}/key-requirements", response_model=list[KeyAmount])
async def replace_reward_key_requirements(
    reward_id: int,
    body: RewardKeyRequirementsRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[KeyAmount]:
    try:
        reward = await set_key_requirements(db, reward_id, [r.as_pair() for r in body.key_requirements])
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return RewardResponse.from_reward(reward).key_requirements


@router.post("/rewards/{reward_id}/redeem", response_model=RedemptionResponse)
async def redeem(
    reward_id: int,
    body: RedeemRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RedemptionResponse:
    approval_key = body.approval_key if body else None
    try:
        redemption, balance = await redeem_reward(db, user, reward_id, approval_key)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PermissionError as e:
        await db.rollback()
        raise HTTPException(status_code=403, detail=str(e)) from e
    except InsufficientKeysError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail={"message": str(e), "missing": e.missing}) from e
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception:
        await db.rollback()
        raise
    await db.commit()
    response = RedemptionResponse.model_validate(redemption)
    response.new_balance = balance
    return response


@router.get("/users/me/redemptions", response_model=list[RedemptionResponse])
async def my_redemptions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[RedemptionResponse]:
    return [RedemptionResponse.model_validate(r) for r in await get_redemptions(db, user.id)]

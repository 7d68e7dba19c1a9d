"""User profile, administration and leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_admin, get_current_user
from perfo.auth.schemas import UserResponse
from perfo.database import get_session
from perfo.db.models import User
from perfo.users.schemas import (
    BlockUpdateRequest,
    LeaderboardEntry,
    PointsGrantRequest,
    PointsGrantResponse,
    PointsHistoryEntry,
    ProfileUpdateRequest,
    RoleUpdateRequest,
)
from perfo.users.service import (
    get_leaderboard,
    get_points_history,
    grant_points,
    list_users,
    set_blocked,
    set_role,
    update_profile,
)

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.get("/users/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        await update_profile(db, user, **body.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.get("/users/me/points/history", response_model=list[PointsHistoryEntry])
async def my_points_history(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[PointsHistoryEntry]:
    entries = await get_points_history(db, user.id, limit=limit)
    return [PointsHistoryEntry.model_validate(e) for e in entries]


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    limit: int = Query(50, ge=1, le=200),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[LeaderboardEntry]:
    users = await get_leaderboard(db, limit=limit)
    return [
        LeaderboardEntry(rank=i, user_id=u.id, username=u.username, avatar_url=u.avatar_url, points=u.points)
        for i, u in enumerate(users, start=1)
    ]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
async def all_users(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in await list_users(db)]


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: int,
    body: RoleUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        user = await set_role(db, admin, user_id, body.role)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/block", response_model=UserResponse)
async def change_block(
    user_id: int,
    body: BlockUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        user = await set_blocked(db, admin, user_id, body.is_blocked)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.post("/users/{user_id}/points", response_model=PointsGrantResponse)
async def gift_points(
    user_id: int,
    body: PointsGrantRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> PointsGrantResponse:
    try:
        new_total = await grant_points(db, admin, user_id, body.points, body.reason)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return PointsGrantResponse(user_id=user_id, points=body.points, new_total=new_total)

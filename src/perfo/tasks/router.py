"""Task endpoints. Reads for everyone, writes for admins."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_admin, get_current_user
from perfo.database import get_session
from perfo.db.models import User
from perfo.keys.schemas import KeyAmount
from perfo.tasks.schemas import (
    TaskCreateRequest,
    TaskKeyRewardsRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from perfo.tasks.service import (
    create_task,
    delete_task,
    get_task,
    list_tasks,
    set_key_rewards,
    update_task,
)

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


@router.get("", response_model=list[TaskResponse])
async def tasks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[TaskResponse]:
    """Active tasks; admins also see inactive ones."""
    return [TaskResponse.from_task(t) for t in await list_tasks(db, include_inactive=user.is_admin)]


@router.post("", response_model=TaskResponse, status_code=201)
async def new_task(
    body: TaskCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    fields = body.model_dump(exclude={"key_rewards"})
    task = await create_task(db, admin, fields, [r.as_pair() for r in body.key_rewards])
    await db.commit()
    return TaskResponse.from_task(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def edit_task(
    task_id: int,
    body: TaskUpdateRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    try:
        changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "deadline"}
        task = await update_task(db, task_id, changes)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", status_code=204)
async def remove_task(
    task_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await delete_task(db, task_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return Response(status_code=204)


@router.get("/{task_id}/key-rewards", response_model=list[KeyAmount])
async def task_key_rewards(
    task_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[KeyAmount]:
    try:
        task = await get_task(db, task_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return TaskResponse.from_task(task).key_rewards


@router.put("/{task_id}/key-rewards", response_model=list[KeyAmount])
async def replace_task_key_rewards(
    task_id: int,
    body: TaskKeyRewardsRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[KeyAmount]:
    try:
        task = await set_key_rewards(db, task_id, [r.as_pair() for r in body.key_rewards])
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return TaskResponse.from_task(task).key_rewards

"""Task catalogue management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from perfo.clock import utcnow
from perfo.db.models import Task, TaskKeyReward

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from perfo.db.models import User

logger = structlog.get_logger()

# API field -> column
_FIELD_MAP = {"point_value": "points_value"}


async def list_tasks(db: AsyncSession, *, include_inactive: bool = False) -> list[Task]:
    stmt = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
    if not include_inactive:
        stmt = stmt.where(Task.status == "active")
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_task(db: AsyncSession, task_id: int) -> Task:
    """Raises LookupError if the task does not exist."""
    task = await db.get(Task, task_id)
    if task is None:
        msg = "Task not found"
        raise LookupError(msg)
    return task


async def create_task(
    db: AsyncSession,
    creator: User,
    fields: dict[str, Any],
    key_rewards: Iterable[tuple[str, int]] = (),
) -> Task:
    task = Task(
        **{_FIELD_MAP.get(k, k): v for k, v in fields.items()},
        created_by=creator.id,
        created_at=utcnow(),
    )
    task.key_rewards = [TaskKeyReward(key_type=kt, quantity=q) for kt, q in key_rewards]
    db.add(task)
    await db.flush()
    logger.info("task_created", task_id=task.id, by=creator.id)
    return task


async def update_task(db: AsyncSession, task_id: int, changes: dict[str, Any]) -> Task:
    task = await get_task(db, task_id)
    for key, value in changes.items():
        setattr(task, _FIELD_MAP.get(key, key), value)
    await db.flush()
    return task


async def delete_task(db: AsyncSession, task_id: int) -> None:
    task = await get_task(db, task_id)
    await db.delete(task)
    await db.flush()
    logger.info("task_deleted", task_id=task_id)


async def set_key_rewards(db: AsyncSession, task_id: int, key_rewards: Iterable[tuple[str, int]]) -> Task:
    """Replace the keys granted on approval of this task's point requests."""
    task = await get_task(db, task_id)
    task.key_rewards = [TaskKeyReward(key_type=kt, quantity=q) for kt, q in key_rewards]
    await db.flush()
    return task

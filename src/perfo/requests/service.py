"""
Point and custom requests.

Both follow pending -> approved | rejected, decided exactly once. The review
is a conditional UPDATE on ``status = 'pending'``; a second reviewer (or a
double click) matches no row and gets ``ConflictError``, so approval side
effects (points, task key rewards) can never be applied twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from perfo.clock import utcnow
from perfo.db.models import CustomRequest, PointRequest, Task
from perfo.errors import ConflictError
from perfo.keys.service import grant_keys
from perfo.users.service import adjust_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from perfo.db.models import User

logger = structlog.get_logger()

REVIEW_STATUSES = frozenset({"approved", "rejected"})


async def _decide(
    db: AsyncSession,
    model: type[PointRequest] | type[CustomRequest],
    request_id: int,
    reviewer: User,
    status: str,
) -> None:
    """Flip a pending request to ``status`` or explain why it cannot be."""
    if status not in REVIEW_STATUSES:
        msg = f"Invalid review status: {status}"
        raise ValueError(msg)
    result = await db.execute(
        update(model)
        .where(model.id == request_id, model.status == "pending")
        .values(status=status, reviewed_by=reviewer.id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        exists = await db.scalar(select(model.id).where(model.id == request_id))
        if exists is None:
            msg = "Request not found"
            raise LookupError(msg)
        msg = "Request has already been reviewed"
        raise ConflictError(msg)


# ---------------------------------------------------------------------------
# Point requests
# ---------------------------------------------------------------------------


async def create_point_request(
    db: AsyncSession,
    user: User,
    task_id: int,
    photo_url: str | None = None,
    comment: str | None = None,
) -> PointRequest:
    """
    File a completion claim for an active task.

    Raises:
        LookupError: unknown task.
        ValueError: task is inactive.
    """
    task = await db.get(Task, task_id)
    if task is None:
        msg = "Task not found"
        raise LookupError(msg)
    if task.status != "active":
        msg = "Task is not active"
        raise ValueError(msg)

    req = PointRequest(
        user_id=user.id,
        task_id=task.id,
        status="pending",
        photo_url=photo_url,
        comment=comment,
        created_at=utcnow(),
    )
    db.add(req)
    await db.flush()
    req = await get_point_request(db, req.id)
    logger.info("point_request_created", request_id=req.id, user_id=user.id, task_id=task.id)
    return req


async def list_point_requests(
    db: AsyncSession, viewer: User, status: str | None = None
) -> list[PointRequest]:
    """Admins see everyone's requests; users only their own."""
    stmt = select(PointRequest).order_by(PointRequest.created_at.desc(), PointRequest.id.desc())
    if not viewer.is_admin:
        stmt = stmt.where(PointRequest.user_id == viewer.id)
    if status is not None:
        stmt = stmt.where(PointRequest.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def get_point_request(db: AsyncSession, request_id: int) -> PointRequest:
    req = await db.get(PointRequest, request_id, populate_existing=True)
    if req is None:
        msg = "Request not found"
        raise LookupError(msg)
    return req


async def review_point_request(db: AsyncSession, reviewer: User, request_id: int, status: str) -> PointRequest:
    """
    Approve or reject a point request.

    Approval credits the task's points and key rewards to the requester in
    the same transaction.

    Raises:
        ValueError: bad status.
        LookupError: unknown request.
        ConflictError: already reviewed.
    """
    await _decide(db, PointRequest, request_id, reviewer, status)
    req = await get_point_request(db, request_id)

    if status == "approved":
        task = req.task
        reason = f"Completed task: {task.title}"
        await adjust_points(db, req.user_id, task.points_value, kind="task_completion", reason=reason, task_id=task.id)
        for reward in task.key_rewards:
            await grant_keys(db, req.user_id, reward.key_type, reward.quantity, kind="task_completion", reason=reason)

    logger.info("point_request_reviewed", request_id=request_id, status=status, by=reviewer.id)
    return req


async def count_approved_point_requests(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(PointRequest.id)).where(
            PointRequest.user_id == user_id, PointRequest.status == "approved"
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Custom requests
# ---------------------------------------------------------------------------


async def create_custom_request(
    db: AsyncSession, user: User, title: str, request_type: str, description: str | None = None
) -> CustomRequest:
    req = CustomRequest(
        user_id=user.id,
        title=title,
        description=description,
        type=request_type,
        status="pending",
        created_at=utcnow(),
    )
    db.add(req)
    await db.flush()
    await db.get(CustomRequest, req.id, populate_existing=True)
    logger.info("custom_request_created", request_id=req.id, user_id=user.id, type=request_type)
    return req


async def list_custom_requests(
    db: AsyncSession, viewer: User, status: str | None = None
) -> list[CustomRequest]:
    stmt = select(CustomRequest).order_by(CustomRequest.created_at.desc(), CustomRequest.id.desc())
    if not viewer.is_admin:
        stmt = stmt.where(CustomRequest.user_id == viewer.id)
    if status is not None:
        stmt = stmt.where(CustomRequest.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def review_custom_request(db: AsyncSession, reviewer: User, request_id: int, status: str) -> CustomRequest:
    """Same lifecycle as point requests, without side effects."""
    await _decide(db, CustomRequest, request_id, reviewer, status)
    req = await db.get(CustomRequest, request_id, populate_existing=True)
    logger.info("custom_request_reviewed", request_id=request_id, status=status, by=reviewer.id)
    return req  # type: ignore[return-value]

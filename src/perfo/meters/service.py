"""Meter lifecycle and adjustments."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from perfo.clock import utcnow
from perfo.db.models import MeterHistory, User, UserMeter
from perfo.errors import ConflictError
from perfo.meters.progress import MeterState, apply_meter_delta

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def state_of(meter: UserMeter) -> MeterState:
    return MeterState(
        current_percentage=meter.current_percentage,
        target_percentage=meter.target_percentage,
        is_active=meter.is_active,
        prize_unlocked=meter.prize_unlocked,
        completed_at=meter.completed_at,
    )


async def create_meters(
    db: AsyncSession,
    creator: User,
    user_ids: Sequence[int],
    *,
    meter_type: str = "standard",
    target_percentage: int = 100,
    description: str | None = None,
) -> list[UserMeter]:
    """
    Start a fresh meter for each user, deactivating whatever was active.

    Raises:
        LookupError: one of the user ids does not exist.
    """
    user_ids = list(dict.fromkeys(user_ids))
    found = set((await db.execute(select(User.id).where(User.id.in_(user_ids)))).scalars().all())
    unknown = [uid for uid in user_ids if uid not in found]
    if unknown:
        msg = f"Unknown user ids: {unknown}"
        raise LookupError(msg)

    await db.execute(
        update(UserMeter)
        .where(UserMeter.user_id.in_(user_ids), UserMeter.is_active == True)  # noqa: E712
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )

    now = utcnow()
    meters = [
        UserMeter(
            user_id=uid,
            meter_type=meter_type,
            current_percentage=0,
            target_percentage=target_percentage,
            is_active=True,
            prize_unlocked=False,
            description=description,
            created_by=creator.id,
            created_at=now,
        )
        for uid in user_ids
    ]
    db.add_all(meters)
    await db.flush()
    logger.info("meters_created", user_ids=user_ids, target=target_percentage, by=creator.id)
    return [await get_meter(db, m.id) for m in meters]


async def get_meter(db: AsyncSession, meter_id: int) -> UserMeter:
    meter = await db.get(UserMeter, meter_id, populate_existing=True)
    if meter is None:
        msg = "Meter not found"
        raise LookupError(msg)
    return meter


async def get_active_meter(db: AsyncSession, user_id: int) -> UserMeter | None:
    result = await db.execute(
        select(UserMeter)
        .where(UserMeter.user_id == user_id, UserMeter.is_active == True)  # noqa: E712
        .order_by(UserMeter.created_at.desc(), UserMeter.id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def list_meters(db: AsyncSession, *, active_only: bool = True) -> list[UserMeter]:
    stmt = select(UserMeter).order_by(UserMeter.created_at.desc(), UserMeter.id.desc())
    if active_only:
        stmt = stmt.where(UserMeter.is_active == True)  # noqa: E712
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def adjust_meter(
    db: AsyncSession, actor: User, user_id: int, delta: int, reason: str | None = None
) -> tuple[UserMeter, MeterHistory]:
    """
    Move a user's active meter by ``delta`` percentage points.

    The write only lands if the meter still holds the percentage that was
    read, so two admins adjusting at once cannot overwrite each other.

    Raises:
        LookupError: the user has no active meter.
        MeterClosedError: the meter is already completed.
        ConflictError: the meter changed concurrently.
    """
    meter = await get_active_meter(db, user_id)
    if meter is None:
        msg = "User has no active meter"
        raise LookupError(msg)

    now = utcnow()
    new_state, change = apply_meter_delta(state_of(meter), delta, now, reason)

    result = await db.execute(
        update(UserMeter)
        .where(
            UserMeter.id == meter.id,
            UserMeter.current_percentage == change.old_percentage,
            UserMeter.is_active == True,  # noqa: E712
            UserMeter.completed_at == None,  # noqa: E711
        )
        .values(
            current_percentage=new_state.current_percentage,
            prize_unlocked=new_state.prize_unlocked,
            completed_at=new_state.completed_at,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        msg = "Meter changed while updating; refresh and try again"
        raise ConflictError(msg)

    history = MeterHistory(
        meter_id=meter.id,
        user_id=user_id,
        old_percentage=change.old_percentage,
        new_percentage=change.new_percentage,
        change_amount=change.change_amount,
        change_reason=change.change_reason,
        changed_by=actor.id,
        changed_at=now,
    )
    db.add(history)
    await db.flush()
    meter = await get_meter(db, meter.id)

    logger.info(
        "meter_updated",
        meter_id=meter.id,
        user_id=user_id,
        old=change.old_percentage,
        new=change.new_percentage,
        prize_unlocked=meter.prize_unlocked,
    )
    if new_state.completed_at is not None:
        logger.info("meter_completed", meter_id=meter.id, user_id=user_id)
    return meter, history


async def deactivate_meter(db: AsyncSession, meter_id: int) -> UserMeter:
    meter = await get_meter(db, meter_id)
    meter.is_active = False
    await db.flush()
    logger.info("meter_deactivated", meter_id=meter_id)
    return meter


async def get_meter_history(db: AsyncSession, meter_id: int) -> list[MeterHistory]:
    result = await db.execute(
        select(MeterHistory)
        .where(MeterHistory.meter_id == meter_id)
        .order_by(MeterHistory.changed_at.desc(), MeterHistory.id.desc())
    )
    return list(result.scalars().all())

"""Persisted daily streaks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select, update

from perfo.clock import local_today, utcnow
from perfo.config import get_settings
from perfo.db.dialect import upsert_insert
from perfo.db.models import Streak
from perfo.errors import ConflictError
from perfo.gamification.streak import StreakRecord, evaluate_streak, is_milestone

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    record: StreakRecord
    changed: bool
    milestone: bool


def _record(row: Streak) -> StreakRecord:
    return StreakRecord(row.current_streak, row.longest_streak, row.last_activity_date)


async def get_streak(db: AsyncSession, user_id: int) -> StreakRecord:
    row = await db.get(Streak, user_id, populate_existing=True)
    return _record(row) if row else StreakRecord()


async def _get_or_create_row(db: AsyncSession, user_id: int) -> Streak:
    insert = upsert_insert(db)
    await db.execute(
        insert(Streak)
        .values(user_id=user_id, current_streak=0, longest_streak=0)
        .on_conflict_do_nothing(index_elements=[Streak.user_id])
    )
    return await db.get(Streak, user_id, populate_existing=True)  # type: ignore[return-value]


async def record_activity(db: AsyncSession, user_id: int, today: date | None = None) -> StreakUpdate:
    """
    Count ``today`` (default: the local date) as an active day.

    The write is a compare-and-set on the previously read record, so two
    devices checking in at once cannot both increment.

    Raises:
        ConflictError: the streak changed between read and write.
    """
    today = today or local_today()
    row = await _get_or_create_row(db, user_id)
    before = _record(row)
    after = evaluate_streak(before, today)
    if after == before:
        return StreakUpdate(record=before, changed=False, milestone=False)

    last_matches = (
        Streak.last_activity_date.is_(None)
        if before.last_activity_date is None
        else Streak.last_activity_date == before.last_activity_date
    )
    result = await db.execute(
        update(Streak)
        .where(Streak.user_id == user_id, Streak.current_streak == before.current_streak, last_matches)
        .values(
            current_streak=after.current_streak,
            longest_streak=after.longest_streak,
            last_activity_date=after.last_activity_date,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        msg = "Streak changed concurrently; refresh and try again"
        raise ConflictError(msg)

    milestone = is_milestone(after.current_streak, get_settings().streak_milestone_every)
    logger.info(
        "streak_updated user_id=%s current=%s longest=%s milestone=%s",
        user_id,
        after.current_streak,
        after.longest_streak,
        milestone,
    )
    return StreakUpdate(record=after, changed=True, milestone=milestone)

"""Server-side prayer tracking for the current prayer day.

A prayer day runs from Fajr (04:00) until Isha closes at 04:00 the next
morning, so completions in the small hours are filed under the previous date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from perfo.clock import local_now, local_tz, utcnow
from perfo.db.dialect import upsert_insert
from perfo.db.models import PrayerLog, Task
from perfo.gamification.prayer import (
    PRAYER_NAMES,
    PRAYER_WINDOWS,
    ensure_open_on,
    get_window,
    prayer_day,
    status_on,
)
from perfo.gamification.streak_service import StreakUpdate, record_activity
from perfo.requests.service import create_point_request

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from perfo.db.models import PointRequest, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrayerDayEntry:
    name: str
    start: datetime
    end: datetime
    status: str
    completed: bool


def current_prayer_day(now: datetime | None = None) -> date:
    return prayer_day(local_now(now))


async def completed_prayers(db: AsyncSession, user_id: int, day: date) -> list[str]:
    """Names completed on ``day``, in prayer order."""
    result = await db.execute(
        select(PrayerLog.prayer_name).where(PrayerLog.user_id == user_id, PrayerLog.prayer_date == day)
    )
    done = set(result.scalars().all())
    return [name for name in PRAYER_NAMES if name in done]


async def get_prayer_day(db: AsyncSession, user_id: int, now: datetime | None = None) -> list[PrayerDayEntry]:
    """All five windows of the current prayer day with their status and completion."""
    local = local_now(now)
    tz = local_tz()
    day = prayer_day(local)
    done = set(await completed_prayers(db, user_id, day))
    entries = []
    for window in PRAYER_WINDOWS:
        start, end = window.bounds(day, tz)
        entries.append(
            PrayerDayEntry(
                name=window.name,
                start=start,
                end=end,
                status=status_on(window, day, tz, local),
                completed=window.name in done,
            )
        )
    return entries


async def complete_prayer(db: AsyncSession, user_id: int, name: str, now: datetime | None = None) -> str:
    """
    Mark one prayer done for the current prayer day. Marking it twice is harmless.

    Returns the canonical prayer name.

    Raises:
        LookupError: unknown prayer.
        PrayerNotOpenError: its window has not started yet.
    """
    window = get_window(name)
    local = local_now(now)
    day = prayer_day(local)
    ensure_open_on(window, day, local_tz(), local)

    insert = upsert_insert(db)
    await db.execute(
        insert(PrayerLog)
        .values(user_id=user_id, prayer_date=day, prayer_name=window.name, completed_at=utcnow())
        .on_conflict_do_nothing(index_elements=[PrayerLog.user_id, PrayerLog.prayer_date, PrayerLog.prayer_name])
    )
    await db.flush()
    logger.info("prayer_completed user_id=%s prayer=%s date=%s", user_id, window.name, day)
    return window.name


async def find_prayer_task(db: AsyncSession) -> Task | None:
    """The active task prayers are submitted against: category ``prayer``, else a salah/prayer title."""
    result = await db.execute(
        select(Task)
        .where(
            Task.status == "active",
            or_(
                func.lower(Task.category) == "prayer",
                func.lower(Task.title).contains("salah"),
                func.lower(Task.title).contains("prayer"),
            ),
        )
        .order_by((func.lower(Task.category) == "prayer").desc(), Task.id)
        .limit(1)
    )
    return result.scalars().first()


async def submit_prayers(
    db: AsyncSession, user: User, now: datetime | None = None
) -> tuple[PointRequest, StreakUpdate | None]:
    """
    File the current prayer day's completions as a point request on the prayer task.

    All five done also counts as streak activity for the day.

    Raises:
        ValueError: nothing completed yet, or no prayer task exists.
    """
    day = current_prayer_day(now)
    done = await completed_prayers(db, user.id, day)
    if not done:
        msg = "You haven't completed any prayers yet today."
        raise ValueError(msg)

    task = await find_prayer_task(db)
    if task is None:
        msg = "No prayer tracking task found. Please ask an admin to create one."
        raise ValueError(msg)

    comment = f"Completed {len(done)} out of {len(PRAYER_NAMES)} daily prayers: {', '.join(done)}"
    request = await create_point_request(db, user, task.id, comment=comment)

    streak = None
    if len(done) == len(PRAYER_NAMES):
        streak = await record_activity(db, user.id, day)
    logger.info("prayers_submitted user_id=%s completed=%s", user.id, len(done))
    return request, streak

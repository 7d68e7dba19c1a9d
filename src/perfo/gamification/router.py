"""Streak, achievement and prayer endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_user
from perfo.clock import utcnow
from perfo.config import get_settings
from perfo.database import get_session
from perfo.db.models import User
from perfo.errors import PrayerNotOpenError
from perfo.gamification.achievements import evaluate_achievements
from perfo.gamification.prayer_service import (
    complete_prayer,
    current_prayer_day,
    get_prayer_day,
    submit_prayers,
)
from perfo.gamification.schemas import (
    AchievementResponse,
    AchievementsResponse,
    PrayerDayResponse,
    PrayerEntry,
    PrayerSubmitResponse,
    StreakCheckResponse,
    StreakResponse,
)
from perfo.gamification.streak_service import StreakUpdate, get_streak, record_activity
from perfo.requests.schemas import PointRequestResponse
from perfo.requests.service import count_approved_point_requests
from perfo.rewards.service import count_redemptions

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def _streak_check(update: StreakUpdate) -> StreakCheckResponse:
    return StreakCheckResponse(**asdict(update.record), changed=update.changed, milestone=update.milestone)


# ---------------------------------------------------------------------------
# Streaks & achievements
# ---------------------------------------------------------------------------


@router.get("/users/me/streak", response_model=StreakResponse)
async def my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StreakResponse:
    return StreakResponse(**asdict(await get_streak(db, user.id)))


@router.post("/users/me/streak/check", response_model=StreakCheckResponse)
async def check_in(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StreakCheckResponse:
    """Count today as active. Idempotent within a day."""
    update = await record_activity(db, user.id)
    await db.commit()
    return _streak_check(update)


@router.get("/users/me/achievements", response_model=AchievementsResponse)
async def my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AchievementsResponse:
    completed = await count_approved_point_requests(db, user.id)
    redemptions = await count_redemptions(db, user.id)
    streak = await get_streak(db, user.id)
    statuses = evaluate_achievements(completed, user.points, redemptions, streak.longest_streak)
    return AchievementsResponse(
        completed_tasks=completed,
        total_points=user.points,
        achievements=[
            AchievementResponse(
                id=s.achievement.id,
                title=s.achievement.title,
                description=s.achievement.description,
                threshold=s.achievement.threshold,
                progress=s.progress,
                achieved=s.achieved,
            )
            for s in statuses
        ],
        achieved_count=sum(1 for s in statuses if s.achieved),
    )


# ---------------------------------------------------------------------------
# Prayers
# ---------------------------------------------------------------------------


async def _prayer_day(db: AsyncSession, user: User) -> PrayerDayResponse:
    now = utcnow()
    entries = await get_prayer_day(db, user.id, now)
    return PrayerDayResponse(
        date=current_prayer_day(now),
        timezone=get_settings().local_timezone,
        prayers=[PrayerEntry(**asdict(e)) for e in entries],
        completed_count=sum(1 for e in entries if e.completed),
    )


@router.get("/prayers/today", response_model=PrayerDayResponse)
async def prayers_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PrayerDayResponse:
    return await _prayer_day(db, user)


@router.post("/prayers/{name}/complete", response_model=PrayerDayResponse)
async def mark_prayer(
    name: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PrayerDayResponse:
    try:
        await complete_prayer(db, user.id, name)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PrayerNotOpenError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _prayer_day(db, user)


@router.post("/prayers/submit", response_model=PrayerSubmitResponse, status_code=201)
async def submit_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PrayerSubmitResponse:
    """Submit today's prayers for review; all five also extend the streak."""
    try:
        request, streak = await submit_prayers(db, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return PrayerSubmitResponse(
        request=PointRequestResponse.from_request(request),
        streak=_streak_check(streak) if streak else None,
    )

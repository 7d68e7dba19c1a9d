"""Schemas for streak, achievement and prayer endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from perfo.requests.schemas import PointRequestResponse


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None


class StreakCheckResponse(StreakResponse):
    changed: bool
    milestone: bool


class AchievementResponse(BaseModel):
    id: str
    title: str
    description: str
    threshold: int
    progress: int
    achieved: bool


class AchievementsResponse(BaseModel):
    completed_tasks: int
    total_points: int
    achievements: list[AchievementResponse]
    achieved_count: int


class PrayerEntry(BaseModel):
    name: str
    start: datetime
    end: datetime
    status: str
    completed: bool


class PrayerDayResponse(BaseModel):
    date: date
    timezone: str
    prayers: list[PrayerEntry]
    completed_count: int


class PrayerSubmitResponse(BaseModel):
    request: PointRequestResponse
    streak: StreakCheckResponse | None = None

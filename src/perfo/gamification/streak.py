"""Daily streak rule: consecutive calendar days of activity."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date


@dataclass(frozen=True)
class StreakRecord:
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None


def evaluate_streak(record: StreakRecord, today: date) -> StreakRecord:
    """Return the record after activity on ``today``.

    Same day: unchanged. Next day: +1. Any longer gap, or no activity yet:
    back to 1. A last activity dated after ``today`` (clock or timezone
    moved backwards) leaves the record untouched.
    """
    last = record.last_activity_date
    if last is not None:
        gap = (today - last).days
        if gap <= 0:
            return record
        if gap == 1:
            current = record.current_streak + 1
            return StreakRecord(current, max(record.longest_streak, current), today)

    return replace(record, current_streak=1, longest_streak=max(record.longest_streak, 1), last_activity_date=today)


def is_milestone(streak: int, every: int = 5) -> bool:
    """True on every ``every``-th consecutive day (5, 10, 15, ...)."""
    return streak > 0 and every > 0 and streak % every == 0

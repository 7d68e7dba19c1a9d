"""Threshold achievements, recomputed from counters on every call."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    metric: str
    threshold: int


@dataclass(frozen=True)
class AchievementStatus:
    achievement: Achievement
    progress: int
    achieved: bool


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_task", "First Step", "Complete your first task", "tasks", 1),
    Achievement("task_master", "Task Master", "Complete 5 tasks", "tasks", 5),
    Achievement("super_achiever", "Super Achiever", "Complete 10 tasks", "tasks", 10),
    Achievement("point_collector", "Point Collector", "Earn 10 points", "points", 10),
    Achievement("point_hunter", "Point Hunter", "Earn 50 points", "points", 50),
    Achievement("point_master", "Point Master", "Earn 100 points", "points", 100),
    Achievement("reward_collector", "Reward Collector", "Redeem your first reward", "redemptions", 1),
    Achievement("perfect_streak", "Perfect Streak", "Reach a 5-day streak", "streak", 5),
)


def evaluate_achievements(
    completed_tasks: int,
    total_points: int,
    redemptions: int = 0,
    longest_streak: int = 0,
) -> list[AchievementStatus]:
    """Every achievement with its progress (capped at the threshold) and whether it is met."""
    metrics = {
        "tasks": completed_tasks,
        "points": total_points,
        "redemptions": redemptions,
        "streak": longest_streak,
    }
    statuses = []
    for achievement in ACHIEVEMENTS:
        value = metrics[achievement.metric]
        statuses.append(
            AchievementStatus(
                achievement=achievement,
                progress=min(value, achievement.threshold),
                achieved=value >= achievement.threshold,
            )
        )
    return statuses

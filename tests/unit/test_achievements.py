"""Tests for threshold achievements."""

from perfo.gamification.achievements import ACHIEVEMENTS, evaluate_achievements


def _by_id(statuses):
    return {s.achievement.id: s for s in statuses}


class TestEvaluateAchievements:
    def test_one_status_per_achievement(self):
        assert len(evaluate_achievements(0, 0)) == len(ACHIEVEMENTS)

    def test_nothing_achieved_for_new_user(self):
        assert not any(s.achieved for s in evaluate_achievements(0, 0))

    def test_thresholds_are_inclusive(self):
        statuses = _by_id(evaluate_achievements(5, 50))
        assert statuses["first_task"].achieved
        assert statuses["task_master"].achieved
        assert not statuses["super_achiever"].achieved
        assert statuses["point_hunter"].achieved
        assert not statuses["point_master"].achieved

    def test_progress_is_capped_at_threshold(self):
        statuses = _by_id(evaluate_achievements(25, 0))
        assert statuses["first_task"].progress == 1
        assert statuses["super_achiever"].progress == 10

    def test_redemptions_and_streak(self):
        statuses = _by_id(evaluate_achievements(0, 0, redemptions=1, longest_streak=4))
        assert statuses["reward_collector"].achieved
        assert not statuses["perfect_streak"].achieved
        assert statuses["perfect_streak"].progress == 4

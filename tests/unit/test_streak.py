"""Tests for the daily streak rule."""

from datetime import date

from perfo.gamification.streak import StreakRecord, evaluate_streak, is_milestone

DAY = date(2026, 3, 10)


class TestEvaluateStreak:
    def test_first_activity_starts_at_one(self):
        result = evaluate_streak(StreakRecord(), DAY)
        assert result == StreakRecord(1, 1, DAY)

    def test_same_day_is_unchanged(self):
        record = StreakRecord(3, 7, DAY)
        assert evaluate_streak(record, DAY) is record

    def test_next_day_extends(self):
        result = evaluate_streak(StreakRecord(3, 7, date(2026, 3, 9)), DAY)
        assert result.current_streak == 4
        assert result.longest_streak == 7
        assert result.last_activity_date == DAY

    def test_extending_past_longest_raises_longest(self):
        result = evaluate_streak(StreakRecord(7, 7, date(2026, 3, 9)), DAY)
        assert result.current_streak == 8
        assert result.longest_streak == 8

    def test_gap_resets_to_one_and_keeps_longest(self):
        result = evaluate_streak(StreakRecord(6, 9, date(2026, 3, 7)), DAY)
        assert result == StreakRecord(1, 9, DAY)

    def test_month_boundary_counts_as_consecutive(self):
        result = evaluate_streak(StreakRecord(2, 2, date(2026, 2, 28)), date(2026, 3, 1))
        assert result.current_streak == 3

    def test_activity_dated_in_the_future_is_ignored(self):
        record = StreakRecord(2, 2, date(2026, 3, 11))
        assert evaluate_streak(record, DAY) is record


class TestMilestone:
    def test_every_fifth_day(self):
        assert [n for n in range(1, 16) if is_milestone(n)] == [5, 10, 15]

    def test_zero_is_not_a_milestone(self):
        assert is_milestone(0) is False

    def test_custom_interval(self):
        assert is_milestone(7, every=7) is True
        assert is_milestone(5, every=7) is False

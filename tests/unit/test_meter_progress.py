"""Tests for the pure meter rules."""

from datetime import datetime, timezone

import pytest

from perfo.meters.progress import MeterClosedError, MeterState, apply_meter_delta, clamp_percentage

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestClamp:
    @pytest.mark.parametrize(("value", "expected"), [(-5, 0), (0, 0), (42, 42), (100, 100), (130, 100)])
    def test_clamp(self, value, expected):
        assert clamp_percentage(value) == expected


class TestApplyDelta:
    def test_increase(self):
        state, change = apply_meter_delta(MeterState(20), 15, NOW, "chores")
        assert state.current_percentage == 35
        assert change.old_percentage == 20
        assert change.new_percentage == 35
        assert change.change_reason == "chores"
        assert state.status == "active"

    def test_decrease_clamps_at_zero(self):
        state, change = apply_meter_delta(MeterState(10), -30, NOW)
        assert state.current_percentage == 0
        assert change.change_amount == -30

    def test_reaching_target_unlocks_prize_once(self):
        state, _ = apply_meter_delta(MeterState(90), 25, NOW)
        assert state.current_percentage == 100
        assert state.prize_unlocked is True
        assert state.completed_at == NOW
        assert state.status == "completed"
        with pytest.raises(MeterClosedError):
            apply_meter_delta(state, 5, NOW)

    def test_custom_target(self):
        state, _ = apply_meter_delta(MeterState(40, target_percentage=50), 10, NOW)
        assert state.prize_unlocked is True

    def test_deactivated_meter_rejects_changes(self):
        with pytest.raises(MeterClosedError):
            apply_meter_delta(MeterState(40, is_active=False), 10, NOW)
        assert MeterState(40, is_active=False).status == "deactivated"

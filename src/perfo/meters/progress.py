"""Pure percentage-meter rules.

A meter starts active at 0%. Deltas are clamped into [0, 100]. The first
time the percentage reaches the target the prize unlocks and the meter is
completed; completed or deactivated meters accept no further changes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

MIN_PERCENTAGE = 0
MAX_PERCENTAGE = 100


class MeterClosedError(ValueError):
    """The meter is deactivated or already completed."""


@dataclass(frozen=True)
class MeterState:
    current_percentage: int
    target_percentage: int = MAX_PERCENTAGE
    is_active: bool = True
    prize_unlocked: bool = False
    completed_at: datetime | None = None

    @property
    def status(self) -> str:
        if not self.is_active:
            return "deactivated"
        if self.completed_at is not None:
            return "completed"
        return "active"


@dataclass(frozen=True)
class MeterChange:
    old_percentage: int
    new_percentage: int
    change_amount: int
    change_reason: str | None = None


def clamp_percentage(value: int) -> int:
    return max(MIN_PERCENTAGE, min(MAX_PERCENTAGE, value))


def apply_meter_delta(
    state: MeterState, delta: int, now: datetime, reason: str | None = None
) -> tuple[MeterState, MeterChange]:
    """
    Apply a signed percentage ``delta``.

    Returns the new state and the history entry to append. ``change_amount``
    is the requested delta even when clamping absorbed part of it.

    Raises:
        MeterClosedError: the meter is deactivated or completed.
    """
    if not state.is_active:
        msg = "Meter has been deactivated"
        raise MeterClosedError(msg)
    if state.completed_at is not None:
        msg = "Meter is already completed"
        raise MeterClosedError(msg)

    new_percentage = clamp_percentage(state.current_percentage + delta)
    new_state = replace(state, current_percentage=new_percentage)
    if new_percentage >= state.target_percentage:
        new_state = replace(new_state, prize_unlocked=True, completed_at=now)

    change = MeterChange(
        old_percentage=state.current_percentage,
        new_percentage=new_percentage,
        change_amount=delta,
        change_reason=reason,
    )
    return new_state, change

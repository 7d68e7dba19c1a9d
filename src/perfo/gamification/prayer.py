"""The five daily prayer windows.

Windows are fixed local times. Isha runs from 20:00 to 04:00 the next
morning, so "active" and "passed" are evaluated on the time of day with a
wraparound for windows whose end is not after their start.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from perfo.errors import PrayerNotOpenError


@dataclass(frozen=True)
class PrayerWindow:
    name: str
    start: time
    end: time

    @property
    def wraps_midnight(self) -> bool:
        return self.end <= self.start

    def bounds(self, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
        """Start and end instants of this window for the prayer day ``day``."""
        start = datetime.combine(day, self.start, tzinfo=tz)
        end_day = day + timedelta(days=1) if self.wraps_midnight else day
        return start, datetime.combine(end_day, self.end, tzinfo=tz)


PRAYER_WINDOWS: tuple[PrayerWindow, ...] = (
    PrayerWindow("Fajr", time(4, 0), time(6, 30)),
    PrayerWindow("Dhuhr", time(12, 0), time(15, 30)),
    PrayerWindow("Asr", time(15, 30), time(18, 0)),
    PrayerWindow("Maghrib", time(18, 0), time(20, 0)),
    PrayerWindow("Isha", time(20, 0), time(4, 0)),
)

PRAYER_NAMES: tuple[str, ...] = tuple(w.name for w in PRAYER_WINDOWS)


def get_window(name: str) -> PrayerWindow:
    """Case-insensitive lookup. Raises LookupError for unknown prayers."""
    for window in PRAYER_WINDOWS:
        if window.name.lower() == name.strip().lower():
            return window
    msg = f"Unknown prayer: {name}"
    raise LookupError(msg)


def prayer_windows(day: date, tz: tzinfo) -> list[tuple[str, datetime, datetime]]:
    """``(name, start, end)`` for all five prayers of ``day``."""
    return [(w.name, *w.bounds(day, tz)) for w in PRAYER_WINDOWS]


def is_active(window: PrayerWindow, now: time) -> bool:
    if window.wraps_midnight:
        return now >= window.start or now < window.end
    return window.start <= now < window.end


def has_passed(window: PrayerWindow, now: time) -> bool:
    """Past the end of today's window and not yet in the next one.

    For Isha that is only the daytime stretch ``end <= now < start``.
    """
    if window.wraps_midnight:
        return window.end <= now < window.start
    return now >= window.end


def window_status(window: PrayerWindow, now: time) -> str:
    if is_active(window, now):
        return "active"
    if has_passed(window, now):
        return "passed"
    return "upcoming"


def ensure_can_complete(window: PrayerWindow, now: time) -> None:
    """
    A prayer may be marked done once its window has opened.

    Raises:
        PrayerNotOpenError: the window has not started yet.
    """
    if not (is_active(window, now) or has_passed(window, now)):
        msg = f"{window.name} prayer time has not started yet"
        raise PrayerNotOpenError(msg)


def prayer_day(local: datetime) -> date:
    """The date whose set of prayers ``local`` falls in.

    Before Isha closes (04:00) the night still belongs to the previous day.
    """
    if local.time() < PRAYER_WINDOWS[-1].end:
        return local.date() - timedelta(days=1)
    return local.date()


def status_on(window: PrayerWindow, day: date, tz: tzinfo, now: datetime) -> str:
    """Status of ``window`` on prayer day ``day`` at the instant ``now``."""
    start, end = window.bounds(day, tz)
    if now < start:
        return "upcoming"
    if now < end:
        return "active"
    return "passed"


def ensure_open_on(window: PrayerWindow, day: date, tz: tzinfo, now: datetime) -> None:
    """
    Instant-based variant of ``ensure_can_complete`` for a given prayer day.

    Raises:
        PrayerNotOpenError: the window of ``day`` has not started at ``now``.
    """
    if status_on(window, day, tz, now) == "upcoming":
        msg = f"{window.name} prayer time has not started yet"
        raise PrayerNotOpenError(msg)

"""Tests for prayer window status, including the overnight Isha window."""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from perfo.errors import PrayerNotOpenError
from perfo.gamification.prayer import (
    PRAYER_NAMES,
    ensure_can_complete,
    ensure_open_on,
    get_window,
    has_passed,
    is_active,
    prayer_day,
    prayer_windows,
    status_on,
    window_status,
)

ISHA = get_window("Isha")
FAJR = get_window("Fajr")
DHUHR = get_window("Dhuhr")


class TestWindowLookup:
    def test_five_prayers_in_order(self):
        assert PRAYER_NAMES == ("Fajr", "Dhuhr", "Asr", "Maghrib", "Isha")

    def test_lookup_is_case_insensitive(self):
        assert get_window("  isha ").name == "Isha"

    def test_unknown_prayer(self):
        with pytest.raises(LookupError):
            get_window("Tahajjud")


class TestIshaWraparound:
    @pytest.mark.parametrize(
        ("now", "status"),
        [
            (time(23, 0), "active"),
            (time(3, 0), "active"),
            (time(4, 0), "passed"),
            (time(5, 0), "passed"),
            (time(19, 59), "passed"),
            (time(20, 0), "active"),
        ],
    )
    def test_status(self, now, status):
        assert window_status(ISHA, now) == status

    def test_fajr_opens_as_isha_closes(self):
        assert is_active(FAJR, time(4, 0)) is True
        assert is_active(ISHA, time(4, 0)) is False

    def test_isha_can_be_completed_after_midnight(self):
        ensure_can_complete(ISHA, time(3, 0))

    def test_bounds_span_midnight(self):
        tz = ZoneInfo("UTC")
        start, end = ISHA.bounds(date(2026, 3, 10), tz)
        assert end - start == timedelta(hours=8)
        assert end.date() == date(2026, 3, 11)


class TestDaytimeWindows:
    def test_fajr_upcoming_before_four(self):
        assert window_status(FAJR, time(3, 59)) == "upcoming"

    def test_end_is_exclusive(self):
        assert is_active(DHUHR, time(15, 30)) is False
        assert has_passed(DHUHR, time(15, 30)) is True

    def test_cannot_complete_before_window_opens(self):
        with pytest.raises(PrayerNotOpenError):
            ensure_can_complete(DHUHR, time(11, 59))

    def test_passed_prayer_can_still_be_completed(self):
        ensure_can_complete(FAJR, time(13, 0))

    def test_prayer_windows_for_day(self):
        windows = prayer_windows(date(2026, 3, 10), ZoneInfo("UTC"))
        assert [name for name, _, _ in windows] == list(PRAYER_NAMES)
        assert all(start < end for _, start, end in windows)


class TestPrayerDay:
    tz = ZoneInfo("UTC")

    def _at(self, day: int, hour: int, minute: int = 0) -> datetime:
        return datetime(2026, 3, day, hour, minute, tzinfo=self.tz)

    @pytest.mark.parametrize(
        ("hour", "minute", "day"),
        [(0, 0, 10), (2, 0, 10), (3, 59, 10), (4, 0, 11), (10, 0, 11), (23, 30, 11)],
    )
    def test_small_hours_belong_to_previous_day(self, hour, minute, day):
        assert prayer_day(self._at(11, hour, minute)) == date(2026, 3, day)

    def test_isha_active_after_midnight_on_previous_day(self):
        now = self._at(11, 2)
        day = prayer_day(now)
        start, end = ISHA.bounds(day, self.tz)
        assert start <= now < end
        assert status_on(ISHA, day, self.tz, now) == "active"
        assert status_on(FAJR, day, self.tz, now) == "passed"

    def test_isha_upcoming_during_the_day(self):
        now = self._at(12, 10)
        assert status_on(ISHA, prayer_day(now), self.tz, now) == "upcoming"
        with pytest.raises(PrayerNotOpenError):
            ensure_open_on(ISHA, prayer_day(now), self.tz, now)

    def test_isha_passed_once_window_closes(self):
        assert status_on(ISHA, date(2026, 3, 10), self.tz, self._at(11, 4)) == "passed"

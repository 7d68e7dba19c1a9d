"""Time helpers shared by the services."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from perfo.config import get_settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().local_timezone)


def local_now(now: datetime | None = None) -> datetime:
    """``now`` (default: current instant) in the configured local timezone."""
    return as_utc(now or utcnow()).astimezone(local_tz())


def local_today(now: datetime | None = None) -> date:
    return local_now(now).date()

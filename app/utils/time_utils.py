# app/utils/time_utils.py
"""
Time helpers. The database stores naive UTC; restriction windows are
zone-local, so the lifecycle converts `now` before consulting them.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import settings


def utcnow() -> datetime:
    """Current time as naive UTC, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def zone_tz(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.ZONE_TIMEZONE)


def to_zone_local(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Naive-UTC (or aware) datetime → aware datetime in the zone timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(zone_tz(tz_name))


def add_hours(value: datetime, hours) -> datetime:
    """Elapsed-time addition. Aware values go through UTC so a DST shift lands on the right wall-clock time."""
    delta = timedelta(hours=float(hours))
    if value.tzinfo is None:
        return value + delta
    return (value.astimezone(timezone.utc) + delta).astimezone(value.tzinfo)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def minutes_until(end: datetime, now: datetime) -> int:
    """Whole minutes from now until end, never negative."""
    return max(0, int((end - now).total_seconds() // 60))

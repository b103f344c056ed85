# app/services/restrictions.py
"""
Zone time-restriction evaluator.

A zone carries recurring weekly windows (rush hour, street cleaning, ...).
Windows are zone-local "HH:MM" pairs; a window whose end is earlier than its
start runs past midnight. Intervals are half-open [start, end): a session
that ends exactly when a window begins does not conflict with it.

check_restrictions()   — may a session start now and run for N hours?
next_available_time()  — earliest moment parking is allowed again.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

import pydantic

from app.config import settings
from app.schemas.zone import TimeRestriction, ZoneRestrictions
from app.services.exceptions import ValidationError
from app.services.pricing import to_decimal
from app.utils.time_utils import add_hours
from app.utils.logger import get_logger

logger = get_logger(__name__)

DAYS_TO_SCAN = 7


@dataclass
class Restriction:
    type: str
    description: str
    active_until: Optional[datetime] = None


@dataclass
class RestrictionWarning:
    type: str
    message: str
    warning_time: Optional[datetime] = None


@dataclass
class RestrictionCheckResult:
    can_park: bool = True
    restrictions: List[Restriction] = field(default_factory=list)
    warnings: List[RestrictionWarning] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def _schedule(zone) -> ZoneRestrictions:
    if isinstance(zone, ZoneRestrictions):
        return zone
    try:
        return zone.restrictions
    except pydantic.ValidationError as e:
        logger.error(f"[RESTRICTIONS] Zone {getattr(zone, 'zone_number', '?')} has an invalid schedule: {e}")
        raise ValidationError("Zone restriction schedule is invalid")


def weekday_index(value) -> int:
    """0 = Sunday … 6 = Saturday, matching TimeRestriction.days_of_week."""
    return (value.weekday() + 1) % 7


def _parse_hhmm(value: str) -> time:
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def materialize_window(window: TimeRestriction, day: date, tzinfo=None) -> Tuple[datetime, datetime]:
    """Absolute [start, end) of `window` on `day`; the end rolls to the next day when it crosses midnight."""
    start = datetime.combine(day, _parse_hhmm(window.start_time), tzinfo=tzinfo)
    end = datetime.combine(day, _parse_hhmm(window.end_time), tzinfo=tzinfo)
    if end < start:
        end += timedelta(days=1)
    return start, end


def _overlaps(req_start: datetime, req_end: datetime, win_start: datetime, win_end: datetime) -> bool:
    return (
        (win_start <= req_start < win_end)
        or (win_start < req_end <= win_end)
        or (req_start < win_start and req_end > win_end)
    )


def _describe(window: TimeRestriction) -> str:
    return window.description or f"Parking restricted {window.start_time}-{window.end_time}"


def check_restrictions(zone, requested_start: datetime, duration_hours,
                       warning_minutes: Optional[int] = None) -> RestrictionCheckResult:
    """
    Evaluate the zone's windows for the day `requested_start` falls on.

    Only windows that start on that day are checked: at 01:00 under a 22:00-02:00
    window from the previous evening, parking is allowed here even though
    next_available_time() still reports 02:00.

    `requested_start` must be in zone-local time (naive or aware). Windows that
    tolerate parking are reported as warnings rather than blocking.
    """
    hours = to_decimal(duration_hours, "duration_hours")
    if hours <= 0:
        raise ValidationError("duration_hours must be greater than 0")
    if warning_minutes is None:
        warning_minutes = settings.RESTRICTION_WARNING_MINUTES

    schedule = _schedule(zone)
    requested_end = add_hours(requested_start, hours)
    result = RestrictionCheckResult()

    if not schedule.time_restrictions:
        return result

    day = weekday_index(requested_start)
    warn_window = timedelta(minutes=warning_minutes)

    for window in schedule.time_restrictions:
        if day not in window.days_of_week:
            continue

        win_start, win_end = materialize_window(window, requested_start.date(), requested_start.tzinfo)
        tolerated = window.parking_allowed or schedule.allowed_during_restrictions

        if _overlaps(requested_start, requested_end, win_start, win_end):
            if tolerated:
                result.warnings.append(RestrictionWarning(
                    type=window.restriction_type,
                    message=f"{_describe(window)} in effect until {win_end:%H:%M}; parking is tolerated",
                    warning_time=win_start,
                ))
            else:
                result.can_park = False
                result.restrictions.append(Restriction(
                    type=window.restriction_type,
                    description=_describe(window),
                    active_until=win_end,
                ))

        lead = win_start - requested_end
        if timedelta(0) < lead <= warn_window:
            result.warnings.append(RestrictionWarning(
                type=window.restriction_type,
                message=f"{window.description or 'Parking restriction'} begins at {window.start_time}",
                warning_time=win_start,
            ))

    return result


def _intervals_for_day(schedule: ZoneRestrictions, day: date, tzinfo) -> List[Tuple[datetime, datetime]]:
    """Sorted blocking intervals touching `day`, including yesterday's windows that run past midnight."""
    day_start = datetime.combine(day, time.min, tzinfo=tzinfo)
    yesterday = day - timedelta(days=1)
    intervals = []
    for window in schedule.time_restrictions:
        if window.parking_allowed or schedule.allowed_during_restrictions:
            continue
        if weekday_index(day) in window.days_of_week:
            intervals.append(materialize_window(window, day, tzinfo))
        if weekday_index(yesterday) in window.days_of_week:
            start, end = materialize_window(window, yesterday, tzinfo)
            if end > day_start:
                intervals.append((start, end))
    return sorted(intervals)


def next_available_time(zone, from_time: datetime,
                        min_gap_minutes: Optional[int] = None) -> Optional[datetime]:
    """
    Earliest moment at or after `from_time` (zone-local) when parking is allowed.

    A point between two windows only counts when the gap before the next window is
    at least `min_gap_minutes`. Returns None when every day of the coming week is
    fully restricted; callers must treat that as a hard failure.
    """
    if min_gap_minutes is None:
        min_gap_minutes = settings.MIN_AVAILABILITY_GAP_MINUTES
    min_gap = timedelta(minutes=min_gap_minutes)

    schedule = _schedule(zone)
    if not schedule.time_restrictions:
        return from_time

    for offset in range(DAYS_TO_SCAN):
        day = from_time.date() + timedelta(days=offset)
        day_start = datetime.combine(day, time.min, tzinfo=from_time.tzinfo)
        day_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=from_time.tzinfo)
        candidate = max(from_time, day_start)

        intervals = _intervals_for_day(schedule, day, from_time.tzinfo)
        if not intervals:
            return candidate

        cursor = candidate
        for i, (start, end) in enumerate(intervals):
            if cursor < start and (i == 0 or start - cursor >= min_gap):
                return cursor
            cursor = max(cursor, end)

        if cursor < day_end:
            return cursor

    return None


def sample_restrictions() -> ZoneRestrictions:
    """Standard downtown schedule: weekday rush hours plus overnight street cleaning."""
    return ZoneRestrictions(
        time_restrictions=[
            TimeRestriction(
                start_time="07:00", end_time="09:00", days_of_week=[1, 2, 3, 4, 5],
                restriction_type="RUSH_HOUR",
                description="Morning rush hour - No parking to keep traffic flowing",
            ),
            TimeRestriction(
                start_time="16:30", end_time="18:30", days_of_week=[1, 2, 3, 4, 5],
                restriction_type="RUSH_HOUR",
                description="Evening rush hour - No parking to keep traffic flowing",
            ),
            TimeRestriction(
                start_time="02:00", end_time="06:00", days_of_week=[2],
                restriction_type="STREET_CLEANING",
                description="Street cleaning - Move your vehicle or risk a ticket",
            ),
            TimeRestriction(
                start_time="02:00", end_time="06:00", days_of_week=[5],
                restriction_type="STREET_CLEANING",
                description="Street cleaning - Move your vehicle or risk a ticket",
            ),
        ],
        allowed_during_restrictions=False,
    )

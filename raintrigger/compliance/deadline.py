"""
Deadline Calculator

Computes the inspection deadline for a rain trigger in the project's local
timezone. Two working-hours policies are supported:

NEXT_BUSINESS_WINDOW (default)
    The inspection window (24h) runs in absolute time; if it ends outside
    working hours or on a non-working day, the deadline moves forward to the
    next working-day opening.
        Monday 10:00   -> Tuesday 10:00
        Friday 18:00   -> Saturday 18:00 -> Monday 07:00

WORKING_HOUR_BUDGET
    Only working hours count toward the window. Walking forward day by day,
    each working day contributes at most (workday_end - workday_start) hours;
    weekends and holidays contribute nothing.
        Monday 10:00   -> Mon 7h + Tue 10h + Wed 7h  -> Wednesday 14:00

Either way the deadline's local time falls in [workday_start, workday_end) on
a working day. With working_hours_only=False the deadline is simply
triggered_at + 24h.
"""

from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import FrozenSet, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from .exceptions import InvalidTimezone
from .precipitation import ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DAYS: FrozenSet[int] = frozenset({0, 1, 2, 3, 4})  # Monday-Friday


class DeadlinePolicy(str, Enum):
    NEXT_BUSINESS_WINDOW = "next_business_window"
    WORKING_HOUR_BUDGET = "working_hour_budget"


def load_zone(name: str) -> ZoneInfo:
    """Resolve an IANA zone id or raise InvalidTimezone."""
    if not name or not isinstance(name, str):
        raise InvalidTimezone(f"Invalid timezone: {name!r}")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezone(f"Unknown timezone: {name}") from exc


def to_local(instant: datetime, tz_name: str) -> datetime:
    """Express an instant in the given zone."""
    return ensure_utc(instant).astimezone(load_zone(tz_name))


def _exists(wall: datetime, zone: ZoneInfo) -> bool:
    aware = wall.replace(tzinfo=zone)
    round_trip = aware.astimezone(timezone.utc).astimezone(zone).replace(tzinfo=None)
    return round_trip == wall


def resolve_local(wall: datetime, zone: ZoneInfo) -> datetime:
    """
    Turn a naive local wall time into a UTC instant.

    Ambiguous times (fall back) resolve to the earlier instant. Nonexistent
    times (spring-forward gap) resolve to the first instant after the gap.
    """
    if _exists(wall, zone):
        return wall.replace(tzinfo=zone, fold=0).astimezone(timezone.utc)

    # Inside a gap, fold=1 maps before the transition and fold=0 after it.
    lo = wall.replace(tzinfo=zone, fold=1).astimezone(timezone.utc)
    hi = wall.replace(tzinfo=zone, fold=0).astimezone(timezone.utc)
    before = lo.astimezone(zone).utcoffset()
    while hi - lo > timedelta(seconds=1):
        mid = lo + (hi - lo) / 2
        if mid.astimezone(zone).utcoffset() == before:
            lo = mid
        else:
            hi = mid
    resolved = hi.replace(microsecond=0)
    logger.debug(f"Local time {wall} does not exist in {zone.key}; using {resolved.isoformat()}")
    return resolved


class DeadlineCalculator:
    """
    Business-calendar deadline arithmetic.

    The calendar is a parameter, not a rule baked into the algorithm: pass
    different hours, working days or holidays for other jurisdictions.
    """

    def __init__(
        self,
        required_hours: float = 24,
        workday_start: time = time(7, 0),
        workday_end: time = time(17, 0),
        working_days: Iterable[int] = DEFAULT_WORKING_DAYS,
        holidays: Iterable[date] = (),
        policy: DeadlinePolicy = DeadlinePolicy.NEXT_BUSINESS_WINDOW,
    ):
        if workday_end <= workday_start:
            raise ValueError("workday_end must be after workday_start")
        self.required = timedelta(hours=required_hours)
        self.workday_start = workday_start
        self.workday_end = workday_end
        self.working_days = frozenset(working_days)
        self.holidays = frozenset(holidays)
        self.policy = DeadlinePolicy(policy)
        if not self.working_days:
            raise ValueError("At least one working day is required")

    def is_working_day(self, day: date) -> bool:
        return day.weekday() in self.working_days and day not in self.holidays

    def is_working_time(self, wall: datetime) -> bool:
        """True when a local wall time is inside working hours on a working day."""
        return self.is_working_day(wall.date()) and self.workday_start <= wall.time() < self.workday_end

    def compute_deadline(
        self,
        triggered_at: datetime,
        tz_name: str,
        working_hours_only: bool = True,
    ) -> datetime:
        """Return the deadline as a UTC datetime."""
        zone = load_zone(tz_name)
        start = ensure_utc(triggered_at)

        if not working_hours_only:
            return start + self.required

        if self.policy == DeadlinePolicy.WORKING_HOUR_BUDGET:
            wall = self._spend_working_hours(start.astimezone(zone).replace(tzinfo=None))
        else:
            window_end = (start + self.required).astimezone(zone).replace(tzinfo=None)
            wall = self._next_working_moment(window_end)

        deadline = resolve_local(wall, zone)
        logger.debug(
            f"Deadline for trigger at {start.isoformat()} ({tz_name}, {self.policy.value}): "
            f"{deadline.isoformat()}"
        )
        return deadline

    def _spend_working_hours(self, cursor: datetime) -> datetime:
        remaining = self.required
        while True:
            cursor = self._next_working_moment(cursor)
            day_end = datetime.combine(cursor.date(), self.workday_end)
            available = day_end - cursor
            if remaining < available:
                return cursor + remaining
            # Budget used up exactly at close of business rolls to the next opening
            remaining -= available
            cursor = day_end

    def _next_working_moment(self, wall: datetime) -> datetime:
        """First local wall time at or after ``wall`` inside working hours."""
        day = wall.date()
        if self.is_working_day(day):
            opening = datetime.combine(day, self.workday_start)
            closing = datetime.combine(day, self.workday_end)
            if wall < opening:
                return opening
            if wall < closing:
                return wall

        day += timedelta(days=1)
        while not self.is_working_day(day):
            day += timedelta(days=1)
        return datetime.combine(day, self.workday_start)


def compute_deadline(
    triggered_at: datetime,
    tz_name: str,
    working_hours_only: bool = True,
    calculator: Optional[DeadlineCalculator] = None,
) -> datetime:
    """Module-level shortcut using the default EPA calendar."""
    return (calculator or DeadlineCalculator()).compute_deadline(
        triggered_at, tz_name, working_hours_only
    )

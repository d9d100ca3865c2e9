"""
Precipitation Window

Rolling 24-hour aggregation of precipitation observations. The window is
measured in absolute UTC time, so readings either side of local midnight or a
DST change are summed like any others.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence
import logging

from .threshold import to_decimal
from .types import CalculationMethod, HourlyReading, PrecipitationObservation

logger = logging.getLogger(__name__)

WINDOW = timedelta(hours=24)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def in_window(observed_at: datetime, as_of: datetime, window: timedelta = WINDOW) -> bool:
    """True when ``observed_at`` lies in ``(as_of - window, as_of]``."""
    observed = ensure_utc(observed_at)
    end = ensure_utc(as_of)
    return end - window < observed <= end


def aggregate(
    observations: Iterable[PrecipitationObservation],
    as_of: datetime,
    window: timedelta = WINDOW,
) -> Decimal:
    """
    Sum the amounts observed in the trailing window ending at ``as_of``.

    Observations outside the window are excluded, not clamped. Observations
    without a timestamp cannot be placed and are skipped. No observations
    means zero, not an error.
    """
    total = Decimal("0")
    skipped = 0
    for observation in observations:
        amount = to_decimal(observation.amount)
        if observation.observed_at is None:
            skipped += 1
            continue
        if in_window(observation.observed_at, as_of, window):
            total += amount

    if skipped:
        logger.warning(f"Skipped {skipped} precipitation observation(s) without a timestamp")
    return total


def readings_to_observations(
    readings: Iterable[HourlyReading],
    as_of: datetime,
) -> List[PrecipitationObservation]:
    """
    Stamp hourly provider buckets with absolute UTC times.

    A reading with a date is placed at ``date hour:00 UTC``. Without a date it
    is the most recent occurrence of that UTC hour at or before ``as_of``,
    which always lands inside the trailing 24 hours.
    """
    end = ensure_utc(as_of)
    observations = []
    for reading in readings:
        try:
            hour = int(reading.hour)
        except (TypeError, ValueError):
            hour = None
        if hour is None or not 0 <= hour <= 23:
            logger.warning(f"Ignoring precipitation reading with invalid hour {reading.hour!r}")
            continue
        amount = to_decimal(reading.precipitation)
        if reading.date is not None:
            observed_at = datetime.combine(reading.date, time(hour), tzinfo=timezone.utc)
        else:
            observed_at = end.replace(hour=hour, minute=0, second=0, microsecond=0)
            if observed_at > end:
                observed_at -= timedelta(days=1)
        observations.append(PrecipitationObservation(amount=amount, observed_at=observed_at))
    return observations


@dataclass
class PrecipitationWindow:
    """Snapshot of the observations counted for one project evaluation."""
    project_id: str
    as_of: datetime
    calculation_method: CalculationMethod
    observations: List[PrecipitationObservation] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((o.amount for o in self.observations), Decimal("0"))

    @classmethod
    def build(
        cls,
        project_id: str,
        observations: Sequence[PrecipitationObservation],
        as_of: datetime,
        calculation_method: Optional[CalculationMethod] = None,
    ) -> "PrecipitationWindow":
        """Keep only in-window observations, ordered by time."""
        kept = []
        for o in observations:
            amount = to_decimal(o.amount)
            if o.observed_at is not None and in_window(o.observed_at, as_of):
                kept.append(PrecipitationObservation(amount=amount, observed_at=ensure_utc(o.observed_at)))
        kept.sort(key=lambda o: o.observed_at)
        if calculation_method is None:
            calculation_method = (
                CalculationMethod.SINGLE_READING if len(kept) == 1 else CalculationMethod.ROLLING_24H_SUM
            )
        return cls(
            project_id=project_id,
            as_of=ensure_utc(as_of),
            calculation_method=calculation_method,
            observations=kept,
        )

    @classmethod
    def from_cumulative(cls, project_id: str, amount, as_of: datetime) -> "PrecipitationWindow":
        """Window for providers that only report a rolling 24h total."""
        reading = PrecipitationObservation(amount=to_decimal(amount), observed_at=ensure_utc(as_of))
        return cls.build(project_id, [reading], as_of, CalculationMethod.SINGLE_READING)

"""
Tests for rolling 24-hour precipitation aggregation.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from raintrigger.compliance.exceptions import InvalidInput
from raintrigger.compliance.precipitation import (
    PrecipitationWindow,
    aggregate,
    in_window,
    readings_to_observations,
)
from raintrigger.compliance.types import CalculationMethod, HourlyReading, PrecipitationObservation


AS_OF = datetime(2024, 1, 16, 5, 0, tzinfo=timezone.utc)


def obs(amount, observed_at):
    return PrecipitationObservation(amount=Decimal(amount), observed_at=observed_at)


# =============================================================================
# Window bounds
# =============================================================================

class TestWindowBounds:
    """The window is (as_of - 24h, as_of]."""

    def test_end_is_inclusive(self):
        assert in_window(AS_OF, AS_OF) is True

    def test_start_is_exclusive(self):
        assert in_window(AS_OF - timedelta(hours=24), AS_OF) is False
        assert in_window(AS_OF - timedelta(hours=24) + timedelta(seconds=1), AS_OF) is True

    def test_future_observation_excluded(self):
        assert in_window(AS_OF + timedelta(seconds=1), AS_OF) is False

    def test_naive_timestamps_are_utc(self):
        assert in_window(datetime(2024, 1, 16, 4, 0), AS_OF) is True


# =============================================================================
# aggregate
# =============================================================================

class TestAggregate:

    def test_sums_in_window_only(self):
        observations = [
            obs("0.10", AS_OF - timedelta(hours=1)),
            obs("0.15", AS_OF - timedelta(hours=23)),
            obs("5.00", AS_OF - timedelta(hours=25)),
        ]
        assert aggregate(observations, AS_OF) == Decimal("0.25")

    def test_empty_is_zero(self):
        assert aggregate([], AS_OF) == Decimal("0")

    def test_missing_timestamps_are_skipped(self):
        observations = [obs("0.30", None), obs("0.05", AS_OF)]
        assert aggregate(observations, AS_OF) == Decimal("0.05")

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidInput):
            aggregate([obs("-0.01", AS_OF)], AS_OF)

    def test_sum_across_local_midnight_and_dst(self):
        """Window is absolute time; local calendar days and DST don't matter."""
        as_of = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)  # US spring-forward day
        observations = [
            obs("0.10", datetime(2024, 3, 10, 4, 30, tzinfo=timezone.utc)),   # 23:30 EST Mar 9
            obs("0.10", datetime(2024, 3, 10, 5, 30, tzinfo=timezone.utc)),   # 00:30 EST Mar 10
            obs("0.07", datetime(2024, 3, 10, 7, 30, tzinfo=timezone.utc)),   # 03:30 EDT
        ]
        assert aggregate(observations, as_of) == Decimal("0.27")

    def test_full_precision_kept(self):
        assert aggregate([obs("0.251234567", AS_OF)], AS_OF) == Decimal("0.251234567")


# =============================================================================
# Hourly readings
# =============================================================================

class TestReadingsToObservations:

    def test_dated_readings_are_placed_in_utc(self):
        readings = [HourlyReading(hour=23, precipitation=0.15, date=date(2024, 1, 15))]
        [o] = readings_to_observations(readings, AS_OF)
        assert o.observed_at == datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)
        assert o.amount == Decimal("0.15")

    def test_undated_hours_map_to_most_recent_occurrence(self):
        readings = [
            HourlyReading(hour=23, precipitation=0.15),
            HourlyReading(hour=1, precipitation=0.12),
        ]
        late, early = readings_to_observations(readings, AS_OF)
        assert late.observed_at == datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)
        assert early.observed_at == datetime(2024, 1, 16, 1, 0, tzinfo=timezone.utc)

    def test_readings_straddling_midnight_sum(self):
        readings = [
            HourlyReading(hour=23, precipitation=0.15, date=date(2024, 1, 15)),
            HourlyReading(hour=1, precipitation=0.12, date=date(2024, 1, 16)),
        ]
        assert aggregate(readings_to_observations(readings, AS_OF), AS_OF) == Decimal("0.27")

    def test_invalid_hour_skipped(self):
        readings = [HourlyReading(hour=24, precipitation=1.0), HourlyReading(hour=2, precipitation=0.1)]
        assert len(readings_to_observations(readings, AS_OF)) == 1

    def test_non_numeric_hour_skipped(self):
        readings = [
            HourlyReading(hour="noon", precipitation=1.0),
            HourlyReading(hour=None, precipitation=1.0),
            HourlyReading(hour="2", precipitation=0.1),
        ]
        observations = readings_to_observations(readings, AS_OF)
        assert [o.amount for o in observations] == [Decimal("0.1")]

    def test_negative_reading_rejected(self):
        with pytest.raises(InvalidInput):
            readings_to_observations([HourlyReading(hour=2, precipitation=-0.1)], AS_OF)


# =============================================================================
# PrecipitationWindow
# =============================================================================

class TestPrecipitationWindow:

    def test_build_keeps_sorted_in_window_observations(self):
        window = PrecipitationWindow.build(
            "proj-1",
            [
                obs("0.05", AS_OF - timedelta(hours=2)),
                obs("0.08", AS_OF - timedelta(hours=30)),
                obs("0.07", AS_OF - timedelta(hours=5)),
            ],
            AS_OF,
        )
        assert [o.amount for o in window.observations] == [Decimal("0.07"), Decimal("0.05")]
        assert window.total == Decimal("0.12")
        assert window.calculation_method == CalculationMethod.ROLLING_24H_SUM

    def test_single_observation_is_single_reading(self):
        window = PrecipitationWindow.build("proj-1", [obs("0.30", AS_OF)], AS_OF)
        assert window.calculation_method == CalculationMethod.SINGLE_READING

    def test_from_cumulative(self):
        window = PrecipitationWindow.from_cumulative("proj-1", 0.26, AS_OF)
        assert window.total == Decimal("0.26")
        assert window.calculation_method == CalculationMethod.SINGLE_READING
        assert window.observations[0].observed_at == AS_OF

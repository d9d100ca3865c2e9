"""
Tests for inspection deadline calculation.

All working-hours assertions are made in the project's local timezone.
"""

import pytest
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from raintrigger.compliance.deadline import (
    DeadlineCalculator,
    DeadlinePolicy,
    compute_deadline,
    resolve_local,
    to_local,
)
from raintrigger.compliance.exceptions import InvalidTimezone

NY = "America/New_York"


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def assert_in_working_hours(deadline: datetime, tz_name: str = NY):
    local = deadline.astimezone(ZoneInfo(tz_name))
    assert local.weekday() < 5
    assert time(7, 0) <= local.time() < time(17, 0)


# =============================================================================
# Absolute mode
# =============================================================================

class TestAbsoluteMode:

    def test_plain_24_hours(self):
        deadline = compute_deadline(utc(2024, 1, 15, 10, 0), NY, working_hours_only=False)
        assert deadline == utc(2024, 1, 16, 10, 0)

    def test_weekend_not_skipped(self):
        deadline = compute_deadline(utc(2024, 1, 19, 18, 0), NY, working_hours_only=False)
        assert deadline == utc(2024, 1, 20, 18, 0)

    def test_naive_trigger_time_is_utc(self):
        deadline = compute_deadline(datetime(2024, 1, 15, 10, 0), NY, working_hours_only=False)
        assert deadline == utc(2024, 1, 16, 10, 0)


# =============================================================================
# Next business window (default policy)
# =============================================================================

class TestNextBusinessWindow:

    def test_weekday_window_inside_hours_unchanged(self):
        # Monday 10:00 EST -> Tuesday 10:00 EST
        assert compute_deadline(utc(2024, 1, 15, 15, 0), NY) == utc(2024, 1, 16, 15, 0)

    def test_friday_evening_rolls_to_monday(self):
        deadline = compute_deadline(utc(2024, 1, 19, 18, 0), NY)
        local = deadline.astimezone(ZoneInfo(NY))
        assert local.weekday() == 0
        assert_in_working_hours(deadline)
        assert deadline == utc(2024, 1, 22, 12, 0)  # Monday 07:00 EST

    def test_window_ending_after_close_moves_to_next_opening(self):
        # Tuesday 18:00 EST -> Wednesday 18:00 -> Thursday 07:00
        assert compute_deadline(utc(2024, 1, 16, 23, 0), NY) == utc(2024, 1, 18, 12, 0)

    def test_window_ending_before_opening_moves_to_opening(self):
        # Tuesday 05:00 EST -> Wednesday 05:00 -> Wednesday 07:00
        assert compute_deadline(utc(2024, 1, 16, 10, 0), NY) == utc(2024, 1, 17, 12, 0)

    def test_close_of_business_is_excluded(self):
        # Window ends exactly 17:00 Wednesday -> Thursday 07:00
        assert compute_deadline(utc(2024, 1, 16, 22, 0), NY) == utc(2024, 1, 18, 12, 0)

    def test_holiday_skipped(self):
        calculator = DeadlineCalculator(holidays=[date(2024, 1, 22)])
        deadline = calculator.compute_deadline(utc(2024, 1, 19, 18, 0), NY)
        assert deadline == utc(2024, 1, 23, 12, 0)  # Tuesday 07:00 EST

    def test_weekend_across_dst_change(self):
        # Friday 10:00 EST, Monday opening is already EDT
        deadline = compute_deadline(utc(2024, 3, 8, 15, 0), NY)
        assert deadline == utc(2024, 3, 11, 11, 0)
        assert_in_working_hours(deadline)

    def test_other_timezone(self):
        deadline = compute_deadline(utc(2024, 1, 19, 18, 0), "America/Los_Angeles")
        assert_in_working_hours(deadline, "America/Los_Angeles")
        assert deadline == utc(2024, 1, 22, 15, 0)  # Monday 07:00 PST

    def test_sweep_always_lands_in_working_hours(self):
        start = utc(2024, 1, 1, 0, 0)
        for hours in range(0, 24 * 14, 5):
            triggered = start + timedelta(hours=hours)
            assert_in_working_hours(compute_deadline(triggered, NY))


# =============================================================================
# Working-hour budget policy
# =============================================================================

class TestWorkingHourBudget:

    @pytest.fixture
    def calculator(self):
        return DeadlineCalculator(policy=DeadlinePolicy.WORKING_HOUR_BUDGET)

    def test_monday_morning_spans_three_days(self, calculator):
        # Mon 10:00: 7h Monday + 10h Tuesday + 7h Wednesday
        assert calculator.compute_deadline(utc(2024, 1, 15, 15, 0), NY) == utc(2024, 1, 17, 19, 0)

    def test_friday_evening_skips_weekend(self, calculator):
        # Fri 13:00 EST: 4h Friday + 10h Monday + 10h Tuesday -> Wednesday opening
        deadline = calculator.compute_deadline(utc(2024, 1, 19, 18, 0), NY)
        assert deadline == utc(2024, 1, 24, 12, 0)
        assert_in_working_hours(deadline)

    def test_trigger_outside_hours_starts_at_next_opening(self, calculator):
        # Saturday -> Monday 07:00 + 24 working hours -> Wednesday 11:00
        deadline = calculator.compute_deadline(utc(2024, 1, 20, 15, 0), NY)
        assert deadline == utc(2024, 1, 24, 16, 0)


# =============================================================================
# Timezones and DST
# =============================================================================

class TestTimezones:

    def test_unknown_timezone(self):
        with pytest.raises(InvalidTimezone):
            compute_deadline(utc(2024, 1, 15, 10, 0), "Mars/Olympus_Mons")

    def test_empty_timezone(self):
        with pytest.raises(InvalidTimezone):
            compute_deadline(utc(2024, 1, 15, 10, 0), "")

    def test_nonexistent_local_time_shifts_forward(self):
        # 02:30 on spring-forward day does not exist in New York
        resolved = resolve_local(datetime(2024, 3, 10, 2, 30), ZoneInfo(NY))
        assert resolved == utc(2024, 3, 10, 7, 0)  # 03:00 EDT

    def test_ambiguous_local_time_uses_earlier_instant(self):
        resolved = resolve_local(datetime(2024, 11, 3, 1, 30), ZoneInfo(NY))
        assert resolved == utc(2024, 11, 3, 5, 30)  # 01:30 EDT

    def test_to_local(self):
        local = to_local(utc(2024, 1, 15, 15, 0), NY)
        assert (local.hour, local.utcoffset().total_seconds()) == (10, -5 * 3600)

    def test_empty_workday_rejected(self):
        with pytest.raises(ValueError):
            DeadlineCalculator(workday_start=time(17), workday_end=time(7))

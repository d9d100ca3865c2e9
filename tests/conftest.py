"""Shared test fixtures for the rain-trigger compliance tests."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

import pytest

from raintrigger.compliance.engine import ComplianceEngine
from raintrigger.compliance.types import (
    AuditTrail,
    CalculationMethod,
    HourlyReading,
    Location,
    Trigger,
)
from raintrigger.config import Settings
from raintrigger.notifications import ConsoleNotificationSender
from raintrigger.storage import InMemoryTriggerStore
from raintrigger.weather.base import WeatherProvider


class FakeWeather(WeatherProvider):
    """Scriptable weather source that records how often it was asked."""

    name = "FAKE"

    def __init__(self, total=None, hourly: Optional[List[HourlyReading]] = None, error: Exception = None):
        self.total = total
        self.hourly = hourly
        self.error = error
        self.calls = 0

    async def get_precipitation_24h(self, location):
        self.calls += 1
        if self.error:
            raise self.error
        return self.total

    async def get_hourly_precipitation_24h(self, location):
        if self.error:
            self.calls += 1
            raise self.error
        if self.hourly is None:
            return None
        self.calls += 1
        return self.hourly


class FixedClock:
    """Callable clock the tests move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


NYC = Location(lat=40.7128, lng=-74.0060)


def make_trigger(
    deadline: datetime,
    project_id: str = "proj-1",
    triggered_at: Optional[datetime] = None,
    amount: str = "0.30",
) -> Trigger:
    triggered_at = triggered_at or deadline - timedelta(hours=24)
    return Trigger(
        project_id=project_id,
        precipitation_amount=Decimal(amount),
        threshold=Decimal("0.25"),
        triggered_at=triggered_at,
        deadline=deadline,
        regulation="EPA_CGP_2022_SECTION_4_2",
        audit_trail=AuditTrail(
            triggered_at=triggered_at,
            precipitation_amount=Decimal(amount),
            precipitation_source="FAKE",
            threshold=Decimal("0.25"),
            regulation="EPA_CGP_2022_SECTION_4_2",
            location=NYC,
            calculation_method=CalculationMethod.SINGLE_READING,
            timezone="America/New_York",
        ),
    )


@pytest.fixture
def test_settings():
    return Settings(DEFAULT_PROJECT_TIMEZONE="America/New_York", WEATHER_TIMEOUT_SECONDS=0.5)


@pytest.fixture
def clock():
    # Tuesday 10:00 in New York
    return FixedClock(datetime(2024, 1, 16, 15, 0, tzinfo=timezone.utc))


@pytest.fixture
def weather():
    return FakeWeather(total=Decimal("0.30"))


@pytest.fixture
def notifier():
    return ConsoleNotificationSender()


@pytest.fixture
def store():
    return InMemoryTriggerStore()


@pytest.fixture
def engine(weather, notifier, store, test_settings, clock):
    return ComplianceEngine(
        weather=weather,
        notifier=notifier,
        store=store,
        settings=test_settings,
        clock=clock,
    )

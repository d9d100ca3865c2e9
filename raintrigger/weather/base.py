"""
Base weather provider interface.

All precipitation sources (NOAA, OpenWeatherMap, test fakes) implement this
interface. Failures must surface as WeatherUnavailable, never as a zero
amount: "could not observe" and "no rain" are different compliance states.
"""
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_EVEN
from typing import List, Optional

from raintrigger.compliance.types import HourlyReading, Location

MM_PER_INCH = Decimal("25.4")
INCH_QUANTUM = Decimal("0.0001")


def mm_to_inches(mm) -> Decimal:
    """Exact mm -> inch conversion, kept to 1/10000 inch."""
    return (Decimal(str(mm)) / MM_PER_INCH).quantize(INCH_QUANTUM, rounding=ROUND_HALF_EVEN)


class WeatherProvider(ABC):
    """Abstract base class for precipitation sources."""

    name: str = "WeatherProvider"

    @abstractmethod
    async def get_precipitation_24h(self, location: Location) -> Decimal:
        """Rolling 24h precipitation total in inches."""
        pass

    async def get_hourly_precipitation_24h(self, location: Location) -> Optional[List[HourlyReading]]:
        """
        Hourly buckets for the trailing 24 hours.

        Returns None when the source only reports a rolling total.
        """
        return None

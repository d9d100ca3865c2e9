"""Chain of weather providers: the first source that answers wins."""
from decimal import Decimal
from typing import List, Optional, Sequence
import logging

from raintrigger.compliance.exceptions import WeatherUnavailable
from raintrigger.compliance.types import HourlyReading, Location

from .base import WeatherProvider

logger = logging.getLogger(__name__)


class FallbackWeatherProvider(WeatherProvider):
    """
    Try each provider in order (NOAA first, OpenWeatherMap second).

    Raises WeatherUnavailable only when every provider failed. The name of
    the provider that answered is kept in ``last_source`` for the audit trail.
    """

    name = "FALLBACK"

    def __init__(self, providers: Sequence[WeatherProvider]):
        if not providers:
            raise ValueError("At least one weather provider is required")
        self.providers = list(providers)
        self.last_source: Optional[str] = None

    async def get_precipitation_24h(self, location: Location) -> Decimal:
        errors = []
        for provider in self.providers:
            try:
                amount = await provider.get_precipitation_24h(location)
            except WeatherUnavailable as exc:
                logger.warning(f"{provider.name} precipitation lookup failed: {exc}")
                errors.append(f"{provider.name}: {exc}")
                continue
            self.last_source = provider.name
            return amount
        raise WeatherUnavailable("All weather providers failed (" + "; ".join(errors) + ")")

    async def get_hourly_precipitation_24h(self, location: Location) -> Optional[List[HourlyReading]]:
        """
        First hourly series any provider returns.

        Returns None when no provider answered with a series; the caller then
        falls back to ``get_precipitation_24h``, which walks the chain again.
        """
        errors = []
        for provider in self.providers:
            try:
                readings = await provider.get_hourly_precipitation_24h(location)
            except WeatherUnavailable as exc:
                logger.warning(f"{provider.name} hourly lookup failed: {exc}")
                errors.append(f"{provider.name}: {exc}")
                continue
            if readings is not None:
                self.last_source = provider.name
                return readings

        if len(errors) == len(self.providers):
            raise WeatherUnavailable("All weather providers failed (" + "; ".join(errors) + ")")
        return None

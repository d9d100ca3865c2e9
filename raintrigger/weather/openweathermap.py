"""
OpenWeatherMap provider (One Call API, historical data).

The One Call ``hourly`` block is a forecast, so past rainfall is read from the
``timemachine`` endpoint, one request per hour of the trailing 24 hours. Rain
is reported in mm, snow in mm of snowfall which is counted at a 10:1
snow-to-water ratio.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional
import logging

import httpx

from raintrigger.compliance.exceptions import WeatherUnavailable
from raintrigger.compliance.types import HourlyReading, Location

from .base import WeatherProvider, mm_to_inches

logger = logging.getLogger(__name__)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/3.0"
SNOW_WATER_RATIO = Decimal("0.1")
HISTORY_HOURS = 24


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OpenWeatherMapProvider(WeatherProvider):
    """Fallback precipitation source."""

    name = "OPENWEATHER"

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self.clock = clock

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def get_precipitation_24h(self, location: Location) -> Decimal:
        readings = await self.get_hourly_precipitation_24h(location)
        return sum((Decimal(str(r.precipitation)) for r in readings), Decimal("0"))

    async def get_hourly_precipitation_24h(self, location: Location) -> List[HourlyReading]:
        if not self.is_configured():
            raise WeatherUnavailable("OpenWeatherMap API key not configured")

        now = self.clock().astimezone(timezone.utc)
        current = now.replace(minute=0, second=0, microsecond=0)
        hours = [current - timedelta(hours=n) for n in range(HISTORY_HOURS)]

        try:
            if self._client is not None:
                batches = await self._fetch_history(self._client, location, hours)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    batches = await self._fetch_history(client, location, hours)
            buckets = self._bucket_by_hour(batches, now)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            logger.error(f"Failed to fetch OpenWeatherMap history: {exc}")
            raise WeatherUnavailable(f"OpenWeatherMap request failed: {exc}") from exc

        return [
            HourlyReading(hour=hour.hour, precipitation=mm_to_inches(mm), date=hour.date())
            for hour, mm in sorted(buckets.items())
        ]

    async def _fetch_history(self, client: httpx.AsyncClient, location: Location, hours: List[datetime]):
        return await asyncio.gather(*(self._fetch_hour(client, location, hour) for hour in hours))

    async def _fetch_hour(self, client: httpx.AsyncClient, location: Location, hour: datetime) -> list:
        params = {
            "lat": location.lat,
            "lon": location.lng,
            "dt": int(hour.timestamp()),
            "appid": self.api_key,
            "units": "metric",
        }
        response = await client.get(f"{self.base_url}/onecall/timemachine", params=params)
        response.raise_for_status()
        return response.json()["data"]

    @staticmethod
    def _bucket_by_hour(batches, now: datetime) -> Dict[datetime, Decimal]:
        """One amount per past clock hour; entries after ``now`` are forecast and dropped."""
        buckets: Dict[datetime, Decimal] = {}
        for batch in batches:
            for entry in batch:
                observed = datetime.fromtimestamp(entry["dt"], tz=timezone.utc)
                if observed > now or observed <= now - timedelta(hours=HISTORY_HOURS):
                    continue
                mm = Decimal(str((entry.get("rain") or {}).get("1h", 0)))
                mm += Decimal(str((entry.get("snow") or {}).get("1h", 0))) * SNOW_WATER_RATIO
                buckets[observed.replace(minute=0, second=0, microsecond=0)] = mm
        return buckets

"""
NOAA provider (api.weather.gov).

Resolves the observation stations near a point and reads the last 24 hours of
station observations. precipitationLastHour is reported in mm (or m); routine
and special METARs can both carry it within one hour, so each clock hour keeps
its largest value rather than summing overlapping reports.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

import httpx

from raintrigger.compliance.exceptions import WeatherUnavailable
from raintrigger.compliance.types import HourlyReading, Location

from .base import WeatherProvider, mm_to_inches

logger = logging.getLogger(__name__)

NOAA_BASE_URL = "https://api.weather.gov"
MAX_STATIONS = 3


class NOAAProvider(WeatherProvider):
    """Station observations from the US National Weather Service."""

    name = "NOAA"

    def __init__(
        self,
        user_agent: str,
        base_url: str = NOAA_BASE_URL,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": user_agent, "Accept": "application/geo+json"}
        self.timeout = timeout
        self._client = client

    async def get_precipitation_24h(self, location: Location) -> Decimal:
        readings = await self.get_hourly_precipitation_24h(location)
        return sum((Decimal(str(r.precipitation)) for r in readings), Decimal("0"))

    async def get_hourly_precipitation_24h(self, location: Location) -> List[HourlyReading]:
        if self._client is not None:
            return await self._fetch(self._client, location)
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            return await self._fetch(client, location)

    async def _fetch(self, client: httpx.AsyncClient, location: Location) -> List[HourlyReading]:
        try:
            point = await self._get_json(client, f"{self.base_url}/points/{location.lat},{location.lng}")
            stations_url = point["properties"]["observationStations"]
            stations = (await self._get_json(client, stations_url)).get("features") or []
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            raise WeatherUnavailable(f"NOAA point lookup failed: {exc}") from exc

        if not stations:
            raise WeatherUnavailable("No NOAA observation stations found for coordinates")

        end = datetime.now(timezone.utc)
        start = end - timedelta(hours=24)
        last_error: Optional[Exception] = None

        for station in stations[:MAX_STATIONS]:
            station_id = station.get("properties", {}).get("stationIdentifier") or station.get("id", "")
            try:
                return await self._station_readings(client, station_id, start, end)
            except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
                logger.debug(f"NOAA station {station_id} failed, trying next station: {exc}")
                last_error = exc

        raise WeatherUnavailable(f"All NOAA stations failed: {last_error}")

    async def _station_readings(
        self,
        client: httpx.AsyncClient,
        station_id: str,
        start: datetime,
        end: datetime,
    ) -> List[HourlyReading]:
        data = await self._get_json(
            client,
            f"{self.base_url}/stations/{station_id.rsplit('/', 1)[-1]}/observations",
            params={"start": start.isoformat(), "end": end.isoformat()},
        )

        by_hour: Dict[Tuple, Decimal] = {}
        for feature in data.get("features") or []:
            props = feature["properties"]
            precip = props.get("precipitationLastHour") or {}
            if precip.get("value") is None:
                continue
            observed = datetime.fromisoformat(props["timestamp"].replace("Z", "+00:00")).astimezone(timezone.utc)
            mm = Decimal(str(precip["value"]))
            if str(precip.get("unitCode", "")).endswith(":m"):
                mm *= 1000
            key = (observed.date(), observed.hour)
            by_hour[key] = max(by_hour.get(key, Decimal("0")), mm)

        return [
            HourlyReading(hour=hour, precipitation=mm_to_inches(mm), date=day)
            for (day, hour), mm in sorted(by_hour.items())
        ]

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: Optional[dict] = None) -> dict:
        response = await client.get(url, params=params, headers=self.headers)
        response.raise_for_status()
        return response.json()

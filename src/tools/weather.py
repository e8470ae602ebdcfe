"""
Weather Forecast Source
=======================
Forecast collaborator for the weather risk stage.

Provides:
- ForecastPoint: one forecast step for a location
- OpenWeatherForecastSource: live 3-hourly forecast over HTTP
- StaticForecastSource: fixed forecasts for development and tests

Author: CropFresh AI Team
Version: 2.0.0
"""

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from src.resilience.circuit_breaker import CircuitBreaker
from src.resilience.errors import StageUnavailable


class ForecastPoint(BaseModel):
    """Single forecast step."""

    model_config = ConfigDict(frozen=True)

    temperature_c: float
    humidity_pct: float = Field(ge=0, le=100)
    precipitation_mm: float = Field(default=0.0, ge=0)
    wind_speed_kmh: float = Field(default=0.0, ge=0)
    condition: str = "clear"
    time: Optional[datetime] = None


class ForecastSource(ABC):
    """Forecast lookup contract."""

    name: str = "forecast"

    @abstractmethod
    async def lookup(self, location: str, lead_hours: int) -> Optional[list[ForecastPoint]]:
        """
        Forecast steps covering the next lead_hours at location.

        Returns None (or raises StageUnavailable) when no forecast exists.
        """
        pass


class OpenWeatherForecastSource(ForecastSource):
    """
    OpenWeatherMap 5 day / 3 hour forecast.

    Usage:
        source = OpenWeatherForecastSource(api_key="key")
        points = await source.lookup("Mumbai", lead_hours=24)
    """

    name = "openweathermap"

    BASE_URL = "https://api.openweathermap.org/data/2.5/forecast"
    STEP_HOURS = 3

    def __init__(
        self,
        api_key: str = "",
        country_code: str = "IN",
        timeout_sec: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.api_key = api_key
        self.country_code = country_code
        self.timeout_sec = timeout_sec
        self._client = client
        self.breaker = breaker or CircuitBreaker(self.name)

    async def lookup(self, location: str, lead_hours: int) -> Optional[list[ForecastPoint]]:
        if not self.api_key:
            raise StageUnavailable(self.name, "no API key configured")

        data = await self.breaker.call(self._fetch, location)
        steps = max(1, math.ceil(lead_hours / self.STEP_HOURS))
        points = [self._parse_entry(entry) for entry in data.get("list", [])[:steps]]
        points = [p for p in points if p is not None]

        if not points:
            logger.info(f"Empty forecast for {location}")
            return None
        return points

    async def _fetch(self, location: str) -> dict:
        params = {
            "q": f"{location},{self.country_code}",
            "appid": self.api_key,
            "units": "metric",
        }
        try:
            if self._client is not None:
                response = await self._client.get(self.BASE_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_sec) as client:
                    response = await client.get(self.BASE_URL, params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Forecast request failed for {location}: {e}")
            raise StageUnavailable(self.name, str(e)) from e

    @staticmethod
    def _parse_entry(entry: dict) -> Optional[ForecastPoint]:
        try:
            main = entry["main"]
            weather = (entry.get("weather") or [{}])[0]
            return ForecastPoint(
                temperature_c=float(main["temp"]),
                humidity_pct=float(main["humidity"]),
                precipitation_mm=float((entry.get("rain") or {}).get("3h", 0.0)),
                wind_speed_kmh=round(float((entry.get("wind") or {}).get("speed", 0.0)) * 3.6, 1),
                condition=str(weather.get("main", "clear")).lower(),
                time=datetime.fromtimestamp(entry["dt"]) if "dt" in entry else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping malformed forecast entry: {e}")
            return None


class StaticForecastSource(ForecastSource):
    """Fixed forecasts keyed by location; "*" serves every location."""

    name = "static_forecast"

    def __init__(self, forecasts: Optional[dict[str, list[ForecastPoint]]] = None):
        self._forecasts = {
            loc.strip().lower(): list(points)
            for loc, points in (forecasts or {}).items()
        }

    @classmethod
    def clear_skies(cls, temperature_c: float = 28.0, humidity_pct: float = 65.0) -> "StaticForecastSource":
        point = ForecastPoint(
            temperature_c=temperature_c,
            humidity_pct=humidity_pct,
            precipitation_mm=0.0,
            wind_speed_kmh=10.0,
            condition="clear",
        )
        return cls({"*": [point] * 8})

    async def lookup(self, location: str, lead_hours: int) -> Optional[list[ForecastPoint]]:
        key = location.strip().lower()
        points = self._forecasts.get(key) or self._forecasts.get("*")
        if not points:
            return None
        steps = max(1, math.ceil(lead_hours / 3))
        return points[:steps]

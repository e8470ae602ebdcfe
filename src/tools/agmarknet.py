"""
Agmarknet Market Data
=====================
Market snapshot collaborator for the pricing stage.

Sources:
- Primary: data.gov.in OGD Platform (Agmarknet daily mandi prices)
- Development: static in-memory snapshots

Agmarknet reports ₹/quintal; snapshots are always ₹/kg.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import MarketLevel
from src.resilience.circuit_breaker import CircuitBreaker
from src.resilience.errors import StageUnavailable


class MarketSnapshot(BaseModel):
    """Current price, demand and supply for a crop at a location."""

    model_config = ConfigDict(frozen=True)

    crop: str
    location: str
    price_per_kg: float = Field(gt=0)
    demand: MarketLevel = MarketLevel.MEDIUM
    supply: MarketLevel = MarketLevel.MEDIUM
    previous_price_per_kg: Optional[float] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    source: str = "agmarknet"


def _key(crop: str, location: str) -> tuple[str, str]:
    return (crop.strip().lower(), location.strip().lower())


class MarketDataSource(ABC):
    """Market snapshot lookup contract."""

    name: str = "market"

    @abstractmethod
    async def lookup(self, crop: str, location: str) -> Optional[MarketSnapshot]:
        """
        Current snapshot for crop+location.

        Returns None (or raises StageUnavailable) when no live data exists.
        """
        pass

    @abstractmethod
    async def last_known_price(self, crop: str, location: str) -> Optional[float]:
        """Most recent good ₹/kg price seen for crop+location, if any."""
        pass


class AgmarknetMarketSource(MarketDataSource):
    """
    Agmarknet API Integration.

    Usage:
        source = AgmarknetMarketSource(api_key="your_key")
        snapshot = await source.lookup("Tomato", "Kolar")
    """

    name = "agmarknet"

    BASE_URL = "https://api.data.gov.in/resource/9ef84268-d588-465a-a308-a864a43d0070"

    def __init__(
        self,
        api_key: str = "",
        state: Optional[str] = None,
        cache_ttl: int = 900,
        timeout_sec: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Initialize Agmarknet source.

        Args:
            api_key: data.gov.in API key
            state: Optional state filter (e.g. "Maharashtra")
            cache_ttl: Cache TTL in seconds (default 15 min)
            timeout_sec: HTTP timeout
            client: Shared httpx client (one per call if omitted)
            breaker: Circuit breaker guarding the API
        """
        self.api_key = api_key
        self.state = state
        self.cache_ttl = cache_ttl
        self.timeout_sec = timeout_sec
        self._client = client
        self.breaker = breaker or CircuitBreaker(self.name)

        self._cache: dict[tuple[str, str], tuple[datetime, MarketSnapshot]] = {}
        self._last_known: dict[tuple[str, str], float] = {}

    async def lookup(self, crop: str, location: str) -> Optional[MarketSnapshot]:
        key = _key(crop, location)

        if key in self._cache:
            cached_time, cached = self._cache[key]
            if (datetime.now() - cached_time).total_seconds() < self.cache_ttl:
                logger.debug(f"Returning cached snapshot for {crop}@{location}")
                return cached

        if not self.api_key:
            raise StageUnavailable(self.name, "no API key configured")

        records = await self.breaker.call(self._fetch_records, crop, location)
        snapshot = self._to_snapshot(crop, location, records)
        if snapshot is None:
            return None

        self._cache[key] = (datetime.now(), snapshot)
        self._last_known[key] = snapshot.price_per_kg
        return snapshot

    async def last_known_price(self, crop: str, location: str) -> Optional[float]:
        return self._last_known.get(_key(crop, location))

    async def _fetch_records(self, crop: str, location: str) -> list[dict]:
        params = {
            "api-key": self.api_key,
            "format": "json",
            "limit": 50,
            "filters[commodity]": crop.title(),
            "filters[district]": location.title(),
        }
        if self.state:
            params["filters[state]"] = self.state

        try:
            if self._client is not None:
                response = await self._client.get(self.BASE_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_sec) as client:
                    response = await client.get(self.BASE_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Agmarknet request failed: {e}")
            raise StageUnavailable(self.name, str(e)) from e

        return data.get("records", [])

    def _to_snapshot(
        self,
        crop: str,
        location: str,
        records: list[dict],
    ) -> Optional[MarketSnapshot]:
        """Collapse mandi records into one snapshot."""
        rows = []
        for record in records:
            try:
                rows.append((
                    datetime.strptime(record["arrival_date"], "%d/%m/%Y"),
                    float(record["min_price"]),
                    float(record["max_price"]),
                    float(record["modal_price"]),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed Agmarknet record: {e}")

        rows = [r for r in rows if r[3] > 0]
        if not rows:
            logger.info(f"No Agmarknet prices for {crop}@{location}")
            return None

        rows.sort(key=lambda r: r[0])
        latest_date = rows[-1][0]
        latest = [r for r in rows if r[0] == latest_date]
        earlier = [r for r in rows if r[0] < latest_date]

        modal = sum(r[3] for r in latest) / len(latest)
        low = min(r[1] for r in latest)
        high = max(r[2] for r in latest)

        previous = None
        if earlier:
            prev_date = earlier[-1][0]
            prev_rows = [r for r in earlier if r[0] == prev_date]
            previous = sum(r[3] for r in prev_rows) / len(prev_rows) / 100

        return MarketSnapshot(
            crop=crop,
            location=location,
            price_per_kg=round(modal / 100, 2),
            demand=self._demand_level(modal, low, high),
            supply=self._supply_level(len(latest)),
            previous_price_per_kg=round(previous, 2) if previous else None,
            timestamp=latest_date,
            source=self.name,
        )

    @staticmethod
    def _demand_level(modal: float, low: float, high: float) -> MarketLevel:
        """Modal price near the day's high means buyers are competing."""
        if high <= low:
            return MarketLevel.MEDIUM
        position = (modal - low) / (high - low)
        if position > 0.66:
            return MarketLevel.HIGH
        if position < 0.33:
            return MarketLevel.LOW
        return MarketLevel.MEDIUM

    @staticmethod
    def _supply_level(reporting_markets: int) -> MarketLevel:
        if reporting_markets >= 10:
            return MarketLevel.HIGH
        if reporting_markets <= 2:
            return MarketLevel.LOW
        return MarketLevel.MEDIUM


# Indicative mandi prices (₹/kg) for development without an API key
MOCK_PRICES = {
    "tomato": (28.0, MarketLevel.MEDIUM, MarketLevel.MEDIUM),
    "potato": (22.0, MarketLevel.MEDIUM, MarketLevel.HIGH),
    "onion": (32.0, MarketLevel.HIGH, MarketLevel.MEDIUM),
    "banana": (40.0, MarketLevel.MEDIUM, MarketLevel.MEDIUM),
    "mango": (85.0, MarketLevel.HIGH, MarketLevel.LOW),
    "capsicum": (55.0, MarketLevel.MEDIUM, MarketLevel.MEDIUM),
    "cabbage": (18.0, MarketLevel.LOW, MarketLevel.HIGH),
    "grapes": (110.0, MarketLevel.HIGH, MarketLevel.MEDIUM),
}


class StaticMarketSource(MarketDataSource):
    """
    In-memory market data.

    Snapshots are keyed by (crop, location); a snapshot registered with
    location "*" serves every location for that crop.
    """

    name = "static_market"

    def __init__(
        self,
        snapshots: Optional[list[MarketSnapshot]] = None,
        last_known: Optional[dict[tuple[str, str], float]] = None,
    ):
        self._snapshots = {_key(s.crop, s.location): s for s in snapshots or []}
        self._last_known = {_key(c, l): p for (c, l), p in (last_known or {}).items()}

    @classmethod
    def with_mock_prices(cls) -> "StaticMarketSource":
        snapshots = [
            MarketSnapshot(
                crop=crop, location="*", price_per_kg=price,
                demand=demand, supply=supply,
                timestamp=datetime(2025, 1, 1), source="mock",
            )
            for crop, (price, demand, supply) in MOCK_PRICES.items()
        ]
        return cls(snapshots)

    async def lookup(self, crop: str, location: str) -> Optional[MarketSnapshot]:
        key = _key(crop, location)
        return self._snapshots.get(key) or self._snapshots.get((key[0], "*"))

    async def last_known_price(self, crop: str, location: str) -> Optional[float]:
        key = _key(crop, location)
        return self._last_known.get(key, self._last_known.get((key[0], "*")))

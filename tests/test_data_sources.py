"""
HTTP data source tests.

Agmarknet and OpenWeatherMap are served by httpx.MockTransport; nothing
leaves the process.

Run with: uv run pytest tests/test_data_sources.py -v
"""

import httpx
import pytest

from src.models.enums import MarketLevel
from src.resilience.circuit_breaker import CircuitOpenError
from src.resilience.errors import StageUnavailable
from src.tools.agmarknet import AgmarknetMarketSource, StaticMarketSource
from src.tools.weather import OpenWeatherForecastSource, StaticForecastSource


AGMARKNET_RECORDS = {
    "records": [
        {"arrival_date": "14/01/2025", "market": "Vashi", "min_price": "1500", "max_price": "2400", "modal_price": "2000"},
        {"arrival_date": "15/01/2025", "market": "Vashi", "min_price": "1500", "max_price": "2600", "modal_price": "2000"},
        {"arrival_date": "15/01/2025", "market": "Kalyan", "min_price": "1800", "max_price": "2500", "modal_price": "2200"},
        {"arrival_date": "15/01/2025", "market": "Panvel", "min_price": "1900", "max_price": "2600", "modal_price": "2400"},
        {"arrival_date": "15/01/2025", "market": "Broken", "min_price": "n/a"},
    ]
}


def forecast_entry(temp=27.0, humidity=70, wind_ms=5.0, rain=None, dt=1736920800):
    entry = {
        "dt": dt,
        "main": {"temp": temp, "humidity": humidity},
        "wind": {"speed": wind_ms},
        "weather": [{"main": "Rain" if rain else "Clear"}],
    }
    if rain:
        entry["rain"] = {"3h": rain}
    return entry


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestAgmarknetSource:
    @pytest.mark.asyncio
    async def test_snapshot_from_mandi_records(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=AGMARKNET_RECORDS)

        source = AgmarknetMarketSource(api_key="test-key", client=client_for(handler))
        snapshot = await source.lookup("tomato", "mumbai")

        assert seen["params"]["filters[commodity]"] == "Tomato"
        assert seen["params"]["api-key"] == "test-key"
        assert snapshot.price_per_kg == 22.0  # ₹2200/quintal
        assert snapshot.previous_price_per_kg == 20.0
        assert snapshot.demand == MarketLevel.MEDIUM
        assert snapshot.supply == MarketLevel.MEDIUM
        assert await source.last_known_price("Tomato", "Mumbai") == 22.0

    @pytest.mark.asyncio
    async def test_cached_within_ttl(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            return httpx.Response(200, json=AGMARKNET_RECORDS)

        source = AgmarknetMarketSource(api_key="k", client=client_for(handler))
        await source.lookup("tomato", "mumbai")
        await source.lookup("Tomato", "Mumbai")

        assert calls["n"] == 1

    @pytest.mark.asyncio
    async def test_no_records_is_none(self):
        source = AgmarknetMarketSource(
            api_key="k", client=client_for(lambda r: httpx.Response(200, json={"records": []}))
        )
        assert await source.lookup("tomato", "mumbai") is None

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with pytest.raises(StageUnavailable):
            await AgmarknetMarketSource().lookup("tomato", "mumbai")

    @pytest.mark.asyncio
    async def test_server_errors_open_the_circuit(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            return httpx.Response(503)

        source = AgmarknetMarketSource(api_key="k", client=client_for(handler))
        for _ in range(3):
            with pytest.raises(StageUnavailable):
                await source.lookup("tomato", "mumbai")

        with pytest.raises(CircuitOpenError):
            await source.lookup("tomato", "mumbai")
        assert calls["n"] == 3

    @pytest.mark.asyncio
    async def test_static_wildcard_location(self):
        source = StaticMarketSource.with_mock_prices()
        snapshot = await source.lookup("Tomato", "Anywhere")
        assert snapshot.price_per_kg == 28.0
        assert await source.lookup("durian", "Mumbai") is None


class TestOpenWeatherSource:
    @pytest.mark.asyncio
    async def test_steps_cover_lead_time(self):
        entries = [forecast_entry(rain=2.0 if i == 1 else None) for i in range(16)]
        source = OpenWeatherForecastSource(
            api_key="k", client=client_for(lambda r: httpx.Response(200, json={"list": entries}))
        )

        points = await source.lookup("Pune", lead_hours=12)

        assert len(points) == 4
        assert points[0].wind_speed_kmh == 18.0  # 5 m/s
        assert points[1].precipitation_mm == 2.0
        assert points[1].condition == "rain"

    @pytest.mark.asyncio
    async def test_skips_malformed_entries(self):
        entries = [{"dt": 1}, forecast_entry()]
        source = OpenWeatherForecastSource(
            api_key="k", client=client_for(lambda r: httpx.Response(200, json={"list": entries}))
        )
        points = await source.lookup("Pune", lead_hours=6)
        assert len(points) == 1

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self):
        source = OpenWeatherForecastSource(
            api_key="k", client=client_for(lambda r: httpx.Response(401, json={"message": "bad key"}))
        )
        with pytest.raises(StageUnavailable):
            await source.lookup("Pune", lead_hours=12)

    @pytest.mark.asyncio
    async def test_static_clear_skies(self):
        points = await StaticForecastSource.clear_skies().lookup("Kolar", lead_hours=48)
        assert len(points) == 8
        assert all(p.precipitation_mm == 0 for p in points)

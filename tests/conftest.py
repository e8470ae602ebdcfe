"""
Shared fixtures for the assessment pipeline tests.

Run with: uv run pytest tests/ -v
"""

from typing import Optional

import pytest

from src.agents.base_agent import StageContext
from src.catalog.crop_profiles import CropCatalog, load_catalog
from src.config.settings import Settings
from src.models.assessment import AssessmentRequest
from src.tools.agmarknet import MarketDataSource, StaticMarketSource
from src.tools.driver_registry import DriverRegistry, InMemoryDriverRegistry, sample_fleet
from src.tools.weather import ForecastSource, StaticForecastSource


TEST_MONTH = 1  # dry season everywhere in the baselines


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, use_mock_data=True)


@pytest.fixture
def catalog() -> CropCatalog:
    return load_catalog()


def make_request(**overrides) -> AssessmentRequest:
    data = {
        "crop": "tomato",
        "temperature_c": 22,
        "humidity_pct": 65,
        "age_hours": 2,
        "quantity_kg": 100,
        "location": "Mumbai",
        "urgency": "MEDIUM",
    }
    data.update(overrides)
    return AssessmentRequest(**data)


def make_context(
    settings: Settings,
    catalog: CropCatalog,
    request: Optional[AssessmentRequest] = None,
    market_source: Optional[MarketDataSource] = None,
    forecast_source: Optional[ForecastSource] = None,
    driver_registry: Optional[DriverRegistry] = None,
) -> StageContext:
    request = request or make_request()
    return StageContext(
        request=request,
        profile=catalog.get(request.crop),
        settings=settings,
        market_source=market_source or StaticMarketSource.with_mock_prices(),
        forecast_source=forecast_source or StaticForecastSource.clear_skies(),
        driver_registry=driver_registry or InMemoryDriverRegistry(sample_fleet()),
        month=TEST_MONTH,
    )

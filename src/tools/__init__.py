"""
Tools module: external data collaborators for the assessment pipeline.

Provides:
- Agmarknet market snapshots (live + static)
- Weather forecasts (OpenWeatherMap + static)
- Driver registry (in-memory)

Author: CropFresh AI Team
Version: 3.0.0
"""

from src.tools.agmarknet import (
    AgmarknetMarketSource,
    MarketDataSource,
    MarketSnapshot,
    StaticMarketSource,
)
from src.tools.driver_registry import (
    DriverCandidate,
    DriverRecord,
    DriverRegistry,
    InMemoryDriverRegistry,
    sample_fleet,
)
from src.tools.weather import (
    ForecastPoint,
    ForecastSource,
    OpenWeatherForecastSource,
    StaticForecastSource,
)

__all__ = [
    # Market
    "MarketDataSource",
    "MarketSnapshot",
    "AgmarknetMarketSource",
    "StaticMarketSource",

    # Weather
    "ForecastPoint",
    "ForecastSource",
    "OpenWeatherForecastSource",
    "StaticForecastSource",

    # Drivers
    "DriverCandidate",
    "DriverRecord",
    "DriverRegistry",
    "InMemoryDriverRegistry",
    "sample_fleet",
]

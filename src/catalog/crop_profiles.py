"""
Crop Profile Catalog
====================
Static per-crop physical and economic parameters.

Each profile describes the storage band a crop keeps best in, how fast it
loses freshness outside cold storage, and how strongly price and weather
react to its condition. The catalog is loaded once at startup and is
read-only afterwards; every assessment run shares it.

Author: CropFresh AI Team
Version: 1.0.0
"""

import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator


GENERIC_CROP_ID = "generic"


class CropProfile(BaseModel):
    """Physical parameters for one crop type."""

    model_config = ConfigDict(frozen=True)

    crop_id: str
    display_name: str = ""

    # Optimal storage band
    optimal_temp_min_c: float
    optimal_temp_max_c: float
    optimal_humidity_min_pct: float
    optimal_humidity_max_pct: float

    # Distance outside the band at which the sub-score reaches 0
    temperature_spread_c: float = Field(default=10.0, gt=0)
    humidity_spread_pct: float = Field(default=20.0, gt=0)

    degradation_rate_per_hour: float = Field(ge=0)  # % freshness lost per hour
    price_sensitivity: float = Field(default=1.0, ge=0)
    weather_sensitivity: float = Field(default=1.0, ge=0)

    reference_price_per_kg: float = Field(default=30.0, gt=0)  # ₹/kg

    aliases: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_bands(self) -> "CropProfile":
        if self.optimal_temp_min_c > self.optimal_temp_max_c:
            raise ValueError(f"{self.crop_id}: temperature band is inverted")
        if self.optimal_humidity_min_pct > self.optimal_humidity_max_pct:
            raise ValueError(f"{self.crop_id}: humidity band is inverted")
        return self

    @property
    def optimal_temperature(self) -> tuple[float, float]:
        return (self.optimal_temp_min_c, self.optimal_temp_max_c)

    @property
    def optimal_humidity(self) -> tuple[float, float]:
        return (self.optimal_humidity_min_pct, self.optimal_humidity_max_pct)


# Built-in profiles for the crops traded most on the platform.
# Prices are indicative wholesale ₹/kg used only when no market data exists.
DEFAULT_PROFILES: list[dict] = [
    {
        "crop_id": "tomato", "display_name": "Tomato",
        "optimal_temp_min_c": 12, "optimal_temp_max_c": 25,
        "optimal_humidity_min_pct": 55, "optimal_humidity_max_pct": 75,
        "temperature_spread_c": 10, "humidity_spread_pct": 15,
        "degradation_rate_per_hour": 2.0,
        "price_sensitivity": 1.2, "weather_sensitivity": 1.3,
        "reference_price_per_kg": 30, "aliases": ("tamatar", "tomatoes"),
    },
    {
        "crop_id": "potato", "display_name": "Potato",
        "optimal_temp_min_c": 4, "optimal_temp_max_c": 12,
        "optimal_humidity_min_pct": 85, "optimal_humidity_max_pct": 95,
        "temperature_spread_c": 12, "humidity_spread_pct": 20,
        "degradation_rate_per_hour": 0.3,
        "price_sensitivity": 0.8, "weather_sensitivity": 0.7,
        "reference_price_per_kg": 25, "aliases": ("aloo", "potatoes"),
    },
    {
        "crop_id": "onion", "display_name": "Onion",
        "optimal_temp_min_c": 5, "optimal_temp_max_c": 30,
        "optimal_humidity_min_pct": 60, "optimal_humidity_max_pct": 75,
        "temperature_spread_c": 10, "humidity_spread_pct": 20,
        "degradation_rate_per_hour": 0.25,
        "price_sensitivity": 0.9, "weather_sensitivity": 0.8,
        "reference_price_per_kg": 35, "aliases": ("pyaz", "pyaaz", "onions"),
    },
    {
        "crop_id": "banana", "display_name": "Banana",
        "optimal_temp_min_c": 13, "optimal_temp_max_c": 16,
        "optimal_humidity_min_pct": 85, "optimal_humidity_max_pct": 95,
        "temperature_spread_c": 8, "humidity_spread_pct": 15,
        "degradation_rate_per_hour": 1.5,
        "price_sensitivity": 1.1, "weather_sensitivity": 1.2,
        "reference_price_per_kg": 45, "aliases": ("kela", "bananas"),
    },
    {
        "crop_id": "mango", "display_name": "Mango",
        "optimal_temp_min_c": 10, "optimal_temp_max_c": 15,
        "optimal_humidity_min_pct": 85, "optimal_humidity_max_pct": 90,
        "temperature_spread_c": 10, "humidity_spread_pct": 15,
        "degradation_rate_per_hour": 1.2,
        "price_sensitivity": 1.3, "weather_sensitivity": 1.2,
        "reference_price_per_kg": 90, "aliases": ("aam", "mangoes"),
    },
    {
        "crop_id": "spinach", "display_name": "Spinach",
        "optimal_temp_min_c": 0, "optimal_temp_max_c": 5,
        "optimal_humidity_min_pct": 90, "optimal_humidity_max_pct": 98,
        "temperature_spread_c": 10, "humidity_spread_pct": 15,
        "degradation_rate_per_hour": 3.0,
        "price_sensitivity": 1.4, "weather_sensitivity": 1.5,
        "reference_price_per_kg": 40, "aliases": ("palak",),
    },
    {
        "crop_id": "capsicum", "display_name": "Capsicum",
        "optimal_temp_min_c": 7, "optimal_temp_max_c": 13,
        "optimal_humidity_min_pct": 85, "optimal_humidity_max_pct": 95,
        "temperature_spread_c": 10, "humidity_spread_pct": 15,
        "degradation_rate_per_hour": 1.0,
        "price_sensitivity": 1.1, "weather_sensitivity": 1.1,
        "reference_price_per_kg": 60, "aliases": ("shimla mirch", "bell pepper"),
    },
    {
        "crop_id": "cabbage", "display_name": "Cabbage",
        "optimal_temp_min_c": 0, "optimal_temp_max_c": 5,
        "optimal_humidity_min_pct": 90, "optimal_humidity_max_pct": 98,
        "temperature_spread_c": 12, "humidity_spread_pct": 20,
        "degradation_rate_per_hour": 0.5,
        "price_sensitivity": 0.9, "weather_sensitivity": 0.9,
        "reference_price_per_kg": 20, "aliases": ("patta gobi", "band gobi"),
    },
    {
        "crop_id": "grapes", "display_name": "Grapes",
        "optimal_temp_min_c": 0, "optimal_temp_max_c": 4,
        "optimal_humidity_min_pct": 85, "optimal_humidity_max_pct": 95,
        "temperature_spread_c": 10, "humidity_spread_pct": 15,
        "degradation_rate_per_hour": 1.0,
        "price_sensitivity": 1.2, "weather_sensitivity": 1.3,
        "reference_price_per_kg": 120, "aliases": ("grape", "angoor"),
    },
    {
        "crop_id": GENERIC_CROP_ID, "display_name": "Generic produce",
        "optimal_temp_min_c": 10, "optimal_temp_max_c": 25,
        "optimal_humidity_min_pct": 50, "optimal_humidity_max_pct": 85,
        "temperature_spread_c": 12, "humidity_spread_pct": 20,
        "degradation_rate_per_hour": 1.0,
        "price_sensitivity": 1.0, "weather_sensitivity": 1.0,
        "reference_price_per_kg": 30,
    },
]


def _normalize(name: str) -> str:
    return " ".join(name.strip().lower().replace("_", " ").split())


class CropCatalog:
    """
    Read-only lookup of crop profiles.

    Lookup is case-insensitive and understands common local names.
    Unknown crops resolve to the generic profile.

    Usage:
        catalog = CropCatalog.from_records(DEFAULT_PROFILES)
        profile = catalog.get("Tamatar")   # -> tomato profile
    """

    def __init__(self, profiles: Iterable[CropProfile]):
        by_id: dict[str, CropProfile] = {}
        index: dict[str, str] = {}

        for profile in profiles:
            key = _normalize(profile.crop_id)
            by_id[key] = profile
            index[key] = key
            for alias in profile.aliases:
                index.setdefault(_normalize(alias), key)

        if GENERIC_CROP_ID not in by_id:
            raise ValueError("Crop catalog must define a 'generic' profile")

        self._profiles: Mapping[str, CropProfile] = MappingProxyType(by_id)
        self._index: Mapping[str, str] = MappingProxyType(index)

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "CropCatalog":
        return cls(CropProfile.model_validate(r) for r in records)

    @classmethod
    def from_file(cls, path: str | Path) -> "CropCatalog":
        """Load profiles from a JSON file holding a list of profile objects."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("profiles", [])
        catalog = cls.from_records(data)
        logger.info(f"Loaded {len(catalog)} crop profiles from {path}")
        return catalog

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def default(self) -> CropProfile:
        return self._profiles[GENERIC_CROP_ID]

    def get(self, crop: str) -> CropProfile:
        """Resolve a crop name to its profile, falling back to the generic one."""
        key = self._index.get(_normalize(crop or ""))
        if key is None:
            logger.debug(f"Unknown crop '{crop}', using generic profile")
            return self.default
        return self._profiles[key]


def load_catalog(path: Optional[str | Path] = None) -> CropCatalog:
    """Load the catalog from a JSON file, or the built-in profiles."""
    if path:
        return CropCatalog.from_file(path)
    return CropCatalog.from_records(DEFAULT_PROFILES)


@lru_cache
def get_crop_catalog() -> CropCatalog:
    """Get the process-wide catalog built from settings."""
    from src.config import get_settings

    return load_catalog(get_settings().crop_catalog_path)

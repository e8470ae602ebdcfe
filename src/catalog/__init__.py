"""Static reference data: crop profiles and seasonal weather baselines."""

from src.catalog.crop_profiles import (
    DEFAULT_PROFILES,
    GENERIC_CROP_ID,
    CropCatalog,
    CropProfile,
    get_crop_catalog,
    load_catalog,
)
from src.catalog.seasonal_baselines import (
    SEASONAL_BASELINES,
    MonthlyNormals,
    baseline_for,
    simulate_forecast,
)

__all__ = [
    "CropCatalog",
    "CropProfile",
    "DEFAULT_PROFILES",
    "GENERIC_CROP_ID",
    "get_crop_catalog",
    "load_catalog",
    "MonthlyNormals",
    "SEASONAL_BASELINES",
    "baseline_for",
    "simulate_forecast",
]

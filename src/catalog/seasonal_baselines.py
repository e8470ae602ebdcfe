"""
Seasonal Weather Baselines
==========================
Monthly climate normals used to simulate a forecast when no live
forecast is available.

Simulation is deterministic: the same location, lead time and month always
produce the same forecast.
"""

import math
from typing import NamedTuple

from src.tools.weather import ForecastPoint


class MonthlyNormals(NamedTuple):
    temperature_c: tuple[float, ...]       # daily mean, Jan..Dec
    humidity_pct: tuple[float, ...]
    rainfall_mm_per_day: tuple[float, ...]
    wind_kmh: tuple[float, ...]


SEASONAL_BASELINES: dict[str, MonthlyNormals] = {
    "mumbai": MonthlyNormals(
        (24, 25, 27, 28, 30, 29, 27, 27, 27, 28, 27, 25),
        (60, 62, 66, 70, 72, 82, 86, 86, 83, 76, 66, 62),
        (0, 0, 0, 0, 0.6, 16, 27, 19, 11, 2.5, 0.5, 0),
        (11, 12, 13, 13, 14, 20, 22, 19, 14, 11, 10, 10),
    ),
    "pune": MonthlyNormals(
        (21, 23, 26, 29, 29, 26, 24, 24, 24, 25, 23, 21),
        (45, 38, 33, 36, 48, 72, 82, 84, 79, 62, 51, 48),
        (0, 0, 0.1, 0.5, 1.1, 6, 6.4, 4.4, 4.6, 2.8, 0.8, 0.1),
        (7, 8, 9, 10, 13, 18, 20, 18, 12, 8, 7, 6),
    ),
    "nashik": MonthlyNormals(
        (21, 23, 26, 29, 30, 27, 25, 24, 25, 25, 23, 21),
        (47, 40, 34, 35, 46, 70, 81, 83, 77, 60, 50, 48),
        (0, 0, 0.1, 0.2, 0.7, 4.6, 7.7, 5.4, 4.4, 2, 0.5, 0.1),
        (8, 9, 10, 11, 14, 18, 19, 17, 12, 8, 7, 7),
    ),
    "delhi": MonthlyNormals(
        (14, 17, 23, 29, 33, 33, 31, 30, 29, 26, 21, 16),
        (68, 60, 50, 36, 38, 52, 73, 78, 71, 58, 61, 69),
        (0.6, 0.7, 0.5, 0.3, 1, 2.4, 6.5, 7.9, 4, 0.5, 0.2, 0.3),
        (7, 8, 9, 9, 10, 11, 10, 9, 8, 6, 5, 6),
    ),
    "bangalore": MonthlyNormals(
        (21, 23, 26, 27, 26, 24, 23, 23, 23, 23, 22, 21),
        (63, 55, 50, 56, 66, 76, 80, 81, 78, 76, 72, 67),
        (0.1, 0.2, 0.5, 1.5, 3.9, 3.5, 3.6, 4.4, 6.4, 5.5, 2, 0.5),
        (8, 8, 8, 8, 11, 17, 17, 15, 11, 8, 8, 8),
    ),
    "kolar": MonthlyNormals(
        (22, 24, 27, 29, 29, 27, 26, 26, 25, 25, 23, 22),
        (62, 55, 48, 52, 60, 68, 72, 74, 74, 76, 72, 68),
        (0.1, 0.1, 0.3, 1.2, 3.2, 2.3, 2.6, 3.4, 5.2, 4.8, 2, 0.5),
        (8, 8, 8, 9, 11, 15, 15, 13, 10, 8, 8, 8),
    ),
    "hyderabad": MonthlyNormals(
        (22, 25, 28, 31, 33, 29, 27, 26, 26, 25, 23, 21),
        (55, 47, 38, 36, 40, 62, 72, 75, 74, 66, 60, 57),
        (0.3, 0.2, 0.4, 0.6, 1, 3.5, 5.4, 6.1, 5.5, 3.1, 0.8, 0.2),
        (8, 8, 9, 10, 13, 19, 20, 17, 12, 9, 8, 8),
    ),
    "chennai": MonthlyNormals(
        (25, 26, 28, 31, 33, 32, 31, 30, 30, 28, 26, 25),
        (72, 70, 72, 73, 67, 60, 63, 67, 71, 79, 81, 77),
        (0.8, 0.2, 0.1, 0.5, 1.7, 1.8, 2.8, 4.7, 4.3, 9.5, 13.6, 6),
        (10, 11, 13, 15, 16, 16, 15, 14, 12, 10, 12, 12),
    ),
    "kolkata": MonthlyNormals(
        (20, 23, 28, 31, 31, 31, 30, 30, 30, 28, 25, 21),
        (66, 62, 61, 68, 73, 80, 83, 83, 82, 77, 70, 68),
        (0.3, 0.8, 1.1, 1.8, 4.5, 9.6, 12, 11.5, 10.5, 5, 0.8, 0.1),
        (5, 6, 8, 10, 11, 10, 9, 9, 8, 6, 5, 5),
    ),
}
SEASONAL_BASELINES["bengaluru"] = SEASONAL_BASELINES["bangalore"]

# Generic tropical normals for locations without a baseline
DEFAULT_BASELINE = MonthlyNormals(
    (22, 24, 27, 29, 30, 28, 27, 27, 27, 26, 24, 22),
    (60, 55, 50, 52, 58, 72, 80, 81, 77, 68, 62, 61),
    (0.3, 0.3, 0.4, 0.8, 2, 5, 8, 7.5, 6, 3, 1, 0.3),
    (8, 9, 10, 10, 12, 15, 16, 14, 11, 8, 7, 7),
)

STEP_HOURS = 3

# Diurnal temperature offsets for the eight 3-hour steps of a day
_DIURNAL_OFFSETS = (-3.0, -4.0, -2.0, 1.5, 3.5, 3.0, 0.5, -1.5)


def baseline_for(location: str) -> MonthlyNormals:
    return SEASONAL_BASELINES.get(location.strip().lower(), DEFAULT_BASELINE)


def simulate_forecast(location: str, lead_hours: int, month: int) -> list[ForecastPoint]:
    """
    Build a 3-hourly forecast from the location's normals for a month.

    Args:
        location: Target location name
        lead_hours: Hours to cover
        month: Calendar month 1-12

    Returns:
        One ForecastPoint per 3-hour step
    """
    normals = baseline_for(location)
    m = (month - 1) % 12
    steps = max(1, math.ceil(lead_hours / STEP_HOURS))

    rain_per_step = normals.rainfall_mm_per_day[m] / (24 / STEP_HOURS)
    condition = "rain" if normals.rainfall_mm_per_day[m] >= 5 else (
        "clouds" if normals.rainfall_mm_per_day[m] >= 1 else "clear"
    )

    return [
        ForecastPoint(
            temperature_c=round(normals.temperature_c[m] + _DIURNAL_OFFSETS[i % 8], 1),
            humidity_pct=normals.humidity_pct[m],
            precipitation_mm=round(rain_per_step, 2),
            wind_speed_kmh=normals.wind_kmh[m],
            condition=condition,
        )
        for i in range(steps)
    ]

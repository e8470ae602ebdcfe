"""
Weather Agent
=============
Estimates freshness loss from the forecast on the way to market.

    delta = crop weather sensitivity × (rain + wind + humidity terms)

The delta is in freshness points and is subtracted by the synthesizer.
Without a live forecast the stage simulates one from seasonal normals.
"""

from loguru import logger

from src.agents.base_agent import (
    PriorResults,
    StageContext,
    StageOutcome,
    fetch_external,
)
from src.catalog.seasonal_baselines import simulate_forecast
from src.models.assessment import Recommendation, WeatherResult
from src.models.enums import ForecastOrigin, RiskLevel, Severity, StageName
from src.resilience.errors import StageUnavailable
from src.tools.weather import ForecastPoint


RAIN_CAP_MM = 50.0
RAIN_FACTOR = 0.3
WIND_CALM_KMH = 20.0
WIND_FACTOR = 0.25
WIND_TERM_CAP = 10.0
HUMIDITY_FACTOR = 0.2
HUMIDITY_TERM_CAP = 10.0

# Upper bound (exclusive) of delta for each risk level
RISK_THRESHOLDS: list[tuple[float, RiskLevel]] = [
    (5.0, RiskLevel.LOW),
    (15.0, RiskLevel.MEDIUM),
    (30.0, RiskLevel.HIGH),
]

RISK_SEVERITY = {
    RiskLevel.CRITICAL: Severity.CRITICAL,
    RiskLevel.HIGH: Severity.HIGH,
    RiskLevel.MEDIUM: Severity.MEDIUM,
    RiskLevel.LOW: Severity.LOW,
}


def risk_for_delta(delta: float) -> RiskLevel:
    for limit, level in RISK_THRESHOLDS:
        if delta < limit:
            return level
    return RiskLevel.CRITICAL


def weather_exposure(points: list[ForecastPoint], measured_humidity: float) -> tuple[float, float, float, float]:
    """
    Exposure of produce in transit to the forecast.

    Returns:
        (total rain mm, peak wind km/h, mean humidity deviation %, factor)
    """
    if not points:
        return 0.0, 0.0, 0.0, 0.0

    rain = sum(p.precipitation_mm for p in points)
    wind = max(p.wind_speed_kmh for p in points)
    deviation = sum(abs(p.humidity_pct - measured_humidity) for p in points) / len(points)

    factor = (
        min(rain, RAIN_CAP_MM) * RAIN_FACTOR
        + min(max(0.0, wind - WIND_CALM_KMH) * WIND_FACTOR, WIND_TERM_CAP)
        + min(deviation * HUMIDITY_FACTOR, HUMIDITY_TERM_CAP)
    )
    return rain, wind, deviation, factor


def assess_weather(
    points: list[ForecastPoint],
    measured_humidity: float,
    weather_sensitivity: float,
    source: ForecastOrigin,
    lead_hours: int,
    location: str,
) -> WeatherResult:
    rain, wind, deviation, factor = weather_exposure(points, measured_humidity)
    delta = round(max(0.0, weather_sensitivity * factor), 2)
    risk = risk_for_delta(delta)

    recs: list[tuple[Severity, str]] = []
    if risk == RiskLevel.CRITICAL:
        recs.append((
            Severity.CRITICAL,
            f"Severe weather ahead ({rain:.0f} mm rain, winds to {wind:.0f} km/h): "
            "dispatch now in closed transport or hold in cold storage",
        ))
    elif risk == RiskLevel.HIGH:
        recs.append((Severity.HIGH, "Adverse weather expected: cover produce and use closed vehicles"))
    elif risk == RiskLevel.MEDIUM:
        recs.append((Severity.MEDIUM, "Some weather risk: protect produce from rain and heat in transit"))
    else:
        recs.append((Severity.LOW, "Weather conditions favourable for transport"))

    if source == ForecastOrigin.SIMULATED:
        recs.append((
            Severity.LOW,
            f"Live forecast unavailable; risk estimated from seasonal averages for {location}",
        ))

    return WeatherResult(
        degradation_delta=delta,
        risk_level=risk,
        source=source,
        lead_hours=lead_hours,
        precipitation_mm=round(rain, 2),
        peak_wind_kmh=round(wind, 1),
        humidity_deviation_pct=round(deviation, 2),
        fallback_used=source != ForecastOrigin.LIVE,
        recommendations=tuple(
            Recommendation(severity=s, message=m, stage=StageName.WEATHER) for s, m in recs
        ),
    )


async def run_weather_stage(ctx: StageContext, prior: PriorResults) -> StageOutcome:
    """Assess the live forecast, or a simulated one when it is unavailable."""
    request = ctx.request
    lead_hours = ctx.settings.lead_hours_for(request.urgency)
    source = ctx.forecast_source

    reason = None
    try:
        points = await fetch_external(ctx, source.name, source.lookup(request.location, lead_hours))
        if not points:
            reason = f"{source.name}: no forecast"
    except StageUnavailable as e:
        points = None
        reason = str(e)

    if points:
        origin = ForecastOrigin.LIVE
    else:
        logger.warning(f"Forecast unavailable for {request.location} ({reason}), using seasonal baseline")
        points = simulate_forecast(request.location, lead_hours, ctx.month)
        origin = ForecastOrigin.SIMULATED

    result = assess_weather(
        points,
        request.humidity_pct,
        ctx.profile.weather_sensitivity,
        origin,
        lead_hours,
        request.location,
    )
    return StageOutcome(
        result=result,
        fallback_used=result.fallback_used,
        fallback_reason=reason if result.fallback_used else None,
    )

"""
Freshness Scorer
================
Scores produce freshness from storage readings.

    score = 0.30·temperature + 0.40·humidity + 0.30·age

Each sub-score is 0-100. Temperature and humidity lose points linearly
with distance outside the crop's optimal band, reaching 0 at the crop's
spread. Age loses the crop's hourly degradation rate per hour.

Pure and deterministic: no I/O, cannot fall back.
"""

from src.agents.base_agent import PriorResults, StageContext, StageOutcome
from src.catalog.crop_profiles import CropProfile
from src.models.assessment import AssessmentRequest, FreshnessResult, Recommendation
from src.models.enums import FreshnessLevel, Severity, StageName


TEMPERATURE_WEIGHT = 0.30
HUMIDITY_WEIGHT = 0.40
AGE_WEIGHT = 0.30

# Lower bound of each level, best first
LEVEL_THRESHOLDS: list[tuple[float, FreshnessLevel]] = [
    (80.0, FreshnessLevel.EXCELLENT),
    (60.0, FreshnessLevel.GOOD),
    (40.0, FreshnessLevel.FAIR),
    (20.0, FreshnessLevel.POOR),
]


def band_score(value: float, low: float, high: float, spread: float) -> float:
    """100 inside [low, high], falling linearly to 0 at `spread` outside it."""
    if value < low:
        distance = low - value
    elif value > high:
        distance = value - high
    else:
        return 100.0
    return max(0.0, 100.0 * (1.0 - distance / spread))


def age_score(age_hours: float, rate_per_hour: float) -> float:
    return max(0.0, 100.0 - age_hours * rate_per_hour)


def level_for_score(score: float) -> FreshnessLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return FreshnessLevel.CRITICAL


def score_freshness(request: AssessmentRequest, profile: CropProfile) -> FreshnessResult:
    """Compute the freshness result for one reading."""
    temp = band_score(
        request.temperature_c,
        profile.optimal_temp_min_c,
        profile.optimal_temp_max_c,
        profile.temperature_spread_c,
    )
    humidity = band_score(
        request.humidity_pct,
        profile.optimal_humidity_min_pct,
        profile.optimal_humidity_max_pct,
        profile.humidity_spread_pct,
    )
    age = age_score(request.age_hours, profile.degradation_rate_per_hour)

    score = TEMPERATURE_WEIGHT * temp + HUMIDITY_WEIGHT * humidity + AGE_WEIGHT * age
    # Unrounded so levels switch exactly at their thresholds
    score = min(100.0, max(0.0, score))
    level = level_for_score(score)

    return FreshnessResult(
        score=score,
        level=level,
        temperature_score=round(temp, 2),
        humidity_score=round(humidity, 2),
        age_score=round(age, 2),
        recommendations=tuple(_recommendations(request, profile, level, temp, humidity, age)),
    )


def _recommendations(
    request: AssessmentRequest,
    profile: CropProfile,
    level: FreshnessLevel,
    temp: float,
    humidity: float,
    age: float,
) -> list[Recommendation]:
    crop = profile.display_name or request.crop
    recs: list[tuple[Severity, str]] = []

    if level == FreshnessLevel.CRITICAL:
        recs.append((
            Severity.CRITICAL,
            f"Immediate action required: sell or process the {crop.lower()} within 6 hours to avoid total loss",
        ))
    if level in (FreshnessLevel.POOR, FreshnessLevel.CRITICAL):
        recs.append((Severity.HIGH, "Use cold-chain transport for dispatch"))
    if level == FreshnessLevel.POOR:
        recs.append((Severity.HIGH, "Prioritise sale within 24 hours"))
    if level == FreshnessLevel.FAIR:
        recs.append((Severity.MEDIUM, "Sell within 2-3 days and use refrigerated transport"))

    if temp < 60:
        lo, hi = profile.optimal_temperature
        direction = "cooler" if request.temperature_c > hi else "warmer"
        recs.append((
            Severity.HIGH if temp < 30 else Severity.MEDIUM,
            f"Move to {direction} storage: optimal {lo:g}-{hi:g}°C (now {request.temperature_c:g}°C)",
        ))
    if humidity < 60:
        lo, hi = profile.optimal_humidity
        recs.append((
            Severity.HIGH if humidity < 30 else Severity.MEDIUM,
            f"Bring humidity to {lo:g}-{hi:g}% (now {request.humidity_pct:g}%)",
        ))
    if age < 50 and level != FreshnessLevel.CRITICAL:
        recs.append((
            Severity.MEDIUM,
            f"Produce is {request.age_hours:g}h old; schedule dispatch soon",
        ))

    if not recs:
        recs.append((Severity.LOW, "Produce in good condition; standard handling is sufficient"))

    return [Recommendation(severity=s, message=m, stage=StageName.FRESHNESS) for s, m in recs]


async def run_freshness_stage(ctx: StageContext, prior: PriorResults) -> StageOutcome:
    return StageOutcome(result=score_freshness(ctx.request, ctx.profile))

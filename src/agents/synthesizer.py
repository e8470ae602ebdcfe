"""
Synthesizer
===========
Merges the four stage results into one FinalAssessment.

- adjusted score = max(0, freshness score - weather delta)
- confidence = product of per-stage weights (1.0 live, lower for
  fallbacks and defaults)
- recommendations deduplicated and ordered by severity, with CRITICAL/HIGH
  weather and logistics items first

Never fails: a missing market, logistics or weather result is replaced by a
neutral default and the assessment is marked partial.
"""

from typing import Mapping, Optional, Sequence

from src.agents.freshness_agent import level_for_score
from src.agents.logistics_agent import (
    build_logistics_result,
    enforce_high_value_mode,
    select_delivery_mode,
)
from src.catalog.crop_profiles import CropProfile
from src.config.settings import Settings
from src.models.assessment import (
    AssessmentRequest,
    FinalAssessment,
    FreshnessResult,
    LogisticsResult,
    MarketResult,
    Recommendation,
    StageFlag,
    WeatherResult,
)
from src.models.enums import (
    ForecastOrigin,
    PriceSource,
    PriceStrategy,
    RiskLevel,
    RunStatus,
    Severity,
    StageName,
    StageStatus,
    TrendDirection,
)
from src.tools.driver_registry import DriverCandidate


STAGE_ORDER = [StageName.FRESHNESS, StageName.WEATHER, StageName.LOGISTICS, StageName.MARKET]
SURFACED_STAGES = (StageName.WEATHER, StageName.LOGISTICS)
SURFACED_SEVERITIES = (Severity.CRITICAL, Severity.HIGH)


# ═══════════════════════════════════════════════════════════════
# Neutral defaults
# ═══════════════════════════════════════════════════════════════

def default_market_result(profile: CropProfile) -> MarketResult:
    price = profile.reference_price_per_kg
    return MarketResult(
        base_price_per_kg=price,
        multiplier=1.0,
        final_price_per_kg=price,
        strategy=PriceStrategy.MARKET_RATE,
        trend=TrendDirection.UNKNOWN,
        price_source=PriceSource.DEFAULT,
        fallback_used=True,
        recommendations=(Recommendation(
            severity=Severity.MEDIUM,
            message=f"Pricing unavailable; reference rate ₹{price:.2f}/kg shown, confirm with the mandi",
            stage=StageName.MARKET,
        ),),
    )


def default_logistics_result(
    freshness: FreshnessResult,
    settings: Settings,
    price_per_kg: float,
) -> LogisticsResult:
    mode = select_delivery_mode(freshness.score, price_per_kg, settings)
    return LogisticsResult(
        delivery_mode=mode,
        cost_multiplier=mode.cost_multiplier,
        insufficient_supply=True,
        fallback_used=True,
        recommendations=(Recommendation(
            severity=Severity.MEDIUM,
            message=f"Driver matching unavailable; arrange {mode.value.replace('_', ' ').lower()} transport manually",
            stage=StageName.LOGISTICS,
        ),),
    )


def default_weather_result() -> WeatherResult:
    return WeatherResult(
        degradation_delta=0.0,
        risk_level=RiskLevel.LOW,
        source=ForecastOrigin.DEFAULT,
        fallback_used=True,
        recommendations=(Recommendation(
            severity=Severity.LOW,
            message="Weather risk not assessed; check the local forecast before dispatch",
            stage=StageName.WEATHER,
        ),),
    )


# ═══════════════════════════════════════════════════════════════
# Merge
# ═══════════════════════════════════════════════════════════════

def stage_confidence(flag: StageFlag, settings: Settings) -> float:
    if flag.defaulted:
        return settings.default_confidence
    if flag.fallback_used:
        return settings.fallback_confidence
    return 1.0


def merge_recommendations(groups: list[tuple[Recommendation, ...]]) -> tuple[Recommendation, ...]:
    """Deduplicate by message (keeping the most severe) and order by priority."""
    best: dict[str, tuple[int, Recommendation]] = {}
    position = 0
    for group in groups:
        for rec in group:
            current = best.get(rec.message)
            if current is None:
                best[rec.message] = (position, rec)
            elif rec.severity.rank < current[1].severity.rank:
                best[rec.message] = (current[0], rec)
            position += 1

    def priority(item: tuple[int, Recommendation]):
        pos, rec = item
        surfaced = rec.stage in SURFACED_STAGES and rec.severity in SURFACED_SEVERITIES
        return (0 if surfaced else 1, rec.severity.rank, STAGE_ORDER.index(rec.stage), pos)

    return tuple(rec for _, rec in sorted(best.values(), key=priority))


def synthesize(
    request: AssessmentRequest,
    profile: CropProfile,
    settings: Settings,
    freshness: FreshnessResult,
    market: Optional[MarketResult],
    logistics: Optional[LogisticsResult],
    weather: Optional[WeatherResult],
    flags: Mapping[StageName, StageFlag],
    timed_out: bool = False,
    driver_candidates: Sequence[DriverCandidate] = (),
) -> FinalAssessment:
    """
    Compose the final assessment from whatever stage results exist.

    driver_candidates are the logistics stage's registry candidates. When
    the market price forces a costlier delivery mode they are re-ranked for
    that mode so the logistics result matches the reported delivery_mode.
    """
    flags = dict(flags)
    defaults = {
        StageName.MARKET: market is None,
        StageName.LOGISTICS: logistics is None,
        StageName.WEATHER: weather is None,
    }
    for stage, defaulted in defaults.items():
        if defaulted:
            flag = flags.get(stage) or StageFlag(status=StageStatus.FAILED)
            flags[stage] = flag.model_copy(update={"defaulted": True})
    flags.setdefault(StageName.FRESHNESS, StageFlag(status=StageStatus.SUCCESS, attempts=1))

    market = market or default_market_result(profile)
    logistics = logistics or default_logistics_result(
        freshness, settings, market.final_price_per_kg
    )
    weather = weather or default_weather_result()

    adjusted = max(0.0, freshness.score - weather.degradation_delta)

    confidence = 1.0
    for flag in flags.values():
        confidence *= stage_confidence(flag, settings)

    extra: list[Recommendation] = []
    delivery_mode = enforce_high_value_mode(
        logistics.delivery_mode, market.final_price_per_kg, settings
    )
    if delivery_mode != logistics.delivery_mode:
        extra.append(Recommendation(
            severity=Severity.MEDIUM,
            message=(
                f"High-value produce (₹{market.final_price_per_kg:.2f}/kg): "
                "refrigerated transport required"
            ),
            stage=StageName.LOGISTICS,
        ))
        logistics = build_logistics_result(
            request,
            delivery_mode,
            list(driver_candidates),
            settings,
            fallback_used=logistics.fallback_used,
        )

    degraded_reasons = []
    for stage in STAGE_ORDER:
        flag = flags.get(stage)
        if flag is None:
            continue
        if flag.defaulted:
            why = "timed out" if flag.status == StageStatus.TIMED_OUT else (flag.error or "failed")
            degraded_reasons.append(f"{stage.value}: neutral default used ({why})")
        elif flag.fallback_used:
            degraded_reasons.append(f"{stage.value}: fallback used ({flag.fallback_reason or 'data unavailable'})")
    if timed_out:
        degraded_reasons.append("deadline exceeded")

    status = RunStatus.DEGRADED if degraded_reasons else RunStatus.COMPLETED

    return FinalAssessment(
        crop=request.crop,
        location=request.location,
        status=status,
        adjusted_score=adjusted,
        adjusted_level=level_for_score(adjusted),
        confidence=round(confidence, 4),
        delivery_mode=delivery_mode,
        recommendations=merge_recommendations([
            freshness.recommendations,
            weather.recommendations,
            logistics.recommendations,
            tuple(extra),
            market.recommendations,
        ]),
        freshness=freshness,
        market=market,
        logistics=logistics,
        weather=weather,
        stage_flags={stage: flags[stage] for stage in STAGE_ORDER if stage in flags},
        partial=any(defaults.values()),
        degraded_reasons=tuple(degraded_reasons),
    )

"""
Assessment Models
=================
Request, per-stage results and the final decision bundle.

All results are frozen once built: the freshness result in particular is
shared by the market and logistics stages of the same run and must not
change underneath them.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import (
    DeliveryMode,
    ErrorKind,
    ForecastOrigin,
    FreshnessLevel,
    MarketLevel,
    PriceSource,
    PriceStrategy,
    RiskLevel,
    RunStatus,
    Severity,
    StageName,
    StageStatus,
    TrendDirection,
    Urgency,
    VehicleType,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Recommendation(_Frozen):
    """Single actionable recommendation."""

    severity: Severity
    message: str
    stage: StageName


class AssessmentRequest(_Frozen):
    """One field measurement to assess."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    crop: str = Field(min_length=1)
    temperature_c: float = Field(ge=-10, le=60)
    humidity_pct: float = Field(ge=0, le=100)
    age_hours: float = Field(default=0.0, ge=0)
    quantity_kg: float = Field(default=10.0, gt=0)
    location: str = Field(min_length=1)
    urgency: Urgency = Urgency.MEDIUM

    @field_validator("urgency", mode="before")
    @classmethod
    def _upper_urgency(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


# ═══════════════════════════════════════════════════════════════
# Stage results
# ═══════════════════════════════════════════════════════════════

class FreshnessResult(_Frozen):
    score: float = Field(ge=0, le=100)
    level: FreshnessLevel
    temperature_score: float
    humidity_score: float
    age_score: float
    recommendations: tuple[Recommendation, ...] = ()


class MarketResult(_Frozen):
    base_price_per_kg: float
    multiplier: float
    final_price_per_kg: float
    strategy: PriceStrategy
    trend: TrendDirection = TrendDirection.UNKNOWN

    demand: MarketLevel = MarketLevel.MEDIUM
    supply: MarketLevel = MarketLevel.MEDIUM

    # Adjustment breakdown
    freshness_adjustment: float = 0.0
    demand_adjustment: float = 0.0
    urgency_adjustment: float = 0.0
    bulk_discount_applied: bool = False
    emergency_cap_applied: bool = False

    price_source: PriceSource = PriceSource.LIVE
    fallback_used: bool = False
    recommendations: tuple[Recommendation, ...] = ()


class DriverScoreBreakdown(_Frozen):
    """Normalized [0, 1] factor values behind a driver's composite score."""

    capacity_match: float
    rating: float
    vehicle_match: float
    availability: float
    proximity: float


class RankedDriver(_Frozen):
    driver_id: str
    name: str = ""
    vehicle_type: VehicleType
    capacity_kg: float
    rating: float
    distance_km: float
    score: float
    breakdown: DriverScoreBreakdown


class LogisticsResult(_Frozen):
    delivery_mode: DeliveryMode
    cost_multiplier: float
    drivers: tuple[RankedDriver, ...] = ()
    eligible_count: int = 0
    insufficient_supply: bool = False
    premium_delivery: bool = False
    fallback_used: bool = False
    recommendations: tuple[Recommendation, ...] = ()


class WeatherResult(_Frozen):
    degradation_delta: float = Field(ge=0)
    risk_level: RiskLevel
    source: ForecastOrigin
    lead_hours: int = 0

    # Inputs to the delta
    precipitation_mm: float = 0.0
    peak_wind_kmh: float = 0.0
    humidity_deviation_pct: float = 0.0

    fallback_used: bool = False
    recommendations: tuple[Recommendation, ...] = ()


# ═══════════════════════════════════════════════════════════════
# Composed output
# ═══════════════════════════════════════════════════════════════

class StageFlag(_Frozen):
    """How a stage terminated within a run."""

    status: StageStatus
    attempts: int = 0
    fallback_used: bool = False
    fallback_reason: Optional[str] = None
    defaulted: bool = False
    error: Optional[str] = None


class FinalAssessment(_Frozen):
    """The explainable decision bundle returned to callers."""

    crop: str
    location: str
    status: RunStatus

    adjusted_score: float = Field(ge=0, le=100)
    adjusted_level: FreshnessLevel
    confidence: float = Field(ge=0, le=1)
    delivery_mode: DeliveryMode

    recommendations: tuple[Recommendation, ...] = ()

    freshness: FreshnessResult
    market: MarketResult
    logistics: LogisticsResult
    weather: WeatherResult

    stage_flags: dict[StageName, StageFlag] = Field(default_factory=dict)
    partial: bool = False
    degraded_reasons: tuple[str, ...] = ()

    @property
    def fallback_stages(self) -> list[StageName]:
        return [name for name, flag in self.stage_flags.items() if flag.fallback_used]


class AssessmentError(_Frozen):
    """Structured error returned for FAILED runs."""

    kind: ErrorKind
    reason: str
    stage: Optional[StageName] = None
    details: tuple[str, ...] = ()
    status: RunStatus = RunStatus.FAILED

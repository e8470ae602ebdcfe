"""Data models for the crop assessment pipeline."""

from src.models.assessment import (
    AssessmentError,
    AssessmentRequest,
    DriverScoreBreakdown,
    FinalAssessment,
    FreshnessResult,
    LogisticsResult,
    MarketResult,
    RankedDriver,
    Recommendation,
    StageFlag,
    WeatherResult,
)
from src.models.enums import (
    DeliveryMode,
    DriverStatus,
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

__all__ = [
    # Requests and results
    "AssessmentRequest",
    "AssessmentError",
    "FinalAssessment",
    "FreshnessResult",
    "MarketResult",
    "LogisticsResult",
    "WeatherResult",
    "RankedDriver",
    "DriverScoreBreakdown",
    "Recommendation",
    "StageFlag",

    # Enums
    "DeliveryMode",
    "DriverStatus",
    "ErrorKind",
    "ForecastOrigin",
    "FreshnessLevel",
    "MarketLevel",
    "PriceSource",
    "PriceStrategy",
    "RiskLevel",
    "RunStatus",
    "Severity",
    "StageName",
    "StageStatus",
    "TrendDirection",
    "Urgency",
    "VehicleType",
]

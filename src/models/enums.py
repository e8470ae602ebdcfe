"""Enumerations shared by the assessment pipeline."""

from enum import Enum


class Urgency(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class FreshnessLevel(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"


class Severity(str, Enum):
    """Recommendation severity, most urgent first."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """0 for CRITICAL up to 3 for LOW."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class MarketLevel(str, Enum):
    """Demand or supply level reported for a mandi."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PriceStrategy(str, Enum):
    PREMIUM = "PREMIUM"
    MARKET_RATE = "MARKET_RATE"
    DISCOUNT = "DISCOUNT"
    CLEARANCE = "CLEARANCE"


class TrendDirection(str, Enum):
    RISING = "RISING"
    STABLE = "STABLE"
    FALLING = "FALLING"
    UNKNOWN = "UNKNOWN"


class PriceSource(str, Enum):
    """Where the base price of a market result came from."""
    LIVE = "LIVE"
    LAST_KNOWN = "LAST_KNOWN"
    REFERENCE = "REFERENCE"    # static catalog price
    DEFAULT = "DEFAULT"        # neutral default after stage failure


class DeliveryMode(str, Enum):
    COLD_CHAIN = "COLD_CHAIN"
    REFRIGERATED = "REFRIGERATED"
    STANDARD = "STANDARD"

    @property
    def cost_multiplier(self) -> float:
        return _MODE_COST[self]


_MODE_COST = {
    DeliveryMode.COLD_CHAIN: 1.5,
    DeliveryMode.REFRIGERATED: 1.3,
    DeliveryMode.STANDARD: 1.0,
}


class VehicleType(str, Enum):
    REEFER_TRUCK = "REEFER_TRUCK"      # active refrigeration
    INSULATED_VAN = "INSULATED_VAN"    # chilled, passive
    OPEN_TRUCK = "OPEN_TRUCK"
    MINI_TRUCK = "MINI_TRUCK"


class DriverStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ForecastOrigin(str, Enum):
    LIVE = "LIVE"
    SIMULATED = "SIMULATED"
    DEFAULT = "DEFAULT"


class StageName(str, Enum):
    FRESHNESS = "FRESHNESS"
    WEATHER = "WEATHER"
    MARKET = "MARKET"
    LOGISTICS = "LOGISTICS"


class StageStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FALLBACK = "FALLBACK"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"


class RunStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    DEGRADED = "DEGRADED"
    FAILED = "FAILED"


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    STAGE_FAILURE = "STAGE_FAILURE"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"

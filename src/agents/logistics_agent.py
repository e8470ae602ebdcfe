"""
Logistics Agent
===============
Chooses the delivery mode and ranks driver candidates.

Delivery mode (by freshness score):
- below 40: COLD_CHAIN (mandatory)
- 40-70: REFRIGERATED
- above 70: STANDARD
High-value crops never travel STANDARD.

Driver ranking weights: capacity match 30%, rating 20%, vehicle match 20%,
availability 10%. The remaining 20% is reserved for proximity and is
weighted zero; the weights are deliberately not renormalized.
"""

from typing import Optional

from loguru import logger

from src.agents.base_agent import (
    PriorResults,
    StageContext,
    StageOutcome,
    fetch_external,
)
from src.config.settings import Settings
from src.models.assessment import (
    AssessmentRequest,
    DriverScoreBreakdown,
    LogisticsResult,
    RankedDriver,
    Recommendation,
)
from src.models.enums import (
    DeliveryMode,
    DriverStatus,
    Severity,
    StageName,
    Urgency,
    VehicleType,
)
from src.resilience.errors import StageUnavailable
from src.tools.driver_registry import DriverCandidate


COLD_CHAIN_BELOW = 40.0
STANDARD_ABOVE = 70.0

SCORE_WEIGHTS = {
    "capacity_match": 0.30,
    "rating": 0.20,
    "vehicle_match": 0.20,
    "availability": 0.10,
    "proximity": 0.0,  # reserved 20%
}

# How well each vehicle serves each delivery mode
VEHICLE_MATCH = {
    DeliveryMode.COLD_CHAIN: {
        VehicleType.REEFER_TRUCK: 1.0,
        VehicleType.INSULATED_VAN: 0.5,
        VehicleType.OPEN_TRUCK: 0.0,
        VehicleType.MINI_TRUCK: 0.0,
    },
    DeliveryMode.REFRIGERATED: {
        VehicleType.REEFER_TRUCK: 0.9,
        VehicleType.INSULATED_VAN: 1.0,
        VehicleType.OPEN_TRUCK: 0.0,
        VehicleType.MINI_TRUCK: 0.0,
    },
    DeliveryMode.STANDARD: {
        VehicleType.REEFER_TRUCK: 0.5,
        VehicleType.INSULATED_VAN: 0.7,
        VehicleType.OPEN_TRUCK: 1.0,
        VehicleType.MINI_TRUCK: 1.0,
    },
}

AVAILABILITY_HORIZON_HOURS = 24.0


def select_delivery_mode(
    freshness_score: float,
    price_per_kg: float,
    settings: Settings,
) -> DeliveryMode:
    """Delivery mode from freshness, upgraded for high-value produce."""
    if freshness_score < COLD_CHAIN_BELOW:
        mode = DeliveryMode.COLD_CHAIN
    elif freshness_score <= STANDARD_ABOVE:
        mode = DeliveryMode.REFRIGERATED
    else:
        mode = DeliveryMode.STANDARD
    return enforce_high_value_mode(mode, price_per_kg, settings)


def enforce_high_value_mode(mode: DeliveryMode, price_per_kg: float, settings: Settings) -> DeliveryMode:
    if price_per_kg > settings.high_value_price_per_kg and mode == DeliveryMode.STANDARD:
        return DeliveryMode.REFRIGERATED
    return mode


def is_premium_delivery(mode: DeliveryMode, urgency: Urgency) -> bool:
    return mode == DeliveryMode.COLD_CHAIN or urgency == Urgency.HIGH


def ineligibility_reason(
    candidate: DriverCandidate,
    required_capacity: float,
    premium: bool,
    settings: Settings,
) -> Optional[str]:
    """Why a candidate cannot take the job, or None if eligible."""
    if candidate.status != DriverStatus.AVAILABLE:
        return "not_available"
    if candidate.capacity_kg < required_capacity:
        return "capacity"
    if premium and candidate.rating < settings.premium_min_rating:
        return "rating"
    if candidate.distance_km is None:
        return "distance_unknown"
    if candidate.distance_km > settings.max_driver_distance_km:
        return "distance"
    return None


def score_driver(
    candidate: DriverCandidate,
    required_capacity: float,
    mode: DeliveryMode,
    settings: Settings,
) -> RankedDriver:
    distance = candidate.distance_km or 0.0
    breakdown = DriverScoreBreakdown(
        capacity_match=round(min(1.0, required_capacity / candidate.capacity_kg), 4),
        rating=round(candidate.rating / 5.0, 4),
        vehicle_match=VEHICLE_MATCH[mode][candidate.vehicle_type],
        availability=round(max(0.0, 1.0 - candidate.pickup_eta_hours / AVAILABILITY_HORIZON_HOURS), 4),
        proximity=round(max(0.0, 1.0 - distance / settings.max_driver_distance_km), 4),
    )
    score = sum(getattr(breakdown, factor) * weight for factor, weight in SCORE_WEIGHTS.items())

    return RankedDriver(
        driver_id=candidate.driver_id,
        name=candidate.name,
        vehicle_type=candidate.vehicle_type,
        capacity_kg=candidate.capacity_kg,
        rating=candidate.rating,
        distance_km=distance,
        score=round(score, 4),
        breakdown=breakdown,
    )


def rank_drivers(
    candidates: list[DriverCandidate],
    request: AssessmentRequest,
    mode: DeliveryMode,
    settings: Settings,
) -> tuple[list[RankedDriver], int]:
    """
    Filter and rank candidates.

    Returns:
        (top drivers, number of eligible candidates)
    """
    required = request.quantity_kg * settings.capacity_buffer
    premium = is_premium_delivery(mode, request.urgency)

    eligible = []
    rejected: dict[str, int] = {}
    for candidate in candidates:
        reason = ineligibility_reason(candidate, required, premium, settings)
        if reason:
            rejected[reason] = rejected.get(reason, 0) + 1
        else:
            eligible.append(score_driver(candidate, required, mode, settings))

    if rejected:
        logger.debug(f"Excluded drivers: {rejected}")

    eligible.sort(key=lambda d: (-d.score, -d.capacity_kg, d.driver_id))
    return eligible[: settings.max_driver_candidates], len(eligible)


def build_logistics_result(
    request: AssessmentRequest,
    mode: DeliveryMode,
    candidates: list[DriverCandidate],
    settings: Settings,
    fallback_used: bool = False,
) -> LogisticsResult:
    drivers, eligible_count = rank_drivers(candidates, request, mode, settings)
    insufficient = eligible_count < settings.min_driver_candidates

    recs: list[tuple[Severity, str]] = []
    if mode == DeliveryMode.COLD_CHAIN:
        recs.append((Severity.HIGH, f"Cold-chain transport required (cost x{mode.cost_multiplier:g})"))
    elif mode == DeliveryMode.REFRIGERATED:
        recs.append((Severity.MEDIUM, f"Use refrigerated transport (cost x{mode.cost_multiplier:g})"))
    else:
        recs.append((Severity.LOW, "Standard transport is sufficient"))

    if fallback_used:
        recs.append((Severity.MEDIUM, "Driver registry unavailable; assign a driver manually"))
    elif insufficient:
        recs.append((
            Severity.HIGH,
            f"Only {eligible_count} eligible driver(s) near {request.location}; book transport early",
        ))
    if drivers:
        best = drivers[0]
        recs.append((
            Severity.LOW,
            f"Best match: {best.name or best.driver_id} ({best.vehicle_type.value}, "
            f"{best.capacity_kg:g} kg, rating {best.rating:g})",
        ))

    return LogisticsResult(
        delivery_mode=mode,
        cost_multiplier=mode.cost_multiplier,
        drivers=tuple(drivers),
        eligible_count=eligible_count,
        insufficient_supply=insufficient,
        premium_delivery=is_premium_delivery(mode, request.urgency),
        fallback_used=fallback_used,
        recommendations=tuple(
            Recommendation(severity=s, message=m, stage=StageName.LOGISTICS) for s, m in recs
        ),
    )


async def run_logistics_stage(ctx: StageContext, prior: PriorResults) -> StageOutcome:
    """Select mode and drivers; an unreachable registry yields no drivers."""
    freshness = prior.require_freshness()
    request = ctx.request
    settings = ctx.settings

    # The market stage runs alongside this one, so only the catalog price is known here
    mode = select_delivery_mode(freshness.score, ctx.profile.reference_price_per_kg, settings)

    registry = ctx.driver_registry
    try:
        candidates = await fetch_external(
            ctx,
            registry.name,
            registry.query(request.location, request.quantity_kg * settings.capacity_buffer, mode),
        )
    except StageUnavailable as e:
        logger.warning(f"Driver registry unavailable ({e}), no drivers ranked")
        result = build_logistics_result(request, mode, [], settings, fallback_used=True)
        return StageOutcome(result=result, fallback_used=True, fallback_reason=str(e))

    candidates = list(candidates or [])
    result = build_logistics_result(request, mode, candidates, settings)
    return StageOutcome(result=result, candidates=tuple(candidates))

"""
Pricing Agent
=============
Recommends a selling price from freshness and market conditions.

Uses:
- Market snapshot (Agmarknet) for base price, demand and supply
- Freshness level for premium/discount
- Seller urgency and lot size

Rules:
- multiplier = 1 + freshness + demand + urgency adjustments, each clamped
- multiplier clamped to [0.70, 1.20]
- lots over 100 kg take a further 5% and are re-clamped
- CRITICAL freshness caps the multiplier at 0.50 (emergency sale)
"""

from typing import Optional

from loguru import logger

from src.agents.base_agent import (
    PriorResults,
    StageContext,
    StageOutcome,
    clamp,
    fetch_external,
)
from src.catalog.crop_profiles import GENERIC_CROP_ID, CropProfile
from src.config.settings import Settings
from src.models.assessment import (
    AssessmentRequest,
    FreshnessResult,
    MarketResult,
    Recommendation,
)
from src.models.enums import (
    FreshnessLevel,
    MarketLevel,
    PriceSource,
    PriceStrategy,
    Severity,
    StageName,
    TrendDirection,
    Urgency,
)
from src.resilience.errors import StageUnavailable
from src.tools.agmarknet import MarketSnapshot


class MarketPricer:
    """
    Dynamic pricing rules.

    Usage:
        pricer = MarketPricer(settings)
        result = pricer.price(request, profile, freshness, snapshot)
    """

    # Base premium/discount per freshness level, scaled by crop price sensitivity
    FRESHNESS_ADJUSTMENTS = {
        FreshnessLevel.EXCELLENT: 0.15,
        FreshnessLevel.GOOD: 0.05,
        FreshnessLevel.FAIR: -0.05,
        FreshnessLevel.POOR: -0.15,
        FreshnessLevel.CRITICAL: -0.20,
    }
    DEMAND_ADJUSTMENTS = {
        MarketLevel.HIGH: 0.10,
        MarketLevel.MEDIUM: 0.0,
        MarketLevel.LOW: -0.10,
    }
    SUPPLY_ADJUSTMENTS = {
        MarketLevel.LOW: 0.05,
        MarketLevel.MEDIUM: 0.0,
        MarketLevel.HIGH: -0.05,
    }
    # A seller in a hurry accepts less; one who can wait holds out for more
    URGENCY_ADJUSTMENTS = {
        Urgency.HIGH: -0.10,
        Urgency.MEDIUM: 0.0,
        Urgency.LOW: 0.05,
    }

    FRESHNESS_LIMIT = 0.20
    DEMAND_LIMIT = 0.15
    URGENCY_LIMIT = 0.15

    MIN_MULTIPLIER = 0.70
    MAX_MULTIPLIER = 1.20
    EMERGENCY_CAP = 0.50

    TREND_BAND = 0.02  # ±2% price change counts as stable

    def __init__(self, settings: Settings):
        self.settings = settings

    def price(
        self,
        request: AssessmentRequest,
        profile: CropProfile,
        freshness: FreshnessResult,
        snapshot: Optional[MarketSnapshot],
        base_price: Optional[float] = None,
        price_source: PriceSource = PriceSource.LIVE,
    ) -> MarketResult:
        """
        Build a market result.

        Args:
            snapshot: Live snapshot, or None when falling back
            base_price: ₹/kg to use when there is no snapshot
            price_source: Origin of the base price
        """
        if snapshot is not None:
            base = snapshot.price_per_kg
            demand, supply = snapshot.demand, snapshot.supply
            trend = self._trend(snapshot)
        else:
            base = base_price if base_price is not None else profile.reference_price_per_kg
            demand = supply = MarketLevel.MEDIUM
            trend = TrendDirection.UNKNOWN

        freshness_adj = clamp(
            self.FRESHNESS_ADJUSTMENTS[freshness.level] * profile.price_sensitivity,
            -self.FRESHNESS_LIMIT, self.FRESHNESS_LIMIT,
        )
        demand_adj = clamp(
            self.DEMAND_ADJUSTMENTS[demand] + self.SUPPLY_ADJUSTMENTS[supply],
            -self.DEMAND_LIMIT, self.DEMAND_LIMIT,
        )
        urgency_adj = clamp(
            self.URGENCY_ADJUSTMENTS[request.urgency],
            -self.URGENCY_LIMIT, self.URGENCY_LIMIT,
        )

        multiplier = clamp(
            1.0 + freshness_adj + demand_adj + urgency_adj,
            self.MIN_MULTIPLIER, self.MAX_MULTIPLIER,
        )

        bulk = request.quantity_kg > self.settings.bulk_quantity_kg
        if bulk:
            multiplier = clamp(
                multiplier * (1.0 - self.settings.bulk_discount),
                self.MIN_MULTIPLIER, self.MAX_MULTIPLIER,
            )

        emergency = freshness.level == FreshnessLevel.CRITICAL
        if emergency:
            multiplier = min(multiplier, self.EMERGENCY_CAP)

        multiplier = round(multiplier, 4)
        final_price = round(base * multiplier, 2)
        strategy = self.strategy_for(multiplier)

        result = MarketResult(
            base_price_per_kg=round(base, 2),
            multiplier=multiplier,
            final_price_per_kg=final_price,
            strategy=strategy,
            trend=trend,
            demand=demand,
            supply=supply,
            freshness_adjustment=round(freshness_adj, 4),
            demand_adjustment=round(demand_adj, 4),
            urgency_adjustment=round(urgency_adj, 4),
            bulk_discount_applied=bulk,
            emergency_cap_applied=emergency,
            price_source=price_source,
            fallback_used=price_source not in (PriceSource.LIVE,),
        )
        return result.model_copy(update={
            "recommendations": tuple(self._recommendations(request, freshness, result)),
        })

    @staticmethod
    def strategy_for(multiplier: float) -> PriceStrategy:
        if multiplier > 1.05:
            return PriceStrategy.PREMIUM
        if multiplier >= 0.95:
            return PriceStrategy.MARKET_RATE
        if multiplier >= 0.70:
            return PriceStrategy.DISCOUNT
        return PriceStrategy.CLEARANCE

    def _trend(self, snapshot: MarketSnapshot) -> TrendDirection:
        previous = snapshot.previous_price_per_kg
        if previous:
            change = (snapshot.price_per_kg - previous) / previous
            if change > self.TREND_BAND:
                return TrendDirection.RISING
            if change < -self.TREND_BAND:
                return TrendDirection.FALLING
            return TrendDirection.STABLE

        order = [MarketLevel.LOW, MarketLevel.MEDIUM, MarketLevel.HIGH]
        balance = order.index(snapshot.demand) - order.index(snapshot.supply)
        if balance > 0:
            return TrendDirection.RISING
        if balance < 0:
            return TrendDirection.FALLING
        return TrendDirection.STABLE

    def _recommendations(
        self,
        request: AssessmentRequest,
        freshness: FreshnessResult,
        result: MarketResult,
    ) -> list[Recommendation]:
        price = result.final_price_per_kg
        recs: list[tuple[Severity, str]] = []

        if result.strategy == PriceStrategy.PREMIUM:
            recs.append((Severity.LOW, f"Fresh stock commands a premium: list at ₹{price:.2f}/kg"))
        elif result.strategy == PriceStrategy.MARKET_RATE:
            recs.append((Severity.LOW, f"Sell at market rate: ₹{price:.2f}/kg"))
        elif result.strategy == PriceStrategy.DISCOUNT:
            recs.append((Severity.MEDIUM, f"Offer a discount to move stock quickly: list at ₹{price:.2f}/kg"))
        else:
            recs.append((Severity.CRITICAL, f"Emergency sale: clear stock at ₹{price:.2f}/kg immediately"))

        if result.bulk_discount_applied:
            recs.append((
                Severity.LOW,
                f"Bulk lot ({request.quantity_kg:g} kg): {self.settings.bulk_discount:.0%} volume discount applied",
            ))

        if (
            result.trend == TrendDirection.RISING
            and request.urgency == Urgency.LOW
            and freshness.level in (FreshnessLevel.EXCELLENT, FreshnessLevel.GOOD)
        ):
            recs.append((Severity.LOW, "Prices are rising; holding for a few days may fetch more"))

        if result.fallback_used:
            source = {
                PriceSource.LAST_KNOWN: "the last known mandi rate",
                PriceSource.REFERENCE: "the crop's reference rate",
            }.get(result.price_source, "a default rate")
            recs.append((Severity.LOW, f"Live market data unavailable; price based on {source}"))

        return [Recommendation(severity=s, message=m, stage=StageName.MARKET) for s, m in recs]


def market_crop_name(ctx: StageContext) -> str:
    """Catalog name for known crops so aliases query the canonical commodity."""
    if ctx.profile.crop_id == GENERIC_CROP_ID:
        return ctx.request.crop
    return ctx.profile.display_name or ctx.profile.crop_id


async def run_market_stage(ctx: StageContext, prior: PriorResults) -> StageOutcome:
    """Price the lot, falling back to last-known or reference prices."""
    freshness = prior.require_freshness()
    request = ctx.request
    source = ctx.market_source
    pricer = MarketPricer(ctx.settings)
    crop = market_crop_name(ctx)

    reason = None
    try:
        snapshot = await fetch_external(ctx, source.name, source.lookup(crop, request.location))
        if snapshot is None:
            reason = f"{source.name}: no snapshot"
    except StageUnavailable as e:
        snapshot = None
        reason = str(e)

    if snapshot is not None:
        return StageOutcome(result=pricer.price(request, ctx.profile, freshness, snapshot))

    logger.warning(f"Market data unavailable for {crop}@{request.location} ({reason}), falling back")

    last_known = None
    try:
        last_known = await fetch_external(
            ctx, source.name, source.last_known_price(crop, request.location)
        )
    except StageUnavailable as e:
        logger.debug(f"No last-known price: {e}")

    if last_known is not None and last_known > 0:
        result = pricer.price(
            request, ctx.profile, freshness, None,
            base_price=last_known, price_source=PriceSource.LAST_KNOWN,
        )
    else:
        result = pricer.price(
            request, ctx.profile, freshness, None,
            price_source=PriceSource.REFERENCE,
        )

    return StageOutcome(result=result, fallback_used=True, fallback_reason=reason)

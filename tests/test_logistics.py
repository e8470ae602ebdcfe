"""
Logistics planning tests.

Run with: uv run pytest tests/test_logistics.py -v
"""

import pytest

from src.agents.base_agent import PriorResults
from src.agents.freshness_agent import score_freshness
from src.agents.logistics_agent import (
    SCORE_WEIGHTS,
    ineligibility_reason,
    is_premium_delivery,
    rank_drivers,
    run_logistics_stage,
    select_delivery_mode,
)
from src.models.enums import DeliveryMode, DriverStatus, Urgency, VehicleType
from src.resilience.errors import StageUnavailable
from src.tools.driver_registry import (
    DriverCandidate,
    DriverRecord,
    DriverRegistry,
    InMemoryDriverRegistry,
    haversine_km,
)
from tests.conftest import make_context, make_request


def candidate(driver_id="D1", capacity=200, rating=4.5, vehicle=VehicleType.REEFER_TRUCK,
              distance=10.0, status=DriverStatus.AVAILABLE, eta=0.0):
    return DriverCandidate(
        driver_id=driver_id,
        capacity_kg=capacity,
        rating=rating,
        vehicle_type=vehicle,
        status=status,
        distance_km=distance,
        pickup_eta_hours=eta,
    )


class DownRegistry(DriverRegistry):
    name = "down_registry"

    async def query(self, location, min_capacity_kg, mode):
        raise StageUnavailable(self.name, "timeout")


class TestDeliveryMode:
    @pytest.mark.parametrize("score,mode", [
        (0, DeliveryMode.COLD_CHAIN),
        (39.99, DeliveryMode.COLD_CHAIN),
        (40, DeliveryMode.REFRIGERATED),
        (70, DeliveryMode.REFRIGERATED),
        (70.01, DeliveryMode.STANDARD),
        (100, DeliveryMode.STANDARD),
    ])
    def test_thresholds(self, settings, score, mode):
        assert select_delivery_mode(score, 30.0, settings) == mode

    def test_high_value_never_standard(self, settings):
        assert select_delivery_mode(95, 120.0, settings) == DeliveryMode.REFRIGERATED
        assert select_delivery_mode(95, 100.0, settings) == DeliveryMode.STANDARD
        assert select_delivery_mode(10, 120.0, settings) == DeliveryMode.COLD_CHAIN

    def test_cost_multipliers(self):
        assert DeliveryMode.COLD_CHAIN.cost_multiplier == 1.5
        assert DeliveryMode.REFRIGERATED.cost_multiplier == 1.3
        assert DeliveryMode.STANDARD.cost_multiplier == 1.0

    def test_premium_delivery(self):
        assert is_premium_delivery(DeliveryMode.COLD_CHAIN, Urgency.LOW)
        assert is_premium_delivery(DeliveryMode.STANDARD, Urgency.HIGH)
        assert not is_premium_delivery(DeliveryMode.REFRIGERATED, Urgency.MEDIUM)


class TestEligibility:
    def test_capacity_buffer(self, settings):
        required = 100 * settings.capacity_buffer
        assert ineligibility_reason(candidate(capacity=109), required, False, settings) == "capacity"
        assert ineligibility_reason(candidate(capacity=110.5), required, False, settings) is None

    def test_rating_only_matters_for_premium(self, settings):
        low_rated = candidate(rating=2.5)
        assert ineligibility_reason(low_rated, 110, True, settings) == "rating"
        assert ineligibility_reason(low_rated, 110, False, settings) is None

    def test_distance_limit_and_unknown_distance(self, settings):
        assert ineligibility_reason(candidate(distance=501), 110, False, settings) == "distance"
        assert ineligibility_reason(candidate(distance=None), 110, False, settings) == "distance_unknown"

    def test_busy_driver(self, settings):
        busy = candidate(status=DriverStatus.BUSY)
        assert ineligibility_reason(busy, 110, False, settings) == "not_available"


class TestRanking:
    def test_weights_leave_proximity_unweighted(self):
        assert SCORE_WEIGHTS["proximity"] == 0.0
        assert sum(SCORE_WEIGHTS.values()) == pytest.approx(0.80)

    def test_vehicle_match_orders_drivers(self, settings):
        request = make_request(quantity_kg=100)
        drivers, eligible = rank_drivers(
            [
                candidate("OPEN", vehicle=VehicleType.OPEN_TRUCK),
                candidate("REEFER", vehicle=VehicleType.REEFER_TRUCK),
            ],
            request, DeliveryMode.COLD_CHAIN, settings,
        )

        assert eligible == 2
        assert [d.driver_id for d in drivers] == ["REEFER", "OPEN"]
        assert drivers[0].score > drivers[1].score

    def test_ties_break_on_capacity_then_id(self, settings):
        request = make_request(quantity_kg=10)
        drivers, _ = rank_drivers(
            [
                candidate("B", capacity=100),
                candidate("A", capacity=100),
                candidate("C", capacity=100),
            ],
            request, DeliveryMode.COLD_CHAIN, settings,
        )
        assert [d.driver_id for d in drivers] == ["A", "B", "C"]

    def test_at_most_five_returned(self, settings):
        request = make_request(quantity_kg=10)
        candidates = [candidate(f"D{i}") for i in range(9)]
        drivers, eligible = rank_drivers(candidates, request, DeliveryMode.STANDARD, settings)

        assert eligible == 9
        assert len(drivers) == settings.max_driver_candidates

    def test_scores_in_unit_range(self, settings):
        request = make_request(quantity_kg=50)
        drivers, _ = rank_drivers(
            [candidate("X", capacity=60, rating=5.0, eta=0.0)],
            request, DeliveryMode.COLD_CHAIN, settings,
        )
        assert 0.0 <= drivers[0].score <= 1.0
        assert drivers[0].breakdown.capacity_match == pytest.approx(55 / 60, abs=1e-4)


class TestDriverRegistry:
    def test_haversine(self):
        # Mumbai to Pune is roughly 120 km as the crow flies
        assert haversine_km((19.076, 72.877), (18.520, 73.856)) == pytest.approx(120, abs=10)

    @pytest.mark.asyncio
    async def test_in_memory_query_filters_capacity(self):
        registry = InMemoryDriverRegistry([
            DriverRecord(driver_id="small", capacity_kg=50, rating=4, vehicle_type=VehicleType.MINI_TRUCK, location="Pune"),
            DriverRecord(driver_id="big", capacity_kg=500, rating=4, vehicle_type=VehicleType.OPEN_TRUCK, location="Pune"),
        ])

        candidates = await registry.query("Mumbai", 110, DeliveryMode.STANDARD)

        assert [c.driver_id for c in candidates] == ["big"]
        assert candidates[0].distance_km is not None

    @pytest.mark.asyncio
    async def test_extra_locations_resolve_driver_origin(self):
        registry = InMemoryDriverRegistry(
            [DriverRecord(
                driver_id="new", capacity_kg=300, rating=4.1,
                vehicle_type=VehicleType.INSULATED_VAN, location="Sangli",
            )],
            locations={"Sangli": (16.852, 74.581)},
        )

        candidates = await registry.query("Sangli", 110, DeliveryMode.REFRIGERATED)

        assert [c.driver_id for c in candidates] == ["new"]
        assert candidates[0].distance_km == 0.0

    @pytest.mark.asyncio
    async def test_unknown_target_has_unknown_distance(self):
        registry = InMemoryDriverRegistry([
            DriverRecord(driver_id="d", capacity_kg=500, rating=4, vehicle_type=VehicleType.OPEN_TRUCK, location="Pune"),
        ])
        candidates = await registry.query("Atlantis", 110, DeliveryMode.STANDARD)
        assert candidates[0].distance_km is None


class TestLogisticsStage:
    @pytest.mark.asyncio
    async def test_sample_fleet_for_mumbai(self, settings, catalog):
        ctx = make_context(settings, catalog)
        freshness = score_freshness(ctx.request, ctx.profile)

        outcome = await run_logistics_stage(ctx, PriorResults(freshness=freshness))
        result = outcome.result

        assert result.delivery_mode == DeliveryMode.STANDARD
        assert result.cost_multiplier == 1.0
        assert result.eligible_count >= settings.min_driver_candidates
        assert result.insufficient_supply is False
        assert all(d.capacity_kg >= 110 for d in result.drivers)
        assert all(d.distance_km <= 500 for d in result.drivers)

    @pytest.mark.asyncio
    async def test_sparse_fleet_flags_insufficient_supply(self, settings, catalog):
        registry = InMemoryDriverRegistry([
            DriverRecord(driver_id="only", capacity_kg=500, rating=4.5,
                         vehicle_type=VehicleType.REEFER_TRUCK, location="Mumbai"),
        ])
        ctx = make_context(settings, catalog, driver_registry=registry)
        freshness = score_freshness(ctx.request, ctx.profile)

        outcome = await run_logistics_stage(ctx, PriorResults(freshness=freshness))

        assert outcome.result.eligible_count == 1
        assert outcome.result.insufficient_supply is True
        assert outcome.fallback_used is False

    @pytest.mark.asyncio
    async def test_registry_down_yields_no_drivers(self, settings, catalog):
        ctx = make_context(settings, catalog, driver_registry=DownRegistry())
        freshness = score_freshness(ctx.request, ctx.profile)

        outcome = await run_logistics_stage(ctx, PriorResults(freshness=freshness))

        assert outcome.fallback_used is True
        assert outcome.result.drivers == ()
        assert outcome.result.delivery_mode == DeliveryMode.STANDARD

    @pytest.mark.asyncio
    async def test_critical_produce_goes_cold_chain(self, settings, catalog):
        request = make_request(temperature_c=35, humidity_pct=90, age_hours=48)
        ctx = make_context(settings, catalog, request=request)
        freshness = score_freshness(request, ctx.profile)

        outcome = await run_logistics_stage(ctx, PriorResults(freshness=freshness))

        assert outcome.result.delivery_mode == DeliveryMode.COLD_CHAIN
        assert outcome.result.premium_delivery is True
        assert all(d.rating >= 3.0 for d in outcome.result.drivers)

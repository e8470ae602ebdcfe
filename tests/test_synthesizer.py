"""
Synthesizer tests.

Run with: uv run pytest tests/test_synthesizer.py -v
"""

import pytest

from src.agents.freshness_agent import score_freshness
from src.agents.logistics_agent import build_logistics_result
from src.agents.synthesizer import merge_recommendations, synthesize
from src.agents.weather_agent import assess_weather
from src.models.assessment import MarketResult, Recommendation, StageFlag
from src.models.enums import (
    DeliveryMode,
    ForecastOrigin,
    FreshnessLevel,
    PriceSource,
    PriceStrategy,
    RunStatus,
    Severity,
    StageName,
    StageStatus,
    VehicleType,
)
from src.tools.driver_registry import DriverCandidate
from src.tools.weather import ForecastPoint
from tests.conftest import make_request


def ok_flags(*stages):
    return {stage: StageFlag(status=StageStatus.SUCCESS, attempts=1) for stage in stages}


def rec(severity, message, stage):
    return Recommendation(severity=severity, message=message, stage=stage)


class TestMergeRecommendations:
    def test_deduplicates_keeping_most_severe(self):
        merged = merge_recommendations([
            (rec(Severity.MEDIUM, "Use cold-chain transport", StageName.FRESHNESS),),
            (rec(Severity.HIGH, "Use cold-chain transport", StageName.LOGISTICS),),
        ])
        assert len(merged) == 1
        assert merged[0].severity == Severity.HIGH

    def test_weather_and_logistics_urgent_items_come_first(self):
        merged = merge_recommendations([
            (rec(Severity.CRITICAL, "sell now", StageName.FRESHNESS),),
            (rec(Severity.HIGH, "storm coming", StageName.WEATHER),),
            (rec(Severity.LOW, "price ok", StageName.MARKET),),
        ])
        assert [r.message for r in merged] == ["storm coming", "sell now", "price ok"]

    def test_ordered_by_severity(self):
        merged = merge_recommendations([
            (rec(Severity.LOW, "a", StageName.MARKET), rec(Severity.MEDIUM, "b", StageName.MARKET)),
            (rec(Severity.HIGH, "c", StageName.FRESHNESS),),
        ])
        assert [r.severity for r in merged] == [Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class TestSynthesize:
    def test_missing_stages_get_neutral_defaults(self, settings, catalog):
        request = make_request()
        profile = catalog.get("tomato")
        freshness = score_freshness(request, profile)

        final = synthesize(
            request, profile, settings,
            freshness=freshness, market=None, logistics=None, weather=None,
            flags=ok_flags(StageName.FRESHNESS),
        )

        assert final.status == RunStatus.DEGRADED
        assert final.partial is True
        assert final.adjusted_score == freshness.score
        assert final.market.multiplier == 1.0
        assert final.market.strategy == PriceStrategy.MARKET_RATE
        assert final.market.price_source == PriceSource.DEFAULT
        assert final.weather.degradation_delta == 0.0
        assert final.logistics.drivers == ()
        assert final.confidence == pytest.approx(settings.default_confidence ** 3)
        for stage in (StageName.MARKET, StageName.LOGISTICS, StageName.WEATHER):
            assert final.stage_flags[stage].defaulted is True

    def test_weather_delta_lowers_score(self, settings, catalog):
        request = make_request()
        profile = catalog.get("tomato")
        freshness = score_freshness(request, profile)
        storm = [ForecastPoint(temperature_c=30, humidity_pct=95, precipitation_mm=15, wind_speed_kmh=70)] * 4
        weather = assess_weather(storm, request.humidity_pct, profile.weather_sensitivity,
                                 ForecastOrigin.LIVE, 24, request.location)

        final = synthesize(
            request, profile, settings,
            freshness=freshness, market=None, logistics=None, weather=weather,
            flags=ok_flags(StageName.FRESHNESS, StageName.WEATHER),
        )

        assert final.adjusted_score == pytest.approx(max(0.0, freshness.score - weather.degradation_delta))
        assert final.adjusted_level != FreshnessLevel.EXCELLENT
        assert final.recommendations[0].stage == StageName.WEATHER

    def test_adjusted_score_floors_at_zero(self, settings, catalog):
        request = make_request(temperature_c=35, humidity_pct=90, age_hours=48)
        profile = catalog.get("tomato")
        freshness = score_freshness(request, profile)
        storm = [ForecastPoint(temperature_c=30, humidity_pct=20, precipitation_mm=20, wind_speed_kmh=80)] * 4
        weather = assess_weather(storm, request.humidity_pct, profile.weather_sensitivity,
                                 ForecastOrigin.LIVE, 24, request.location)

        final = synthesize(
            request, profile, settings,
            freshness=freshness, market=None, logistics=None, weather=weather,
            flags=ok_flags(StageName.FRESHNESS, StageName.WEATHER),
        )

        assert final.adjusted_score == 0.0
        assert final.adjusted_level == FreshnessLevel.CRITICAL

    def test_high_market_price_upgrades_standard_delivery(self, settings, catalog):
        request = make_request()
        profile = catalog.get("tomato")
        freshness = score_freshness(request, profile)
        market = MarketResult(
            base_price_per_kg=95.0,
            multiplier=1.18,
            final_price_per_kg=112.1,
            strategy=PriceStrategy.PREMIUM,
        )
        candidates = [
            DriverCandidate(driver_id="MINI", capacity_kg=120, rating=4.5,
                            vehicle_type=VehicleType.MINI_TRUCK, distance_km=5.0),
            DriverCandidate(driver_id="VAN", capacity_kg=300, rating=4.0,
                            vehicle_type=VehicleType.INSULATED_VAN, distance_km=5.0),
        ]
        logistics = build_logistics_result(request, DeliveryMode.STANDARD, candidates, settings)
        assert logistics.drivers[0].driver_id == "MINI"

        final = synthesize(
            request, profile, settings,
            freshness=freshness, market=market, logistics=logistics, weather=None,
            flags=ok_flags(StageName.FRESHNESS, StageName.MARKET, StageName.LOGISTICS),
            driver_candidates=candidates,
        )

        assert final.delivery_mode == DeliveryMode.REFRIGERATED
        assert final.logistics.delivery_mode == DeliveryMode.REFRIGERATED
        assert final.logistics.cost_multiplier == 1.3
        assert final.logistics.drivers[0].driver_id == "VAN"
        assert any("High-value" in r.message for r in final.recommendations)

    def test_fallback_lowers_confidence(self, settings, catalog):
        request = make_request()
        profile = catalog.get("tomato")
        freshness = score_freshness(request, profile)
        flags = ok_flags(StageName.FRESHNESS)
        flags[StageName.MARKET] = StageFlag(status=StageStatus.FALLBACK, attempts=1, fallback_used=True)

        final = synthesize(
            request, profile, settings,
            freshness=freshness,
            market=MarketResult(
                base_price_per_kg=30.0, multiplier=1.18, final_price_per_kg=35.4,
                strategy=PriceStrategy.PREMIUM, price_source=PriceSource.REFERENCE,
                fallback_used=True,
            ),
            logistics=None, weather=None, flags=flags,
        )

        expected = settings.fallback_confidence * settings.default_confidence ** 2
        assert final.confidence == pytest.approx(expected)
        assert StageName.MARKET in final.fallback_stages

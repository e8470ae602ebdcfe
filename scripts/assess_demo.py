"""
Demo script for the Assessment Pipeline
=======================================
Runs a few assessments end to end on mock data.

Usage:
    uv run python scripts/assess_demo.py
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


SAMPLES = [
    {
        "crop": "tomato", "temperature_c": 22, "humidity_pct": 65,
        "age_hours": 2, "quantity_kg": 100, "location": "Mumbai",
    },
    {
        "crop": "tomato", "temperature_c": 35, "humidity_pct": 90,
        "age_hours": 48, "quantity_kg": 100, "location": "Mumbai", "urgency": "HIGH",
    },
    {
        "crop": "grapes", "temperature_c": 2, "humidity_pct": 92,
        "age_hours": 6, "quantity_kg": 250, "location": "Nashik", "urgency": "LOW",
    },
    {
        "crop": "", "temperature_c": 22, "humidity_pct": 120, "location": "Pune",
    },
]


async def run_demo():
    from src.config import get_settings
    from src.models import AssessmentError
    from src.orchestrator import AssessmentOrchestrator
    from src.production import PipelineMetrics, setup_logging

    setup_logging(get_settings().log_level)
    metrics = PipelineMetrics()
    orchestrator = AssessmentOrchestrator(metrics=metrics)

    print("\n" + "=" * 60)
    print("    🌾 CropFresh AI - Crop Assessment Demo")
    print("=" * 60 + "\n")

    for sample in SAMPLES:
        result = await orchestrator.assess(sample)
        print(f"📦 {sample['crop'] or '<missing crop>'} @ {sample['location']}")
        print("-" * 40)

        if isinstance(result, AssessmentError):
            print(f"  ❌ {result.kind.value}: {result.reason}")
            for detail in result.details:
                print(f"     - {detail}")
            print()
            continue

        print(f"  Status: {result.status.value} (confidence {result.confidence:.0%})")
        print(f"  Freshness: {result.freshness.score:.1f} -> {result.adjusted_score:.1f} ({result.adjusted_level.value})")
        print(f"  Price: ₹{result.market.final_price_per_kg:.2f}/kg ({result.market.strategy.value}, x{result.market.multiplier:g})")
        print(f"  Delivery: {result.delivery_mode.value}, {len(result.logistics.drivers)} driver(s)")
        print(f"  Weather risk: {result.weather.risk_level.value} (-{result.weather.degradation_delta:g})")
        for rec in result.recommendations[:4]:
            print(f"  • [{rec.severity.value}] {rec.message}")
        print()

    print("📊 Metrics")
    print("-" * 40)
    summary = metrics.summary()
    print(f"  Runs: {summary['runs']}")
    for stage, values in summary["stages"].items():
        print(f"  {stage}: {values['avg_latency_ms']}ms avg, {values['fallbacks']} fallback(s)")


if __name__ == "__main__":
    asyncio.run(run_demo())

"""
Agents Module
=============
Assessment stages for CropFresh AI.

Provides:
- Freshness: produce condition score from field measurements
- Market: freshness-adjusted pricing
- Logistics: delivery mode and driver ranking
- Weather: forecast-based degradation
- Synthesizer: merges stage results into a final assessment

Author: CropFresh AI Team
Version: 3.0.0
"""

from src.agents.base_agent import PriorResults, StageContext, StageHandler, StageOutcome
from src.agents.freshness_agent import run_freshness_stage, score_freshness
from src.agents.logistics_agent import rank_drivers, run_logistics_stage, select_delivery_mode
from src.agents.pricing_agent import MarketPricer, run_market_stage
from src.agents.registry import PHASE_A, PHASE_B, STAGE_HANDLERS, build_dispatch_table
from src.agents.synthesizer import synthesize
from src.agents.weather_agent import assess_weather, run_weather_stage

__all__ = [
    # Contract
    "StageContext",
    "PriorResults",
    "StageOutcome",
    "StageHandler",

    # Stages
    "score_freshness",
    "run_freshness_stage",
    "MarketPricer",
    "run_market_stage",
    "select_delivery_mode",
    "rank_drivers",
    "run_logistics_stage",
    "assess_weather",
    "run_weather_stage",

    # Composition
    "STAGE_HANDLERS",
    "PHASE_A",
    "PHASE_B",
    "build_dispatch_table",
    "synthesize",
]

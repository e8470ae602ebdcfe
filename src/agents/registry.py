"""
Stage Registry
==============
Dispatch table from stage name to stage function.

The dependency graph is fixed:
- group A: FRESHNESS, WEATHER (independent)
- group B: MARKET, LOGISTICS (each needs the freshness result)
"""

from types import MappingProxyType
from typing import Mapping, Optional

from src.agents.base_agent import StageHandler
from src.agents.freshness_agent import run_freshness_stage
from src.agents.logistics_agent import run_logistics_stage
from src.agents.pricing_agent import run_market_stage
from src.agents.weather_agent import run_weather_stage
from src.models.enums import StageName


STAGE_HANDLERS: Mapping[StageName, StageHandler] = MappingProxyType({
    StageName.FRESHNESS: run_freshness_stage,
    StageName.WEATHER: run_weather_stage,
    StageName.MARKET: run_market_stage,
    StageName.LOGISTICS: run_logistics_stage,
})

PHASE_A = (StageName.FRESHNESS, StageName.WEATHER)
PHASE_B = (StageName.MARKET, StageName.LOGISTICS)


def build_dispatch_table(
    overrides: Optional[Mapping[StageName, StageHandler]] = None,
) -> Mapping[StageName, StageHandler]:
    """Default handlers with optional per-stage replacements."""
    table = dict(STAGE_HANDLERS)
    table.update(overrides or {})
    return MappingProxyType(table)

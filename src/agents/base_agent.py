"""
Stage Contract
==============
Shared types for the four assessment stages.

Every stage is an async function with the same signature:

    async def run_x_stage(ctx: StageContext, prior: PriorResults) -> StageOutcome

and is looked up by StageName in the dispatch table (see registry.py).
Stages never raise for missing collaborator data: they fall back and mark
the outcome. Anything they do raise is an execution error that the
orchestrator retries once.

Author: CropFresh AI Team
Version: 3.0.0
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar, Union

from pydantic import BaseModel

from src.catalog.crop_profiles import CropProfile
from src.config.settings import Settings
from src.models.assessment import (
    AssessmentRequest,
    FreshnessResult,
    LogisticsResult,
    MarketResult,
    WeatherResult,
)
from src.resilience.errors import StageUnavailable
from src.tools.agmarknet import MarketDataSource
from src.tools.driver_registry import DriverRegistry
from src.tools.weather import ForecastSource

T = TypeVar("T")

StageResult = Union[FreshnessResult, MarketResult, LogisticsResult, WeatherResult]


@dataclass(frozen=True)
class StageContext:
    """Read-only inputs shared by all stages of one run."""

    request: AssessmentRequest
    profile: CropProfile
    settings: Settings
    market_source: MarketDataSource
    forecast_source: ForecastSource
    driver_registry: DriverRegistry
    month: int


@dataclass(frozen=True)
class PriorResults:
    """Results of earlier stages visible to a later one."""

    freshness: Optional[FreshnessResult] = None

    def require_freshness(self) -> FreshnessResult:
        if self.freshness is None:
            raise RuntimeError("freshness result required before this stage")
        return self.freshness


@dataclass(frozen=True)
class StageOutcome:
    """A stage's result and whether it had to fall back."""

    result: BaseModel
    fallback_used: bool = False
    fallback_reason: Optional[str] = None
    # Raw registry candidates, kept so drivers can be re-ranked for another mode
    candidates: tuple = ()


StageHandler = Callable[[StageContext, PriorResults], Awaitable[StageOutcome]]


async def fetch_external(
    ctx: StageContext,
    source_name: str,
    call: Awaitable[T],
) -> T:
    """
    Await a collaborator call bounded by the per-stage timeout.

    Raises:
        StageUnavailable: On timeout or when the collaborator reports it
    """
    try:
        return await asyncio.wait_for(call, timeout=ctx.settings.collaborator_timeout_sec)
    except asyncio.TimeoutError as e:
        raise StageUnavailable(source_name, "timed out") from e


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))

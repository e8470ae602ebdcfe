"""
Assessment Orchestrator
=======================
Runs the crop assessment workflow for one measurement.

Flow:
1. Validate the request (invalid -> FAILED, no stage runs)
2. Phase A: Freshness and Weather concurrently
3. Phase B (once Freshness is done): Market and Logistics concurrently
4. Synthesize from whatever finished before the deadline

A stage that raises is retried once while deadline budget remains; a
second failure leaves the stage unavailable. Freshness is mandatory: if it
fails the run fails. Every other stage degrades to a neutral default.

Author: CropFresh AI Team
Version: 1.0.0
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from loguru import logger
from pydantic import ValidationError

from src.agents.base_agent import (
    PriorResults,
    StageContext,
    StageHandler,
    StageOutcome,
)
from src.agents.registry import PHASE_A, PHASE_B, build_dispatch_table
from src.agents.synthesizer import synthesize
from src.catalog.crop_profiles import CropCatalog, get_crop_catalog, load_catalog
from src.config.settings import Settings, get_settings
from src.models.assessment import AssessmentError, AssessmentRequest, FinalAssessment
from src.models.enums import ErrorKind, RunStatus, StageName, StageStatus
from src.orchestrator.run_state import WorkflowRun
from src.production.observability import PipelineMetrics, stage_span
from src.resilience.errors import StageExecutionError
from src.tools.agmarknet import AgmarknetMarketSource, MarketDataSource, StaticMarketSource
from src.tools.driver_registry import DriverRegistry, InMemoryDriverRegistry, sample_fleet
from src.tools.weather import ForecastSource, OpenWeatherForecastSource, StaticForecastSource


AssessmentOutcome = Union[FinalAssessment, AssessmentError]

MAX_ATTEMPTS = 2  # first try + one retry


class AssessmentOrchestrator:
    """
    Drives the four assessment stages for each request.

    Usage:
        orchestrator = AssessmentOrchestrator(
            market_source=StaticMarketSource.with_mock_prices(),
            forecast_source=StaticForecastSource.clear_skies(),
            driver_registry=InMemoryDriverRegistry(sample_fleet()),
        )
        result = await orchestrator.assess({
            "crop": "tomato", "temperature_c": 22, "humidity_pct": 65,
            "age_hours": 2, "quantity_kg": 100, "location": "Mumbai",
        })
    """

    def __init__(
        self,
        market_source: Optional[MarketDataSource] = None,
        forecast_source: Optional[ForecastSource] = None,
        driver_registry: Optional[DriverRegistry] = None,
        catalog: Optional[CropCatalog] = None,
        settings: Optional[Settings] = None,
        metrics: Optional[PipelineMetrics] = None,
        handlers: Optional[Mapping[StageName, StageHandler]] = None,
        month_provider: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            market_source: Market snapshot collaborator
            forecast_source: Forecast collaborator
            driver_registry: Driver registry collaborator
            catalog: Crop profiles (built-in catalog if omitted)
            settings: Pipeline settings (environment if omitted)
            metrics: Metrics context updated at stage boundaries
            handlers: Per-stage handler replacements
            month_provider: Calendar month for seasonal baselines
        """
        self.settings = settings or get_settings()

        if catalog is not None:
            self.catalog = catalog
        elif settings is None:
            self.catalog = get_crop_catalog()
        else:
            self.catalog = load_catalog(self.settings.crop_catalog_path)

        self.market_source = market_source or self._default_market_source()
        self.forecast_source = forecast_source or self._default_forecast_source()
        self.driver_registry = driver_registry or self._default_driver_registry()

        self.metrics = metrics if metrics is not None else PipelineMetrics()
        self.handlers = build_dispatch_table(handlers)
        self._month = month_provider or (lambda: datetime.now().month)

        logger.info(
            "AssessmentOrchestrator ready (market={}, forecast={}, drivers={}, deadline={}ms)",
            self.market_source.name,
            self.forecast_source.name,
            self.driver_registry.name,
            self.settings.deadline_ms,
        )

    def _default_market_source(self) -> MarketDataSource:
        if self.settings.use_mock_data:
            return StaticMarketSource.with_mock_prices()
        return AgmarknetMarketSource(api_key=self.settings.agmarknet_api_key)

    def _default_forecast_source(self) -> ForecastSource:
        if self.settings.use_mock_data:
            return StaticForecastSource.clear_skies()
        return OpenWeatherForecastSource(api_key=self.settings.weather_api_key)

    def _default_driver_registry(self) -> DriverRegistry:
        if self.settings.use_mock_data:
            return InMemoryDriverRegistry(sample_fleet())
        logger.warning("No driver registry configured, logistics will find no drivers")
        return InMemoryDriverRegistry()

    # ═══════════════════════════════════════════════════════════════
    # Public API
    # ═══════════════════════════════════════════════════════════════

    async def assess(self, request: Union[AssessmentRequest, Mapping[str, Any]]) -> AssessmentOutcome:
        """
        Assess one measurement.

        Returns:
            FinalAssessment (COMPLETED or DEGRADED) or AssessmentError (FAILED)
        """
        _, outcome = await self.execute(request)
        return outcome

    def assess_sync(self, request: Union[AssessmentRequest, Mapping[str, Any]]) -> AssessmentOutcome:
        """Blocking wrapper around assess() for callers without an event loop."""
        return asyncio.run(self.assess(request))

    async def execute(
        self,
        request: Union[AssessmentRequest, Mapping[str, Any]],
    ) -> tuple[WorkflowRun, AssessmentOutcome]:
        """Run the workflow and return its run state along with the outcome."""
        run = WorkflowRun()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.deadline_sec
        started = time.perf_counter()

        try:
            req = (
                request if isinstance(request, AssessmentRequest)
                else AssessmentRequest.model_validate(request)
            )
        except ValidationError as e:
            details = tuple(
                f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            logger.warning(f"[{run.run_id}] Rejected invalid request: {'; '.join(details)}")
            return run, self._fail(run, started, AssessmentError(
                kind=ErrorKind.VALIDATION,
                reason="Invalid assessment request",
                details=details,
            ))

        run.crop, run.location = req.crop, req.location
        run.status = RunStatus.RUNNING
        logger.info(f"[{run.run_id}] Assessing {req.crop} @ {req.location} ({req.quantity_kg:g} kg, {req.urgency.value})")

        ctx = StageContext(
            request=req,
            profile=self.catalog.get(req.crop),
            settings=self.settings,
            market_source=self.market_source,
            forecast_source=self.forecast_source,
            driver_registry=self.driver_registry,
            month=self._month(),
        )

        tasks: dict[StageName, asyncio.Task] = {}
        try:
            # Phase A
            for stage in PHASE_A:
                tasks[stage] = asyncio.create_task(
                    self._run_stage(run, stage, ctx, PriorResults(), deadline)
                )

            freshness_task = tasks[StageName.FRESHNESS]
            await asyncio.wait({freshness_task}, timeout=self._remaining(loop, deadline))

            if not freshness_task.done():
                run.timed_out = True
                await self._cancel(run, tasks)
                return run, self._fail(run, started, AssessmentError(
                    kind=ErrorKind.DEADLINE_EXCEEDED,
                    stage=StageName.FRESHNESS,
                    reason="Deadline elapsed before freshness was scored",
                ))

            freshness_outcome = freshness_task.result()
            if freshness_outcome is None:
                await self._cancel(run, tasks, StageStatus.CANCELLED, "freshness failed")
                return run, self._fail(run, started, AssessmentError(
                    kind=ErrorKind.STAGE_FAILURE,
                    stage=StageName.FRESHNESS,
                    reason=run.stage_errors.get(StageName.FRESHNESS, "freshness stage failed"),
                ))

            # Phase B
            prior = PriorResults(freshness=freshness_outcome.result)
            for stage in PHASE_B:
                tasks[stage] = asyncio.create_task(
                    self._run_stage(run, stage, ctx, prior, deadline)
                )

            pending = {t for t in tasks.values() if not t.done()}
            if pending:
                _, pending = await asyncio.wait(pending, timeout=self._remaining(loop, deadline))
            if pending:
                run.timed_out = True
                logger.warning(f"[{run.run_id}] Deadline of {self.settings.deadline_ms}ms reached, synthesizing partial result")
                await self._cancel(run, tasks)

        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        outcomes = {
            stage: task.result()
            for stage, task in tasks.items()
            if task.done() and not task.cancelled()
        }
        flags = {
            stage: run.flag(stage, fallback_used=bool(outcomes.get(stage) and outcomes[stage].fallback_used))
            for stage in tasks
        }

        def result_of(stage: StageName):
            outcome = outcomes.get(stage)
            return outcome.result if outcome is not None else None

        logistics_outcome = outcomes.get(StageName.LOGISTICS)
        final = synthesize(
            req,
            ctx.profile,
            self.settings,
            freshness=freshness_outcome.result,
            market=result_of(StageName.MARKET),
            logistics=result_of(StageName.LOGISTICS),
            weather=result_of(StageName.WEATHER),
            driver_candidates=logistics_outcome.candidates if logistics_outcome else (),
            flags=flags,
            timed_out=run.timed_out,
        )

        run.finish(final.status)
        self.metrics.record_run(final.status, (time.perf_counter() - started) * 1000)
        logger.info(
            f"[{run.run_id}] {final.status.value}: score {final.adjusted_score:.1f} "
            f"({final.adjusted_level.value}), confidence {final.confidence:.2f}, "
            f"{final.delivery_mode.value}, {final.market.strategy.value} in {run.elapsed_ms:.0f}ms"
        )
        for reason in final.degraded_reasons:
            logger.debug(f"[{run.run_id}] degraded: {reason}")

        return run, final

    # ═══════════════════════════════════════════════════════════════
    # Stage execution
    # ═══════════════════════════════════════════════════════════════

    async def _run_stage(
        self,
        run: WorkflowRun,
        stage: StageName,
        ctx: StageContext,
        prior: PriorResults,
        deadline: float,
    ) -> Optional[StageOutcome]:
        """
        Run one stage with a single retry on execution errors.

        Returns:
            The stage outcome, or None if the stage failed twice
        """
        handler = self.handlers[stage]
        loop = asyncio.get_running_loop()
        stage_metrics = self.metrics.stage(stage)
        started = time.perf_counter()
        attempts = 0
        last_error: Optional[StageExecutionError] = None

        run.mark(stage, StageStatus.RUNNING)
        try:
            while attempts < MAX_ATTEMPTS:
                attempts += 1
                try:
                    with stage_span(self.metrics, stage, run.run_id):
                        outcome = await handler(ctx, prior)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    last_error = e if isinstance(e, StageExecutionError) else StageExecutionError(
                        stage.value, f"{type(e).__name__}: {e}", e
                    )
                    if attempts >= MAX_ATTEMPTS:
                        break

                    remaining_ms = self._remaining(loop, deadline) * 1000
                    if remaining_ms < max(self.settings.min_retry_budget_ms, 1):
                        logger.warning(f"[{run.run_id}] {stage.value} failed ({last_error.reason}), no time left to retry")
                        break

                    stage_metrics.retries += 1
                    logger.warning(f"[{run.run_id}] {stage.value} failed ({last_error.reason}), retrying")
                    continue

                status = StageStatus.FALLBACK if outcome.fallback_used else StageStatus.SUCCESS
                run.mark(stage, status)
                if outcome.fallback_reason:
                    run.fallback_reasons[stage] = outcome.fallback_reason
                self.metrics.record_stage(stage, status)
                return outcome

            run.mark(stage, StageStatus.FAILED)
            run.stage_errors[stage] = last_error.reason if last_error else "unknown error"
            self.metrics.record_stage(stage, StageStatus.FAILED)
            log = logger.error if stage == StageName.FRESHNESS else logger.warning
            log(f"[{run.run_id}] {stage.value} unavailable after {attempts} attempt(s): {run.stage_errors[stage]}")
            return None

        finally:
            run.stage_attempts[stage] = attempts
            run.stage_elapsed_ms[stage] = round((time.perf_counter() - started) * 1000, 2)

    async def _cancel(
        self,
        run: WorkflowRun,
        tasks: Mapping[StageName, asyncio.Task],
        status: StageStatus = StageStatus.TIMED_OUT,
        reason: str = "deadline exceeded",
    ) -> None:
        """Cancel unfinished stages and mark them with the given status."""
        pending = {stage: task for stage, task in tasks.items() if not task.done()}
        for task in pending.values():
            task.cancel()
        if pending:
            await asyncio.gather(*pending.values(), return_exceptions=True)

        for stage in pending:
            run.mark(stage, status)
            run.stage_errors[stage] = reason
            self.metrics.record_stage(stage, status)
            logger.warning(f"[{run.run_id}] {stage.value} cancelled: {reason}")

    def _fail(self, run: WorkflowRun, started: float, error: AssessmentError) -> AssessmentError:
        run.finish(RunStatus.FAILED)
        self.metrics.record_run(RunStatus.FAILED, (time.perf_counter() - started) * 1000)
        logger.error(f"[{run.run_id}] FAILED ({error.kind.value}): {error.reason}")
        return error

    @staticmethod
    def _remaining(loop: asyncio.AbstractEventLoop, deadline: float) -> float:
        return max(0.0, deadline - loop.time())

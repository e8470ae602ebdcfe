"""
Observability
=============
Logging setup and per-pipeline metrics.

Features:
- Loguru sink configuration
- Stage latency and outcome counters
- Run status counters

Metrics live in a PipelineMetrics object that callers create and hand to
the orchestrator; nothing here is process-global.
"""

import sys
import time
from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from pydantic import BaseModel, Field

from src.models.enums import RunStatus, StageName, StageStatus


class StageMetrics(BaseModel):
    """Counters for one pipeline stage."""
    attempts: int = 0
    successes: int = 0
    fallbacks: int = 0
    failures: int = 0
    retries: int = 0
    timeouts: int = 0
    total_latency_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        completed = self.successes + self.fallbacks + self.failures + self.timeouts
        if completed == 0:
            return 1.0
        return (self.successes + self.fallbacks) / completed

    @property
    def avg_latency_ms(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.total_latency_ms / self.attempts


class PipelineMetrics(BaseModel):
    """Counters for every stage plus run outcomes."""
    stages: dict[StageName, StageMetrics] = Field(
        default_factory=lambda: {name: StageMetrics() for name in StageName}
    )
    runs: dict[RunStatus, int] = Field(default_factory=dict)
    total_run_latency_ms: float = 0.0

    def stage(self, name: StageName) -> StageMetrics:
        return self.stages.setdefault(name, StageMetrics())

    def record_stage(self, name: StageName, status: StageStatus) -> None:
        """Count a stage's terminal status."""
        metrics = self.stage(name)
        if status == StageStatus.SUCCESS:
            metrics.successes += 1
        elif status == StageStatus.FALLBACK:
            metrics.fallbacks += 1
        elif status == StageStatus.TIMED_OUT:
            metrics.timeouts += 1
        elif status == StageStatus.FAILED:
            metrics.failures += 1

    def record_run(self, status: RunStatus, latency_ms: float) -> None:
        self.runs[status] = self.runs.get(status, 0) + 1
        self.total_run_latency_ms += latency_ms

    @property
    def total_runs(self) -> int:
        return sum(self.runs.values())

    def summary(self) -> dict:
        return {
            "runs": {status.value: count for status, count in self.runs.items()},
            "stages": {
                name.value: {
                    "attempts": m.attempts,
                    "success_rate": round(m.success_rate, 3),
                    "avg_latency_ms": round(m.avg_latency_ms, 2),
                    "fallbacks": m.fallbacks,
                    "retries": m.retries,
                    "timeouts": m.timeouts,
                }
                for name, m in self.stages.items()
            },
        }


def setup_logging(level: str = "INFO") -> None:
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan> - <level>{message}</level>",
    )


@contextmanager
def stage_span(metrics: PipelineMetrics, stage: StageName, run_id: str = "") -> Iterator[None]:
    """
    Time one attempt of a stage.

    Usage:
        with stage_span(metrics, StageName.MARKET, run.run_id):
            outcome = await handler(...)
    """
    stage_metrics = metrics.stage(stage)
    stage_metrics.attempts += 1
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        stage_metrics.total_latency_ms += elapsed_ms
        logger.debug(f"[{run_id}] {stage.value} attempt took {elapsed_ms:.1f}ms")

"""
Workflow Run State
==================
Execution context of a single assessment request.

Owned by the orchestrator for one request and discarded once the result is
returned; nothing here is persisted or shared between runs.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.models.assessment import StageFlag
from src.models.enums import RunStatus, StageName, StageStatus


class WorkflowRun(BaseModel):
    """State during one assessment run."""

    # Identifiers
    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    crop: str = ""
    location: str = ""

    status: RunStatus = RunStatus.PENDING

    # Per-stage tracking
    stage_status: dict[StageName, StageStatus] = Field(
        default_factory=lambda: {name: StageStatus.PENDING for name in StageName}
    )
    stage_elapsed_ms: dict[StageName, float] = Field(default_factory=dict)
    stage_attempts: dict[StageName, int] = Field(default_factory=dict)
    stage_errors: dict[StageName, str] = Field(default_factory=dict)
    fallback_reasons: dict[StageName, str] = Field(default_factory=dict)

    timed_out: bool = False

    # Timing
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    def mark(self, stage: StageName, status: StageStatus) -> None:
        self.stage_status[stage] = status

    def finish(self, status: RunStatus) -> None:
        self.status = status
        self.end_time = datetime.now()

    @property
    def elapsed_ms(self) -> float:
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds() * 1000

    def flag(self, stage: StageName, fallback_used: bool = False) -> StageFlag:
        status = self.stage_status[stage]
        return StageFlag(
            status=status,
            attempts=self.stage_attempts.get(stage, 0),
            fallback_used=fallback_used,
            fallback_reason=self.fallback_reasons.get(stage),
            error=self.stage_errors.get(stage),
        )

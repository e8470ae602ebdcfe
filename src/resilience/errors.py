"""
Pipeline Errors
===============
Failure types shared by collaborators, stages and the orchestrator.

- StageUnavailable: a collaborator could not serve data. Always recovered
  inside the stage by a fallback; never escapes to the orchestrator.
- StageExecutionError: a fault inside a stage's own computation. Retried
  once by the orchestrator, then recorded.
"""

from typing import Optional


class AssessmentPipelineError(Exception):
    """Base class for pipeline errors."""
    pass


class StageUnavailable(AssessmentPipelineError):
    """A collaborator (market, forecast, driver registry) could not be reached."""

    def __init__(self, source: str, reason: str = "unavailable"):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class StageExecutionError(AssessmentPipelineError):
    """A stage failed while computing its result."""

    def __init__(self, stage: str, reason: str, cause: Optional[BaseException] = None):
        self.stage = stage
        self.reason = reason
        self.cause = cause
        super().__init__(f"{stage} stage failed: {reason}")

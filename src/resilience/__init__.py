"""
Resilience Module
=================
Failure handling for the assessment pipeline.

Components:
- Errors: StageUnavailable / StageExecutionError hierarchy
- Circuit Breaker: Fail-fast for degraded data collaborators
"""

from src.resilience.errors import (
    AssessmentPipelineError,
    StageExecutionError,
    StageUnavailable,
)
from src.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitConfig,
    CircuitOpenError,
    CircuitState,
)

__all__ = [
    "AssessmentPipelineError",
    "StageExecutionError",
    "StageUnavailable",
    "CircuitBreaker",
    "CircuitConfig",
    "CircuitOpenError",
    "CircuitState",
]

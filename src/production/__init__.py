"""
Production Module
=================
Operational components for running the pipeline.

Components:
- Observability: loguru setup, stage timing, pipeline metrics
"""

from src.production.observability import (
    PipelineMetrics,
    StageMetrics,
    setup_logging,
    stage_span,
)

__all__ = [
    "PipelineMetrics",
    "StageMetrics",
    "setup_logging",
    "stage_span",
]

"""
Orchestrator Module
===================
Runs the assessment stages for one request under a deadline.

Author: CropFresh AI Team
Version: 1.0.0
"""

from src.orchestrator.run_state import WorkflowRun
from src.orchestrator.workflow import AssessmentOrchestrator, AssessmentOutcome

__all__ = [
    "AssessmentOrchestrator",
    "AssessmentOutcome",
    "WorkflowRun",
]

from .progress_service import (
    ProgressAnalytics,
    ProgressService,
    ProgressSummary,
    StepSummary,
    StrugglingComponent,
)

__all__ = [
    "ProgressAnalytics",
    "ProgressService",
    "ProgressSummary",
    "StepSummary",
    "StrugglingComponent",
]

from .progress import (
    ComponentProgress,
    ComponentStatus,
    FlowProgress,
    FlowProgressCompleted,
    FlowProgressStatus,
    StepCompleted,
    StepProgress,
    StepStatus,
    StepUnlocked,
    UnlockResult,
)

__all__ = [
    "ComponentProgress",
    "ComponentStatus",
    "FlowProgress",
    "FlowProgressCompleted",
    "FlowProgressStatus",
    "StepCompleted",
    "StepProgress",
    "StepStatus",
    "StepUnlocked",
    "UnlockResult",
]

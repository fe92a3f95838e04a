from .flow_assignment import (
    ACTIVE_STATUSES,
    MAX_BUDDIES,
    AssignmentStatus,
    FlowAssignment,
    PauseReason,
)

__all__ = [
    "ACTIVE_STATUSES",
    "MAX_BUDDIES",
    "AssignmentStatus",
    "FlowAssignment",
    "PauseReason",
]

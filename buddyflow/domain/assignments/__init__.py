"""Assignment lifecycle domain layer."""

from .deadlines import DeadlineCheck, add_business_days
from .entities import AssignmentStatus, FlowAssignment, PauseReason
from .exceptions import ActiveAssignmentLimitError, AssignmentNotFoundError, DuplicateAssignmentError

__all__ = [
    "ActiveAssignmentLimitError",
    "AssignmentNotFoundError",
    "AssignmentStatus",
    "DeadlineCheck",
    "DuplicateAssignmentError",
    "FlowAssignment",
    "PauseReason",
    "add_business_days",
]

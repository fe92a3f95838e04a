from .assign_flow_use_case import (
    AssignabilityReport,
    AssignFlowInput,
    AssignFlowResult,
    AssignFlowUseCase,
)
from .assignment_lifecycle_use_case import AssignmentLifecycleUseCase

__all__ = [
    "AssignFlowInput",
    "AssignFlowResult",
    "AssignFlowUseCase",
    "AssignabilityReport",
    "AssignmentLifecycleUseCase",
]

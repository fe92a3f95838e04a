"""Progress domain exceptions."""

from buddyflow.domain.common.exceptions import (
    BusinessRuleViolationError,
    ConflictError,
    EntityNotFoundError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import AssignmentId, ComponentSnapshotId


class ProgressNotFoundError(EntityNotFoundError):
    """Raised when an assignment has no progress record."""

    def __init__(self, assignment_id: AssignmentId) -> None:
        super().__init__("FlowProgress", assignment_id)


class StepLockedError(BusinessRuleViolationError):
    """Raised when a component belongs to a step that is not yet unlocked."""

    def __init__(self, step_order: int, current_step_order: int) -> None:
        super().__init__(
            "step_unlocked",
            f"Step {step_order} is locked; the assignment is at step {current_step_order}",
        )
        self.step_order = step_order
        self.current_step_order = current_step_order


class ComponentLockedError(BusinessRuleViolationError):
    """Raised when interacting with a component that is still locked."""

    def __init__(self, component_id: ComponentSnapshotId) -> None:
        super().__init__("component_unlocked", f"Component {component_id} is locked")
        self.component_id = component_id


class AttemptsExhaustedError(ConflictError):
    """Raised when a task answer is submitted after the last allowed attempt."""

    def __init__(self, max_attempts: int) -> None:
        super().__init__(
            f"Maximum number of attempts ({max_attempts}) reached",
            {"max_attempts": max_attempts},
        )
        self.max_attempts = max_attempts


class UnsupportedComponentTypeError(ValidationError):
    """Raised when no handler is registered for a component type."""

    def __init__(self, component_type: str) -> None:
        super().__init__(
            f"Unsupported component type: {component_type}",
            field="type",
            value=component_type,
        )
        self.component_type = component_type


class UnsupportedActionError(ValidationError):
    """Raised when a handler does not support the requested action."""

    def __init__(self, action: str, component_type: str) -> None:
        super().__init__(
            f"Action {action} is not supported for {component_type} components",
            field="action",
            value=action,
        )
        self.action = action

"""Assignment domain exceptions."""

from buddyflow.domain.common.exceptions import ConflictError, EntityNotFoundError
from buddyflow.domain.common.value_objects import AssignmentId, FlowId, UserId


class AssignmentNotFoundError(EntityNotFoundError):
    """Raised when an assignment cannot be found or was deleted."""

    def __init__(self, assignment_id: AssignmentId) -> None:
        super().__init__("FlowAssignment", assignment_id)


class DuplicateAssignmentError(ConflictError):
    """Raised when a user already has an active assignment of the flow."""

    def __init__(self, user_id: UserId, flow_id: FlowId) -> None:
        super().__init__(
            f"User {user_id} already has an active assignment of flow {flow_id}",
            {"user_id": str(user_id), "flow_id": str(flow_id)},
        )


class ActiveAssignmentLimitError(ConflictError):
    """Raised when a user has reached the maximum number of active assignments."""

    def __init__(self, user_id: UserId, limit: int) -> None:
        super().__init__(
            f"User {user_id} already has {limit} active assignments",
            {"user_id": str(user_id), "limit": limit},
        )
        self.limit = limit

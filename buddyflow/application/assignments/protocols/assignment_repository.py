from datetime import datetime
from typing import Protocol

from buddyflow.domain.assignments.entities.flow_assignment import FlowAssignment
from buddyflow.domain.common.value_objects import AssignmentId, FlowId, UserId


class FlowAssignmentRepositoryProtocol(Protocol):
    """Assignments; soft-deleted rows are invisible to every query."""

    def find_by_id(self, assignment_id: AssignmentId) -> FlowAssignment | None: ...

    def find_by_user(self, user_id: UserId) -> list[FlowAssignment]: ...

    def find_active_by_user_and_flow(
        self, user_id: UserId, flow_id: FlowId
    ) -> FlowAssignment | None: ...

    def count_active_by_user(self, user_id: UserId) -> int: ...

    def find_overdue_candidates(self, now: datetime) -> list[FlowAssignment]:
        """Active assignments past their deadline that are not flagged overdue yet."""
        ...

    def add(self, assignment: FlowAssignment) -> FlowAssignment: ...

    def save(self, assignment: FlowAssignment) -> FlowAssignment: ...

    def soft_delete(self, assignment_id: AssignmentId) -> bool: ...

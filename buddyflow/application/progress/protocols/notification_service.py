from typing import Any, Protocol

from buddyflow.domain.assignments.entities.flow_assignment import FlowAssignment


class NotificationServiceProtocol(Protocol):
    def send_progress_update_notification(
        self, assignment: FlowAssignment, payload: dict[str, Any]
    ) -> None: ...

    def send_assignment_notification(self, assignment: FlowAssignment, event: str) -> None: ...

"""Notification adapter that records notifications in the application log."""

from typing import Any

import structlog

from buddyflow.domain.assignments.entities.flow_assignment import FlowAssignment

logger = structlog.get_logger(__name__)


class LoggingNotificationService:
    """
    Emits one log record per notification.

    Stands in for a delivery channel (mail, chat, push) owned by the host:
    the learner and every buddy are listed as recipients.
    """

    def send_progress_update_notification(
        self, assignment: FlowAssignment, payload: dict[str, Any]
    ) -> None:
        logger.info(
            "progress_update_notification",
            assignment_id=str(assignment.id),
            recipients=self._recipients(assignment),
            **payload,
        )

    def send_assignment_notification(self, assignment: FlowAssignment, event: str) -> None:
        logger.info(
            "assignment_notification",
            notification_event=event,
            assignment_id=str(assignment.id),
            status=assignment.status.value,
            deadline=assignment.deadline.isoformat(),
            recipients=self._recipients(assignment),
        )

    @staticmethod
    def _recipients(assignment: FlowAssignment) -> list[str]:
        return [str(assignment.user_id), *(str(buddy_id) for buddy_id in assignment.buddy_ids)]

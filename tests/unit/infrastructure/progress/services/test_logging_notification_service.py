"""Tests for the logging notification adapter."""

from datetime import UTC, datetime

from structlog.testing import capture_logs

from buddyflow.domain.assignments.entities.flow_assignment import FlowAssignment
from buddyflow.domain.common.value_objects import FlowSnapshotId, UserId
from buddyflow.infrastructure.progress.services import LoggingNotificationService

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _assignment() -> FlowAssignment:
    return FlowAssignment.create(
        user_id=UserId.generate(),
        flow_snapshot_id=FlowSnapshotId.generate(),
        assigned_by_id=UserId.generate(),
        buddy_ids=[UserId.generate(), UserId.generate()],
        now=NOW,
    )


class TestLoggingNotificationService:
    def test_progress_update(self) -> None:
        assignment = _assignment()

        with capture_logs() as logs:
            LoggingNotificationService().send_progress_update_notification(
                assignment, {"percentage": 50.0, "step_completed": True}
            )

        [record] = logs
        assert record["event"] == "progress_update_notification"
        assert record["assignment_id"] == str(assignment.id)
        assert record["percentage"] == 50.0
        assert record["step_completed"] is True
        assert record["recipients"] == [
            str(assignment.user_id),
            *(str(buddy) for buddy in assignment.buddy_ids),
        ]

    def test_assignment_event(self) -> None:
        assignment = _assignment()

        with capture_logs() as logs:
            LoggingNotificationService().send_assignment_notification(assignment, "assignment_created")

        [record] = logs
        assert record["event"] == "assignment_notification"
        assert record["notification_event"] == "assignment_created"
        assert record["status"] == "NOT_STARTED"
        assert record["deadline"] == assignment.deadline.isoformat()
        assert len(record["recipients"]) == 3

"""Tests for assignment lifecycle transitions and deadline tracking."""

from datetime import timedelta

import pytest
from structlog.testing import capture_logs

from buddyflow.domain.assignments.entities.flow_assignment import AssignmentStatus, PauseReason
from buddyflow.domain.assignments.exceptions import AssignmentNotFoundError
from buddyflow.domain.common.exceptions import (
    AuthorizationError,
    BusinessRuleViolationError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import AssignmentId, UserId
from buddyflow.domain.identity.entities.user import UserRole
from buddyflow.domain.identity.exceptions import UserNotFoundError
from buddyflow.domain.progress.entities.progress import FlowProgressStatus
from buddyflow.infrastructure.assignments.repositories import FlowAssignmentRepository
from buddyflow.infrastructure.progress.repositories import FlowProgressRepository
from buddyflow.infrastructure.snapshots.repositories import FlowSnapshotRepository


@pytest.fixture
def lifecycle(container):
    return container.assignment_lifecycle_use_case()


@pytest.fixture
def assignment(assign, flow_factory):
    """A not started assignment of the default two-step flow."""
    return assign(flow_factory()).assignment


@pytest.fixture
def started_assignment(lifecycle, assignment, learner, now):
    return lifecycle.start_assignment(str(assignment.id), str(learner.id), now=now)


class TestStartAssignment:
    def test_start_moves_assignment_and_progress_forward(
        self, db_session, lifecycle, assignment, learner, now
    ) -> None:
        started = lifecycle.start_assignment(str(assignment.id), str(learner.id), now=now)

        assert started.status == AssignmentStatus.IN_PROGRESS
        assert started.started_at == now
        progress = FlowProgressRepository(db_session).find_by_assignment_id(assignment.id)
        assert progress is not None
        assert progress.status == FlowProgressStatus.IN_PROGRESS
        assert progress.started_at == now

    def test_only_the_assignee_can_start(self, lifecycle, assignment, buddy, now) -> None:
        with pytest.raises(AuthorizationError):
            lifecycle.start_assignment(str(assignment.id), str(buddy.id), now=now)

    def test_cannot_start_twice(self, lifecycle, started_assignment, learner, now) -> None:
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            lifecycle.start_assignment(str(started_assignment.id), str(learner.id), now=now)
        assert exc_info.value.rule == "start_from_not_started"

    def test_overdue_assignment_cannot_be_started(
        self, db_session, lifecycle, assignment, learner
    ) -> None:
        late = assignment.deadline + timedelta(minutes=5)

        with pytest.raises(BusinessRuleViolationError) as exc_info:
            lifecycle.start_assignment(str(assignment.id), str(learner.id), now=late)

        assert exc_info.value.rule == "start_before_deadline"
        stored = FlowAssignmentRepository(db_session).find_by_id(assignment.id)
        assert stored is not None
        assert stored.is_overdue is True
        assert stored.status == AssignmentStatus.NOT_STARTED

    def test_unknown_assignment(self, lifecycle, learner) -> None:
        with pytest.raises(AssignmentNotFoundError):
            lifecycle.start_assignment(str(AssignmentId.generate()), str(learner.id))

    def test_start_is_notified(self, lifecycle, assignment, learner, buddy, now) -> None:
        with capture_logs() as logs:
            lifecycle.start_assignment(str(assignment.id), str(learner.id), now=now)

        notifications = [log for log in logs if log["event"] == "assignment_notification"]
        assert len(notifications) == 1
        assert notifications[0]["notification_event"] == "started"
        assert notifications[0]["recipients"] == [str(learner.id), str(buddy.id)]
        domain_events = [log["event_type"] for log in logs if log["event"] == "domain_event"]
        assert "AssignmentStarted" in domain_events


class TestPauseAndResume:
    def test_pause_records_actor_and_reason(
        self, db_session, lifecycle, started_assignment, buddy, now
    ) -> None:
        lifecycle.pause_assignment(
            str(started_assignment.id), str(buddy.id), reason=PauseReason.VACATION, now=now
        )

        stored = FlowAssignmentRepository(db_session).find_by_id(started_assignment.id)
        assert stored is not None
        assert stored.status == AssignmentStatus.PAUSED
        assert stored.paused_by_id == buddy.id
        assert stored.pause_reason == "VACATION"
        assert stored.paused_at == now

    def test_resume_extends_the_deadline_by_started_paused_days(
        self, db_session, lifecycle, started_assignment, learner, now
    ) -> None:
        original_deadline = started_assignment.deadline
        lifecycle.pause_assignment(str(started_assignment.id), str(learner.id), now=now)

        resumed = lifecycle.resume_assignment(
            str(started_assignment.id), str(learner.id), now=now + timedelta(days=3, hours=1)
        )

        assert resumed.status == AssignmentStatus.IN_PROGRESS
        assert resumed.deadline == original_deadline + timedelta(days=4)
        stored = FlowAssignmentRepository(db_session).find_by_id(started_assignment.id)
        assert stored is not None
        assert stored.deadline == original_deadline + timedelta(days=4)
        assert stored.paused_at is None
        assert stored.pause_reason is None

    def test_only_participants_can_pause(
        self, lifecycle, started_assignment, user_factory, now
    ) -> None:
        stranger = user_factory("Sam Stranger", UserRole.BUDDY)

        with pytest.raises(AuthorizationError):
            lifecycle.pause_assignment(str(started_assignment.id), str(stranger.id), now=now)

    def test_not_started_assignment_cannot_be_paused(self, lifecycle, assignment, learner) -> None:
        with pytest.raises(BusinessRuleViolationError):
            lifecycle.pause_assignment(str(assignment.id), str(learner.id))

    def test_resume_requires_a_paused_assignment(
        self, lifecycle, started_assignment, learner
    ) -> None:
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            lifecycle.resume_assignment(str(started_assignment.id), str(learner.id))
        assert exc_info.value.rule == "resume_paused"


class TestTerminalTransitions:
    def test_buddy_cancels_with_reason(
        self, db_session, lifecycle, started_assignment, buddy, now
    ) -> None:
        lifecycle.cancel_assignment(
            str(started_assignment.id), str(buddy.id), "Moved to another team", now=now
        )

        stored = FlowAssignmentRepository(db_session).find_by_id(started_assignment.id)
        assert stored is not None
        assert stored.status == AssignmentStatus.CANCELLED
        assert stored.pause_reason == "Moved to another team"
        assert stored.paused_by_id == buddy.id

    def test_learner_cannot_cancel(self, lifecycle, started_assignment, learner) -> None:
        with pytest.raises(AuthorizationError):
            lifecycle.cancel_assignment(str(started_assignment.id), str(learner.id), "Bored")

    def test_complete_is_terminal(self, lifecycle, started_assignment, learner, buddy, now) -> None:
        completed = lifecycle.complete_assignment(str(started_assignment.id), str(learner.id), now=now)
        assert completed.status == AssignmentStatus.COMPLETED
        assert completed.completed_at == now

        with pytest.raises(BusinessRuleViolationError):
            lifecycle.cancel_assignment(str(started_assignment.id), str(buddy.id), "Too late")

    def test_completed_flow_can_be_assigned_again(
        self, lifecycle, assign, flow_factory, learner
    ) -> None:
        flow = flow_factory(title="Second round")
        first = assign(flow).assignment
        lifecycle.complete_assignment(str(first.id), str(learner.id))

        second = assign(flow).assignment

        assert second.id != first.id
        assert second.status == AssignmentStatus.NOT_STARTED


class TestDeadlines:
    def test_buddy_extends_the_deadline(self, lifecycle, assignment, buddy, now) -> None:
        extended = lifecycle.extend_deadline(str(assignment.id), str(buddy.id), 5, now=now)

        assert extended.deadline == assignment.deadline + timedelta(days=5)

    def test_extension_is_bounded(self, lifecycle, assignment, buddy) -> None:
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.extend_deadline(str(assignment.id), str(buddy.id), 400)
        assert exc_info.value.field == "days"

        with pytest.raises(ValidationError):
            lifecycle.extend_deadline(str(assignment.id), str(buddy.id), 0)

    def test_learner_cannot_extend(self, lifecycle, assignment, learner) -> None:
        with pytest.raises(AuthorizationError):
            lifecycle.extend_deadline(str(assignment.id), str(learner.id), 3)

    def test_check_deadline_reports_risk(self, lifecycle, assignment) -> None:
        check = lifecycle.check_deadline(
            str(assignment.id), now=assignment.deadline - timedelta(hours=12)
        )

        assert check.is_overdue is False
        assert check.days_remaining == 1
        assert check.is_at_risk is True
        assert check.is_critical is True

    def test_check_deadline_latches_overdue(self, db_session, lifecycle, assignment) -> None:
        late = assignment.deadline + timedelta(hours=1)

        check = lifecycle.check_deadline(str(assignment.id), now=late)

        assert check.is_overdue is True
        assert check.days_remaining == 0
        stored = FlowAssignmentRepository(db_session).find_by_id(assignment.id)
        assert stored is not None
        assert stored.is_overdue is True

        # The flag stays set even when asked about an earlier instant
        again = lifecycle.check_deadline(str(assignment.id), now=assignment.deadline - timedelta(days=1))
        assert again.is_overdue is True

    def test_extension_past_now_clears_overdue(
        self, db_session, lifecycle, assignment, buddy
    ) -> None:
        late = assignment.deadline + timedelta(hours=1)
        lifecycle.check_deadline(str(assignment.id), now=late)

        lifecycle.extend_deadline(str(assignment.id), str(buddy.id), 2, now=late)

        stored = FlowAssignmentRepository(db_session).find_by_id(assignment.id)
        assert stored is not None
        assert stored.is_overdue is False

    def test_refresh_overdue_is_idempotent(
        self, lifecycle, assign, flow_factory, assignment
    ) -> None:
        later = assign(flow_factory(title="Later flow"), custom_deadline_days=30).assignment
        late = assignment.deadline + timedelta(hours=1)

        first = lifecycle.refresh_overdue_assignments(now=late)
        second = lifecycle.refresh_overdue_assignments(now=late)

        assert first == [assignment.id]
        assert later.id not in first
        assert second == []

    def test_refresh_overdue_skips_completed_assignments(
        self, lifecycle, started_assignment, learner
    ) -> None:
        lifecycle.complete_assignment(str(started_assignment.id), str(learner.id))

        flagged = lifecycle.refresh_overdue_assignments(
            now=started_assignment.deadline + timedelta(days=1)
        )

        assert flagged == []


class TestBuddiesAndDeletion:
    def test_update_buddies(self, db_session, lifecycle, assignment, buddy, user_factory) -> None:
        mentor = user_factory("Mia Mentor", UserRole.BUDDY)

        lifecycle.update_buddies(str(assignment.id), str(buddy.id), [str(buddy.id), str(mentor.id)])

        stored = FlowAssignmentRepository(db_session).find_by_id(assignment.id)
        assert stored is not None
        assert stored.buddy_ids == [buddy.id, mentor.id]

    def test_update_buddies_rejects_non_buddies(
        self, lifecycle, assignment, buddy, user_factory
    ) -> None:
        colleague = user_factory("Carl Colleague")

        with pytest.raises(ValidationError):
            lifecycle.update_buddies(str(assignment.id), str(buddy.id), [str(colleague.id)])

    def test_update_buddies_rejects_unknown_users(self, lifecycle, assignment, buddy) -> None:
        with pytest.raises(UserNotFoundError):
            lifecycle.update_buddies(str(assignment.id), str(buddy.id), [str(UserId.generate())])

    def test_update_buddies_rejects_the_learner(
        self, lifecycle, assignment, buddy, learner
    ) -> None:
        with pytest.raises(ValidationError):
            lifecycle.update_buddies(str(assignment.id), str(buddy.id), [str(learner.id)])

    def test_delete_keeps_a_detached_snapshot(
        self, db_session, lifecycle, assignment, buddy, learner
    ) -> None:
        lifecycle.delete_assignment(str(assignment.id), str(buddy.id))

        repository = FlowAssignmentRepository(db_session)
        assert repository.find_by_id(assignment.id) is None
        assert repository.find_by_user(learner.id) == []
        snapshot = FlowSnapshotRepository(db_session).find_by_id(assignment.flow_snapshot_id)
        assert snapshot is not None
        assert snapshot.assignment_id is None

        with pytest.raises(AssignmentNotFoundError):
            lifecycle.start_assignment(str(assignment.id), str(learner.id))

    def test_learner_cannot_delete(self, lifecycle, assignment, learner) -> None:
        with pytest.raises(AuthorizationError):
            lifecycle.delete_assignment(str(assignment.id), str(learner.id))

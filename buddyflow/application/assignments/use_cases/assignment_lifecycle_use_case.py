"""
Use case for assignment lifecycle transitions.

Each operation loads one assignment, checks that the actor may perform it,
applies the transition and commits, all in one unit of work.

Permissions:
- start: the assignee
- pause, resume, complete: the assignee or one of the buddies
- extend deadline, cancel, update buddies, delete: a buddy
"""

from datetime import UTC, datetime

import structlog

from buddyflow.application.assignments.protocols.assignment_repository import (
    FlowAssignmentRepositoryProtocol,
)
from buddyflow.application.common.best_effort import BestEffortRunner
from buddyflow.application.common.ids import RawId, parse_id
from buddyflow.application.common.unit_of_work import UnitOfWork
from buddyflow.application.identity.protocols.user_repository import UserRepositoryProtocol
from buddyflow.application.progress.protocols.notification_service import (
    NotificationServiceProtocol,
)
from buddyflow.application.progress.services.progress_service import ProgressService
from buddyflow.application.snapshots.services.snapshot_service import SnapshotService
from buddyflow.config import get_settings
from buddyflow.domain.assignments.deadlines import DeadlineCheck
from buddyflow.domain.assignments.entities.flow_assignment import FlowAssignment, PauseReason
from buddyflow.domain.assignments.exceptions import AssignmentNotFoundError
from buddyflow.domain.common.exceptions import AuthorizationError, ValidationError
from buddyflow.domain.common.value_objects import AssignmentId, UserId
from buddyflow.domain.identity.exceptions import UserNotFoundError

logger = structlog.get_logger(__name__)


class AssignmentLifecycleUseCase:
    """Use case for starting, pausing, resuming, completing and cancelling assignments."""

    def __init__(
        self,
        assignment_repository: FlowAssignmentRepositoryProtocol,
        user_repository: UserRepositoryProtocol,
        progress_service: ProgressService,
        snapshot_service: SnapshotService,
        unit_of_work: UnitOfWork,
        notification_service: NotificationServiceProtocol,
        side_channel_runner: BestEffortRunner,
    ) -> None:
        self.assignment_repository = assignment_repository
        self.user_repository = user_repository
        self.progress_service = progress_service
        self.snapshot_service = snapshot_service
        self.unit_of_work = unit_of_work
        self.notification_service = notification_service
        self.side_channel_runner = side_channel_runner

        settings = get_settings()
        self.max_buddies = settings.MAX_BUDDIES
        self.max_extension_days = settings.MAX_DEADLINE_EXTENSION_DAYS

    def start_assignment(
        self, assignment_id: RawId, actor_id: RawId, now: datetime | None = None
    ) -> FlowAssignment:
        """
        Start an assignment and its progress.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist
            AuthorizationError: If the actor is not the assignee
            BusinessRuleViolationError: If the assignment is started or overdue
        """
        current = now or datetime.now(UTC)
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_assignee(assignment, actor)
            was_overdue = assignment.is_overdue
            assignment.check_deadline(current)
            if assignment.is_overdue and not was_overdue:
                # The latch survives the rejected start
                self.assignment_repository.save(assignment)
                self._commit(assignment)
            assignment.start(current)
            self.assignment_repository.save(assignment)
            self.progress_service.start_progress(assignment.id, current)
            self.unit_of_work.track(self.progress_service.load_progress(assignment.id))
            self._commit(assignment)
        logger.info("assignment_started", assignment_id=str(assignment.id), user_id=str(actor))
        self._notify(assignment, "started")
        return assignment

    def pause_assignment(
        self,
        assignment_id: RawId,
        actor_id: RawId,
        reason: str = PauseReason.USER_REQUEST,
        now: datetime | None = None,
    ) -> FlowAssignment:
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_participant(assignment, actor)
            assignment.pause(actor, reason=reason, now=now)
            self.assignment_repository.save(assignment)
            self._commit(assignment)
        logger.info(
            "assignment_paused",
            assignment_id=str(assignment.id),
            paused_by_id=str(actor),
            reason=assignment.pause_reason,
        )
        self._notify(assignment, "paused")
        return assignment

    def resume_assignment(
        self, assignment_id: RawId, actor_id: RawId, now: datetime | None = None
    ) -> FlowAssignment:
        """Resume a paused assignment; the deadline moves by the days spent paused."""
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_participant(assignment, actor)
            extended_by = assignment.resume(actor, now=now)
            self.assignment_repository.save(assignment)
            self._commit(assignment)
        logger.info(
            "assignment_resumed",
            assignment_id=str(assignment.id),
            resumed_by_id=str(actor),
            deadline_extended_by_days=extended_by,
        )
        self._notify(assignment, "resumed")
        return assignment

    def complete_assignment(
        self, assignment_id: RawId, actor_id: RawId, now: datetime | None = None
    ) -> FlowAssignment:
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_participant(assignment, actor)
            assignment.complete(now)
            self.assignment_repository.save(assignment)
            self._commit(assignment)
        logger.info("assignment_completed", assignment_id=str(assignment.id), completed_by=str(actor))
        self._notify(assignment, "completed")
        return assignment

    def cancel_assignment(
        self, assignment_id: RawId, actor_id: RawId, reason: str, now: datetime | None = None
    ) -> FlowAssignment:
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_buddy(assignment, actor)
            assignment.cancel(actor, reason, now=now)
            self.assignment_repository.save(assignment)
            self._commit(assignment)
        logger.info(
            "assignment_cancelled",
            assignment_id=str(assignment.id),
            cancelled_by_id=str(actor),
            reason=reason,
        )
        self._notify(assignment, "cancelled")
        return assignment

    def extend_deadline(
        self, assignment_id: RawId, actor_id: RawId, days: int, now: datetime | None = None
    ) -> FlowAssignment:
        """
        Push the deadline forward.

        Raises:
            ValidationError: If days exceeds MAX_DEADLINE_EXTENSION_DAYS or is below 1
            AuthorizationError: If the actor is not a buddy
        """
        if days > self.max_extension_days:
            raise ValidationError(
                f"Deadline extension cannot exceed {self.max_extension_days} days",
                field="days",
                value=days,
            )
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_buddy(assignment, actor)
            assignment.extend_deadline(days, actor, now=now)
            self.assignment_repository.save(assignment)
            self._commit(assignment)
        logger.info(
            "assignment_deadline_extended",
            assignment_id=str(assignment.id),
            days=days,
            new_deadline=assignment.deadline.isoformat(),
        )
        self._notify(assignment, "deadline_extended")
        return assignment

    def update_buddies(
        self, assignment_id: RawId, actor_id: RawId, buddy_ids: list[RawId]
    ) -> FlowAssignment:
        """
        Replace the buddies of an assignment.

        Raises:
            ValidationError: If the list is malformed or a user cannot mentor
            UserNotFoundError: If a buddy does not exist
            AuthorizationError: If the actor is not a buddy
        """
        new_buddy_ids = [parse_id(UserId, raw, "buddy_ids") for raw in buddy_ids]
        if len(new_buddy_ids) > self.max_buddies:
            raise ValidationError(
                f"An assignment can have at most {self.max_buddies} buddies",
                field="buddy_ids",
                value=len(new_buddy_ids),
            )
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            found = {user.id: user for user in self.user_repository.find_by_ids(new_buddy_ids)}
            for buddy_id in new_buddy_ids:
                buddy = found.get(buddy_id)
                if buddy is None:
                    raise UserNotFoundError(buddy_id)
                if not buddy.is_buddy or not buddy.is_active:
                    raise ValidationError(
                        f"User {buddy_id} cannot be a buddy", field="buddy_ids", value=str(buddy_id)
                    )
            self._require_buddy(assignment, actor)
            assignment.update_buddies(new_buddy_ids)
            self.assignment_repository.save(assignment)
            self._commit(assignment)
        logger.info(
            "assignment_buddies_updated",
            assignment_id=str(assignment.id),
            buddy_count=len(new_buddy_ids),
        )
        return assignment

    def delete_assignment(self, assignment_id: RawId, actor_id: RawId) -> None:
        """Soft-delete an assignment; its snapshot is kept, detached."""
        with self.unit_of_work:
            assignment, actor = self._load(assignment_id, actor_id)
            self._require_buddy(assignment, actor)
            self.snapshot_service.detach_snapshot(assignment.id)
            self.assignment_repository.soft_delete(assignment.id)
            self.unit_of_work.commit()
        logger.info("assignment_deleted", assignment_id=str(assignment.id), deleted_by=str(actor))

    def check_deadline(self, assignment_id: RawId, now: datetime | None = None) -> DeadlineCheck:
        """Recompute the deadline status, persisting the overdue latch if it flips."""
        with self.unit_of_work:
            assignment = self._require_assignment(parse_id(AssignmentId, assignment_id, "assignment_id"))
            was_overdue = assignment.is_overdue
            check = assignment.check_deadline(now)
            if assignment.is_overdue != was_overdue:
                self.assignment_repository.save(assignment)
                self._commit(assignment)
        return check

    def refresh_overdue_assignments(self, now: datetime | None = None) -> list[AssignmentId]:
        """
        Latch the overdue flag on every active assignment past its deadline.

        Safe to run repeatedly: assignments already flagged are skipped.

        Returns:
            Ids of the assignments that became overdue in this run
        """
        current = now or datetime.now(UTC)
        flagged: list[FlowAssignment] = []
        with self.unit_of_work:
            for assignment in self.assignment_repository.find_overdue_candidates(current):
                assignment.check_deadline(current)
                if assignment.is_overdue:
                    self.assignment_repository.save(assignment)
                    self.unit_of_work.track(assignment)
                    flagged.append(assignment)
            self.unit_of_work.commit()
        if flagged:
            logger.info("overdue_assignments_flagged", count=len(flagged))
        for assignment in flagged:
            self._notify(assignment, "overdue")
        return [assignment.id for assignment in flagged]

    def _load(self, assignment_id: RawId, actor_id: RawId) -> tuple[FlowAssignment, UserId]:
        assignment_vo = parse_id(AssignmentId, assignment_id, "assignment_id")
        actor = parse_id(UserId, actor_id, "actor_id")
        return self._require_assignment(assignment_vo), actor

    def _require_assignment(self, assignment_id: AssignmentId) -> FlowAssignment:
        assignment = self.assignment_repository.find_by_id(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(assignment_id)
        return assignment

    @staticmethod
    def _require_assignee(assignment: FlowAssignment, actor: UserId) -> None:
        if not assignment.is_assignee(actor):
            raise AuthorizationError("Only the assignee can perform this action")

    @staticmethod
    def _require_participant(assignment: FlowAssignment, actor: UserId) -> None:
        if not assignment.is_assignee(actor) and not assignment.is_buddy(actor):
            raise AuthorizationError("Only the assignee or a buddy can perform this action")

    @staticmethod
    def _require_buddy(assignment: FlowAssignment, actor: UserId) -> None:
        if not assignment.is_buddy(actor):
            raise AuthorizationError("Only a buddy can perform this action")

    def _commit(self, assignment: FlowAssignment) -> None:
        self.unit_of_work.track(assignment)
        self.unit_of_work.commit()

    def _notify(self, assignment: FlowAssignment, event: str) -> None:
        self.side_channel_runner.run(
            "assignment_notification",
            self.notification_service.send_assignment_notification,
            assignment,
            event,
            fallback=None,
        )

"""
Use case for assigning a flow to a learner.

Freezes the flow into a snapshot, creates the assignment and its progress
tree in one unit of work, then notifies the learner on a best-effort basis.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from buddyflow.application.assignments.protocols.assignment_repository import (
    FlowAssignmentRepositoryProtocol,
)
from buddyflow.application.common.best_effort import BestEffortRunner
from buddyflow.application.common.ids import RawId, parse_id
from buddyflow.application.common.unit_of_work import UnitOfWork
from buddyflow.application.flows.protocols.flow_repository import FlowRepositoryProtocol
from buddyflow.application.identity.protocols.user_repository import UserRepositoryProtocol
from buddyflow.application.progress.protocols.notification_service import (
    NotificationServiceProtocol,
)
from buddyflow.application.progress.services.progress_service import ProgressService
from buddyflow.application.snapshots.services.snapshot_service import SnapshotService
from buddyflow.config import get_settings
from buddyflow.domain.assignments.entities.flow_assignment import FlowAssignment
from buddyflow.domain.assignments.exceptions import (
    ActiveAssignmentLimitError,
    DuplicateAssignmentError,
)
from buddyflow.domain.common.exceptions import (
    AuthorizationError,
    BusinessRuleViolationError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import AssignmentId, FlowId, UserId
from buddyflow.domain.flows.entities.flow import Flow
from buddyflow.domain.flows.exceptions import (
    FlowInactiveError,
    FlowNotFoundError,
    FlowNotReadyError,
)
from buddyflow.domain.identity.entities.user import User
from buddyflow.domain.identity.exceptions import UserNotFoundError
from buddyflow.domain.progress.entities.progress import FlowProgress
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot
from buddyflow.domain.snapshots.services.snapshot_builder import SnapshotContext, SnapshotStats

logger = structlog.get_logger(__name__)


@dataclass
class AssignFlowInput:
    """Assignment request as received from the host."""

    flow_id: RawId
    user_id: RawId
    assigned_by: RawId
    buddy_ids: list[RawId] | None = None
    deadline: datetime | None = None
    custom_deadline_days: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AssignFlowResult:
    assignment: FlowAssignment
    snapshot: FlowSnapshot
    progress: FlowProgress
    stats: SnapshotStats


@dataclass
class AssignabilityReport:
    can_assign: bool
    reasons: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class _ParsedInput:
    flow_id: FlowId
    user_id: UserId
    assigned_by: UserId
    buddy_ids: list[UserId]


class AssignFlowUseCase:
    """Use case for creating assignments."""

    def __init__(
        self,
        flow_repository: FlowRepositoryProtocol,
        user_repository: UserRepositoryProtocol,
        assignment_repository: FlowAssignmentRepositoryProtocol,
        snapshot_service: SnapshotService,
        progress_service: ProgressService,
        unit_of_work: UnitOfWork,
        notification_service: NotificationServiceProtocol,
        side_channel_runner: BestEffortRunner,
    ) -> None:
        self.flow_repository = flow_repository
        self.user_repository = user_repository
        self.assignment_repository = assignment_repository
        self.snapshot_service = snapshot_service
        self.progress_service = progress_service
        self.unit_of_work = unit_of_work
        self.notification_service = notification_service
        self.side_channel_runner = side_channel_runner

        settings = get_settings()
        self.max_buddies = settings.MAX_BUDDIES
        self.max_active_assignments = settings.MAX_ACTIVE_ASSIGNMENTS
        self.default_deadline_days = settings.DEFAULT_DEADLINE_BUSINESS_DAYS

    def assign_flow(self, data: AssignFlowInput, now: datetime | None = None) -> AssignFlowResult:
        """
        Assign a flow to a user.

        Checks run in a fixed order and fail fast: input, then existence,
        then business rules.

        Args:
            data: Assignment request
            now: Current time (defaults to now)

        Returns:
            The assignment with its snapshot, progress and snapshot statistics

        Raises:
            ValidationError: If the input is malformed or a buddy cannot mentor
            FlowNotFoundError, UserNotFoundError: If a referenced entity is missing
            AuthorizationError: If the assigner may not assign flows
            FlowInactiveError, FlowNotReadyError: If the flow cannot be frozen
            DuplicateAssignmentError: If the user already has this flow active
            ActiveAssignmentLimitError: If the user has too many active assignments
        """
        current = now or datetime.now(UTC)
        parsed = self._validate_input(data, current)

        flow = self.flow_repository.find_by_id(parsed.flow_id)
        if flow is None:
            raise FlowNotFoundError(parsed.flow_id)
        user = self._require_user(parsed.user_id)
        assigner = self._require_user(parsed.assigned_by)
        buddies = self._require_buddies(parsed.buddy_ids)

        self._check_business_rules(flow, user, assigner, buddies)

        with self.unit_of_work:
            assignment_id = AssignmentId.generate()
            snapshot, stats = self.snapshot_service.create_snapshot(
                flow,
                SnapshotContext(
                    assignment_id=assignment_id,
                    created_by=assigner.id,
                    metadata=dict(data.metadata),
                ),
            )
            assignment = FlowAssignment.create(
                user_id=user.id,
                flow_snapshot_id=snapshot.id,
                assigned_by_id=assigner.id,
                buddy_ids=parsed.buddy_ids,
                deadline=data.deadline,
                custom_deadline_days=data.custom_deadline_days,
                default_deadline_days=flow.default_deadline_days or self.default_deadline_days,
                assignment_id=assignment_id,
                now=current,
            )
            self.assignment_repository.add(assignment)
            progress = self.progress_service.initialize_progress(assignment.id, snapshot)
            self.unit_of_work.track(assignment, progress)
            self.unit_of_work.commit()

        logger.info(
            "flow_assigned",
            assignment_id=str(assignment.id),
            flow_id=str(flow.id),
            user_id=str(user.id),
            snapshot_id=str(snapshot.id),
            deadline=assignment.deadline.isoformat(),
            buddy_count=len(assignment.buddy_ids),
        )
        self.side_channel_runner.run(
            "assignment_notification",
            self.notification_service.send_assignment_notification,
            assignment,
            "assigned",
            fallback=None,
        )
        return AssignFlowResult(assignment=assignment, snapshot=snapshot, progress=progress, stats=stats)

    def can_assign_flow(self, flow_id: RawId, user_id: RawId, assigned_by: RawId) -> AssignabilityReport:
        """
        Dry run of the assignment rules.

        Collects every reason the assignment would be refused instead of
        stopping at the first one.
        """
        reasons: list[str] = []
        warnings: list[str] = []
        try:
            flow_vo = parse_id(FlowId, flow_id, "flow_id")
            user_vo = parse_id(UserId, user_id, "user_id")
            assigner_vo = parse_id(UserId, assigned_by, "assigned_by")
        except ValidationError as err:
            return AssignabilityReport(can_assign=False, reasons=[err.message])

        flow = self.flow_repository.find_by_id(flow_vo)
        user = self.user_repository.find_by_id(user_vo)
        assigner = self.user_repository.find_by_id(assigner_vo)
        if flow is None:
            reasons.append(f"Flow {flow_vo} not found")
        if user is None:
            reasons.append(f"User {user_vo} not found")
        if assigner is None:
            reasons.append(f"User {assigner_vo} not found")
        if flow is None or user is None or assigner is None:
            return AssignabilityReport(can_assign=False, reasons=reasons)

        if not assigner.can_assign_flows:
            reasons.append("Assigner is not allowed to assign flows")
        if not user.is_active:
            reasons.append("User is not active")
        if not flow.is_active:
            reasons.append("Flow is not active")
        if not flow.steps:
            reasons.append("Flow has no steps")
        if self.assignment_repository.find_active_by_user_and_flow(user.id, flow.id) is not None:
            reasons.append("User already has an active assignment of this flow")
        if self.assignment_repository.count_active_by_user(user.id) >= self.max_active_assignments:
            reasons.append(f"User already has {self.max_active_assignments} active assignments")
        warnings.extend(
            f"Step {step.order} has no components" for step in flow.ordered_steps() if not step.components
        )
        return AssignabilityReport(can_assign=not reasons, reasons=reasons, warnings=warnings)

    def _validate_input(self, data: AssignFlowInput, now: datetime) -> _ParsedInput:
        flow_id = parse_id(FlowId, data.flow_id, "flow_id")
        user_id = parse_id(UserId, data.user_id, "user_id")
        assigned_by = parse_id(UserId, data.assigned_by, "assigned_by")

        if data.deadline is not None and data.deadline <= now:
            raise ValidationError("Deadline must be in the future", field="deadline")
        if data.custom_deadline_days is not None and data.custom_deadline_days < 1:
            raise ValidationError(
                "Custom deadline days must be at least 1",
                field="custom_deadline_days",
                value=data.custom_deadline_days,
            )

        raw_buddies = data.buddy_ids if data.buddy_ids else [data.assigned_by]
        buddy_ids = [parse_id(UserId, raw, "buddy_ids") for raw in raw_buddies]
        if len(buddy_ids) > self.max_buddies:
            raise ValidationError(
                f"An assignment can have at most {self.max_buddies} buddies",
                field="buddy_ids",
                value=len(buddy_ids),
            )
        if len(set(buddy_ids)) != len(buddy_ids):
            raise ValidationError("Buddy ids must be unique", field="buddy_ids")
        if user_id in buddy_ids:
            raise ValidationError("A user cannot be their own buddy", field="buddy_ids")
        return _ParsedInput(
            flow_id=flow_id, user_id=user_id, assigned_by=assigned_by, buddy_ids=buddy_ids
        )

    def _require_user(self, user_id: UserId) -> User:
        user = self.user_repository.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _require_buddies(self, buddy_ids: list[UserId]) -> list[User]:
        found = {user.id: user for user in self.user_repository.find_by_ids(buddy_ids)}
        for buddy_id in buddy_ids:
            if buddy_id not in found:
                raise UserNotFoundError(buddy_id)
        return [found[buddy_id] for buddy_id in buddy_ids]

    def _check_business_rules(
        self, flow: Flow, user: User, assigner: User, buddies: list[User]
    ) -> None:
        if not assigner.can_assign_flows:
            raise AuthorizationError(f"User {assigner.id} is not allowed to assign flows")
        if not user.is_active:
            raise BusinessRuleViolationError("user_active", f"User {user.id} is not active")
        if not flow.is_active:
            raise FlowInactiveError(flow.id)
        if not flow.steps:
            raise FlowNotReadyError(flow.id)
        if self.assignment_repository.find_active_by_user_and_flow(user.id, flow.id) is not None:
            raise DuplicateAssignmentError(user.id, flow.id)
        if self.assignment_repository.count_active_by_user(user.id) >= self.max_active_assignments:
            raise ActiveAssignmentLimitError(user.id, self.max_active_assignments)
        for buddy in buddies:
            if not buddy.is_buddy or not buddy.is_active:
                raise ValidationError(
                    f"User {buddy.id} cannot be a buddy", field="buddy_ids", value=str(buddy.id)
                )

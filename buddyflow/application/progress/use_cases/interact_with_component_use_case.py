"""
Use case for a learner interacting with one component.

One call is one unit of work: the handler outcome, the time spent, step
unlocking and flow completion are committed together. Achievements and
notifications run afterwards and can never undo the update.
"""

from collections.abc import Mapping
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
from buddyflow.application.progress.protocols.achievement_service import (
    Achievement,
    AchievementServiceProtocol,
)
from buddyflow.application.progress.protocols.notification_service import (
    NotificationServiceProtocol,
)
from buddyflow.application.progress.services.progress_service import ProgressService
from buddyflow.application.snapshots.services.snapshot_service import SnapshotService
from buddyflow.domain.assignments.entities.flow_assignment import (
    AssignmentStatus,
    FlowAssignment,
)
from buddyflow.domain.assignments.exceptions import AssignmentNotFoundError
from buddyflow.domain.common.exceptions import (
    AuthorizationError,
    BusinessRuleViolationError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    StepSnapshotId,
    UserId,
)
from buddyflow.domain.progress.entities.progress import (
    ComponentProgress,
    FlowProgress,
    UnlockResult,
)
from buddyflow.domain.progress.exceptions import ComponentLockedError, StepLockedError
from buddyflow.domain.progress.handlers.base import (
    ComponentAction,
    InteractionContext,
    InteractionOutcome,
)
from buddyflow.domain.progress.handlers.registry import ComponentHandlerRegistry
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot
from buddyflow.domain.snapshots.exceptions import ComponentNotFoundError

logger = structlog.get_logger(__name__)


@dataclass
class ComponentInteractionInput:
    """One interaction as received from the host."""

    assignment_id: RawId
    component_id: RawId
    user_id: RawId
    action: str
    data: dict[str, Any] = field(default_factory=dict)
    time_spent: float | None = None


@dataclass(frozen=True)
class UnlockedStep:
    step_snapshot_id: StepSnapshotId
    order: int
    title: str


@dataclass(frozen=True)
class UnlockedComponent:
    component_snapshot_id: ComponentSnapshotId
    step_snapshot_id: StepSnapshotId
    order: int
    type: str


@dataclass(frozen=True)
class AssignmentProgressView:
    status: AssignmentStatus
    percentage: float
    completed_steps: int
    total_steps: int
    current_step_order: int
    time_spent: int


@dataclass
class ComponentInteractionResult:
    component_progress: ComponentProgress
    outcome: InteractionOutcome | None
    assignment_progress: AssignmentProgressView
    step_completed: bool = False
    flow_completed: bool = False
    unlocked_steps: list[UnlockedStep] = field(default_factory=list)
    unlocked_components: list[UnlockedComponent] = field(default_factory=list)
    achievements: list[Achievement] = field(default_factory=list)
    next_actions: list[ComponentAction] = field(default_factory=list)


@dataclass
class _ParsedInteraction:
    assignment_id: AssignmentId
    component_id: ComponentSnapshotId
    user_id: UserId
    action: ComponentAction
    data: dict[str, Any]
    time_spent: float


class InteractWithComponentUseCase:
    """Use case for processing component interactions."""

    def __init__(
        self,
        assignment_repository: FlowAssignmentRepositoryProtocol,
        snapshot_service: SnapshotService,
        progress_service: ProgressService,
        registry: ComponentHandlerRegistry,
        unit_of_work: UnitOfWork,
        achievement_service: AchievementServiceProtocol,
        notification_service: NotificationServiceProtocol,
        side_channel_runner: BestEffortRunner,
    ) -> None:
        self.assignment_repository = assignment_repository
        self.snapshot_service = snapshot_service
        self.progress_service = progress_service
        self.registry = registry
        self.unit_of_work = unit_of_work
        self.achievement_service = achievement_service
        self.notification_service = notification_service
        self.side_channel_runner = side_channel_runner

    def execute(
        self, data: ComponentInteractionInput, now: datetime | None = None
    ) -> ComponentInteractionResult:
        """
        Process one interaction.

        Order of checks: input, existence, access. The first failure is raised.

        Args:
            data: The interaction
            now: Current time (defaults to now)

        Returns:
            The updated component progress with everything the interaction unlocked

        Raises:
            ValidationError: If the input is malformed or the handler rejects it
            EntityNotFoundError: If the assignment, snapshot, component or progress is missing
            AuthorizationError: If the user is not the assignee
            BusinessRuleViolationError: If the assignment or component is not accessible
            ConcurrencyConflictError: If a concurrent interaction won the race
        """
        current = now or datetime.now(UTC)
        parsed = self._validate_input(data)

        with self.unit_of_work:
            assignment = self.assignment_repository.find_by_id(parsed.assignment_id)
            if assignment is None:
                raise AssignmentNotFoundError(parsed.assignment_id)
            snapshot = self.snapshot_service.get_snapshot(assignment.flow_snapshot_id)
            located = snapshot.find_component(parsed.component_id)
            if located is None:
                raise ComponentNotFoundError(parsed.component_id)
            step_snapshot, component_snapshot = located
            progress = self.progress_service.load_progress(
                assignment.id, for_update=True, refresh=True
            )
            component_progress = progress.component(parsed.component_id)
            if component_progress is None:
                raise ComponentNotFoundError(parsed.component_id)

            self._check_access(assignment, progress, parsed.user_id, step_snapshot.order, current)
            if component_progress.is_locked:
                raise ComponentLockedError(parsed.component_id)

            outcome: InteractionOutcome | None = None
            unlock = UnlockResult()
            step_completed = False
            if parsed.action == ComponentAction.RESET_PROGRESS:
                component_progress = self.progress_service.reset_component_progress(
                    assignment.id, parsed.component_id
                )
            else:
                outcome = self.registry.dispatch(
                    parsed.action,
                    parsed.data,
                    InteractionContext(
                        component=component_snapshot, progress=component_progress, now=current
                    ),
                )
                component_progress = self.progress_service.update_component_progress(
                    assignment.id,
                    parsed.component_id,
                    status=outcome.status,
                    data=outcome.progress_data,
                    time_spent=parsed.time_spent,
                    completed_at=outcome.completed_at,
                    now=current,
                )
                assignment.add_time_spent(parsed.time_spent, now=current)

                step_progress = progress.step(step_snapshot.id)
                if (
                    step_progress is not None
                    and not step_progress.is_completed
                    and self.progress_service.check_step_completion(assignment.id, step_snapshot.id)
                ):
                    unlock = self.progress_service.unlock_next_step(
                        assignment.id, step_snapshot.id, now=current
                    )
                    step_completed = True

            flow_completed = self.progress_service.check_flow_completion(assignment.id)
            if flow_completed and not assignment.is_completed:
                assignment.complete(current)

            self.assignment_repository.save(assignment)
            self.unit_of_work.track(assignment, progress)
            self.unit_of_work.commit()

        logger.info(
            "component_interaction_processed",
            assignment_id=str(assignment.id),
            component_id=str(parsed.component_id),
            component_type=component_snapshot.type,
            action=parsed.action.value,
            status=component_progress.status.value,
            step_completed=step_completed,
            flow_completed=flow_completed,
            unlocked_steps=len(unlock.unlocked_steps),
        )

        unlocked_steps = self._unlocked_steps(snapshot, unlock)
        unlocked_components = self._unlocked_components(snapshot, unlock)

        achievements: list[Achievement] = []
        if outcome is not None:
            achievements = self.side_channel_runner.run(
                "achievements",
                self.achievement_service.check_component_achievements,
                parsed.user_id,
                assignment.id,
                parsed.component_id,
                parsed.action,
                outcome,
                fallback=[],
            )
        self.side_channel_runner.run(
            "progress_notification",
            self.notification_service.send_progress_update_notification,
            assignment,
            {
                "component_id": str(parsed.component_id),
                "action": parsed.action.value,
                "status": component_progress.status.value,
                "progress": component_progress.percentage,
                "step_completed": step_completed,
                "flow_completed": flow_completed,
                "unlocked_step_ids": [str(step.step_snapshot_id) for step in unlocked_steps],
            },
            fallback=None,
        )

        next_actions = self.progress_service.get_next_available_actions(
            assignment.id, parsed.component_id, now=current
        )
        return ComponentInteractionResult(
            component_progress=component_progress,
            outcome=outcome,
            assignment_progress=AssignmentProgressView(
                status=assignment.status,
                percentage=progress.percentage,
                completed_steps=progress.completed_steps,
                total_steps=progress.total_steps,
                current_step_order=progress.current_step_order,
                time_spent=assignment.time_spent,
            ),
            step_completed=step_completed,
            flow_completed=flow_completed,
            unlocked_steps=unlocked_steps,
            unlocked_components=unlocked_components,
            achievements=list(achievements),
            next_actions=next_actions,
        )

    def _validate_input(self, data: ComponentInteractionInput) -> _ParsedInteraction:
        assignment_id = parse_id(AssignmentId, data.assignment_id, "assignment_id")
        component_id = parse_id(ComponentSnapshotId, data.component_id, "component_id")
        user_id = parse_id(UserId, data.user_id, "user_id")
        action = ComponentAction.parse(data.action)
        if data.data is not None and not isinstance(data.data, Mapping):
            raise ValidationError("Interaction data must be an object", field="data")
        time_spent = data.time_spent or 0
        if time_spent < 0:
            raise ValidationError("Time spent cannot be negative", field="time_spent", value=time_spent)
        return _ParsedInteraction(
            assignment_id=assignment_id,
            component_id=component_id,
            user_id=user_id,
            action=action,
            data=dict(data.data or {}),
            time_spent=time_spent,
        )

    def _check_access(
        self,
        assignment: FlowAssignment,
        progress: FlowProgress,
        user_id: UserId,
        step_order: int,
        now: datetime,
    ) -> None:
        if not assignment.is_assignee(user_id):
            raise AuthorizationError("Only the assignee can interact with this assignment")
        if assignment.status != AssignmentStatus.IN_PROGRESS:
            raise BusinessRuleViolationError(
                "assignment_in_progress",
                f"Assignment is {assignment.status}; interactions need an assignment in progress",
            )
        was_overdue = assignment.is_overdue
        assignment.check_deadline(now)
        if assignment.is_overdue:
            if not was_overdue:
                # The latch survives the rejected interaction
                self.assignment_repository.save(assignment)
                self.unit_of_work.track(assignment)
                self.unit_of_work.commit()
            raise BusinessRuleViolationError("assignment_not_overdue", "Assignment is overdue")
        if not progress.is_step_accessible(step_order):
            raise StepLockedError(step_order, progress.current_step_order)

    @staticmethod
    def _unlocked_steps(snapshot: FlowSnapshot, unlock: UnlockResult) -> list[UnlockedStep]:
        steps = []
        for step in unlock.unlocked_steps:
            step_snapshot = snapshot.step_by_id(step.step_snapshot_id)
            steps.append(
                UnlockedStep(
                    step_snapshot_id=step.step_snapshot_id,
                    order=step.order,
                    title=step_snapshot.title if step_snapshot else "",
                )
            )
        return steps

    @staticmethod
    def _unlocked_components(snapshot: FlowSnapshot, unlock: UnlockResult) -> list[UnlockedComponent]:
        components = []
        for component in unlock.unlocked_components:
            located = snapshot.find_component(component.component_snapshot_id)
            if located is None:
                continue
            step_snapshot, component_snapshot = located
            components.append(
                UnlockedComponent(
                    component_snapshot_id=component.component_snapshot_id,
                    step_snapshot_id=step_snapshot.id,
                    order=component.order,
                    type=component_snapshot.type,
                )
            )
        return components

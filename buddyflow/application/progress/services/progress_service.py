"""
Progress/unlock coordinator.

Keeps one FlowProgress aggregate per assignment loaded for the lifetime of
the service (one service per unit of work), so every method sees the
changes made by the previous ones before anything is committed.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from buddyflow.application.progress.protocols.progress_repository import (
    FlowProgressRepositoryProtocol,
)
from buddyflow.application.snapshots.protocols.snapshot_repository import (
    FlowSnapshotRepositoryProtocol,
)
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    StepSnapshotId,
)
from buddyflow.domain.progress.entities.progress import (
    ComponentProgress,
    ComponentStatus,
    FlowProgress,
    FlowProgressStatus,
    StepStatus,
    UnlockResult,
)
from buddyflow.domain.progress.exceptions import ProgressNotFoundError
from buddyflow.domain.progress.handlers.base import ComponentAction, InteractionContext
from buddyflow.domain.progress.handlers.registry import ComponentHandlerRegistry
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot
from buddyflow.domain.snapshots.exceptions import ComponentNotFoundError, SnapshotNotFoundError

logger = structlog.get_logger(__name__)

STRUGGLING_ATTEMPTS = 2
STRUGGLING_SECONDS = 600


@dataclass(frozen=True)
class StepSummary:
    step_snapshot_id: StepSnapshotId
    order: int
    title: str
    status: StepStatus
    percentage: float
    time_spent: int
    completed_components: int
    total_components: int


@dataclass(frozen=True)
class ProgressSummary:
    assignment_id: AssignmentId
    status: FlowProgressStatus
    percentage: float
    current_step_order: int
    completed_steps: int
    total_steps: int
    time_spent: int
    steps: list[StepSummary]
    unlocked_step_ids: list[StepSnapshotId]
    next_component_id: ComponentSnapshotId | None
    stats: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StrugglingComponent:
    component_snapshot_id: ComponentSnapshotId
    status: ComponentStatus
    attempts: int
    time_spent: int


@dataclass(frozen=True)
class ProgressAnalytics:
    assignment_id: AssignmentId
    struggling_components: list[StrugglingComponent]
    completed_components: int
    total_time_spent: int
    average_time_per_completed_component: float


class ProgressService:
    """Persists component progress and cascades step and flow completion."""

    def __init__(
        self,
        progress_repository: FlowProgressRepositoryProtocol,
        snapshot_repository: FlowSnapshotRepositoryProtocol,
        registry: ComponentHandlerRegistry,
    ) -> None:
        self.progress_repository = progress_repository
        self.snapshot_repository = snapshot_repository
        self.registry = registry
        self._progress: dict[AssignmentId, FlowProgress] = {}
        self._locked: set[AssignmentId] = set()

    def initialize_progress(self, assignment_id: AssignmentId, snapshot: FlowSnapshot) -> FlowProgress:
        """Build the progress tree of a new assignment and stage it."""
        progress = FlowProgress.initialize(assignment_id, snapshot)
        self.progress_repository.add(progress)
        self._progress[assignment_id] = progress
        logger.info(
            "progress_initialized",
            assignment_id=str(assignment_id),
            total_steps=progress.total_steps,
        )
        return progress

    def load_progress(
        self, assignment_id: AssignmentId, for_update: bool = False, refresh: bool = False
    ) -> FlowProgress:
        """
        Return the assignment's progress, loading it once per service.

        Args:
            assignment_id: The assignment
            for_update: Lock the progress row; an unlocked cached copy is reloaded
            refresh: Drop the cached copy and read through to the repository.
                Every operation that opens a transaction starts with a refresh.

        Raises:
            ProgressNotFoundError: If the assignment has no progress
        """
        if refresh:
            self._progress.pop(assignment_id, None)
            self._locked.discard(assignment_id)
        progress = self._progress.get(assignment_id)
        if progress is not None and (not for_update or assignment_id in self._locked):
            return progress
        progress = self.progress_repository.find_by_assignment_id(assignment_id, for_update=for_update)
        if progress is None:
            raise ProgressNotFoundError(assignment_id)
        self._progress[assignment_id] = progress
        if for_update:
            self._locked.add(assignment_id)
        return progress

    def start_progress(self, assignment_id: AssignmentId, now: datetime | None = None) -> UnlockResult:
        progress = self.load_progress(assignment_id, for_update=True, refresh=True)
        result = progress.start(now)
        self.progress_repository.save(progress)
        return result

    def update_component_progress(
        self,
        assignment_id: AssignmentId,
        component_id: ComponentSnapshotId,
        status: ComponentStatus,
        data: dict[str, Any],
        time_spent: float | None = None,
        completed_at: datetime | None = None,
        now: datetime | None = None,
    ) -> ComponentProgress:
        """
        Persist the outcome of one interaction on a component.

        Raises:
            ProgressNotFoundError: If the assignment has no progress
            ComponentLockedError: If the component is locked
        """
        progress = self.load_progress(assignment_id, for_update=True)
        component = progress.record_interaction(
            component_id,
            status=status,
            progress_data=data,
            time_spent=time_spent or 0,
            completed_at=completed_at,
            now=now,
        )
        self.progress_repository.save(progress)
        logger.debug(
            "component_progress_updated",
            assignment_id=str(assignment_id),
            component_id=str(component_id),
            status=component.status.value,
            percentage=component.percentage,
        )
        return component

    def check_step_completion(self, assignment_id: AssignmentId, step_id: StepSnapshotId) -> bool:
        """Whether every required component of the step is completed."""
        return self.load_progress(assignment_id).is_step_completed(step_id)

    def unlock_next_step(
        self, assignment_id: AssignmentId, step_id: StepSnapshotId, now: datetime | None = None
    ) -> UnlockResult:
        """
        Complete a step and unlock the step after it, by order.

        Following steps without required components are completed on the
        way, so the learner never lands on a step with nothing to do.
        """
        progress = self.load_progress(assignment_id, for_update=True)
        result = progress.complete_step(step_id, now=now)
        self.progress_repository.save(progress)
        if result.unlocked_steps:
            logger.info(
                "steps_unlocked",
                assignment_id=str(assignment_id),
                step_orders=[s.order for s in result.unlocked_steps],
                unlocked_components=len(result.unlocked_components),
            )
        return result

    def check_flow_completion(self, assignment_id: AssignmentId) -> bool:
        return self.load_progress(assignment_id).is_completed

    def reset_component_progress(
        self, assignment_id: AssignmentId, component_id: ComponentSnapshotId
    ) -> ComponentProgress:
        """
        Put a started but not completed component back to UNLOCKED.

        Raises:
            BusinessRuleViolationError: If the component is locked or completed
        """
        progress = self.load_progress(assignment_id, for_update=True)
        component = progress.reset_component(component_id)
        self.progress_repository.save(progress)
        logger.info(
            "component_progress_reset",
            assignment_id=str(assignment_id),
            component_id=str(component_id),
        )
        return component

    def get_next_available_actions(
        self,
        assignment_id: AssignmentId,
        component_id: ComponentSnapshotId,
        now: datetime | None = None,
    ) -> list[ComponentAction]:
        """Actions the learner can take next on a component."""
        snapshot = self._snapshot(assignment_id)
        located = snapshot.find_component(component_id)
        if located is None:
            raise ComponentNotFoundError(component_id)
        _, component = located
        component_progress = self.load_progress(assignment_id).component(component_id)
        if component_progress is None or component_progress.is_locked:
            return []
        context = InteractionContext(
            component=component, progress=component_progress, now=now or datetime.now(UTC)
        )
        actions = self.registry.available_actions(context)
        if component_progress.status in (ComponentStatus.IN_PROGRESS, ComponentStatus.FAILED):
            actions.append(ComponentAction.RESET_PROGRESS)
        return actions

    def get_progress_summary(self, assignment_id: AssignmentId) -> ProgressSummary:
        progress = self.load_progress(assignment_id, refresh=True)
        snapshot = self._snapshot(assignment_id)

        steps: list[StepSummary] = []
        next_component_id: ComponentSnapshotId | None = None
        for step in progress.steps:
            step_snapshot = snapshot.step_by_id(step.step_snapshot_id)
            steps.append(
                StepSummary(
                    step_snapshot_id=step.step_snapshot_id,
                    order=step.order,
                    title=step_snapshot.title if step_snapshot else "",
                    status=step.status,
                    percentage=step.percentage,
                    time_spent=step.time_spent,
                    completed_components=sum(1 for c in step.components if c.is_completed),
                    total_components=len(step.components),
                )
            )
            if next_component_id is None and progress.is_step_accessible(step.order):
                pending = next(
                    (c for c in step.components if not c.is_locked and not c.is_terminal), None
                )
                if pending is not None:
                    next_component_id = pending.component_snapshot_id

        components = [c for step in progress.steps for c in step.components]
        stats = {
            "total_components": len(components),
            "completed_components": sum(1 for c in components if c.is_completed),
            "in_progress_components": sum(
                1 for c in components if c.status == ComponentStatus.IN_PROGRESS
            ),
            "failed_components": sum(1 for c in components if c.status == ComponentStatus.FAILED),
            "locked_components": sum(1 for c in components if c.is_locked),
        }
        return ProgressSummary(
            assignment_id=assignment_id,
            status=progress.status,
            percentage=progress.percentage,
            current_step_order=progress.current_step_order,
            completed_steps=progress.completed_steps,
            total_steps=progress.total_steps,
            time_spent=progress.time_spent,
            steps=steps,
            unlocked_step_ids=progress.unlocked_step_ids,
            next_component_id=next_component_id,
            stats=stats,
        )

    def get_progress_analytics(self, assignment_id: AssignmentId) -> ProgressAnalytics:
        """
        Flag components the learner struggles with.

        A component is struggling when it is not completed and either took
        more than STRUGGLING_ATTEMPTS attempts or more than STRUGGLING_SECONDS.
        """
        progress = self.load_progress(assignment_id, refresh=True)
        components = [c for step in progress.steps for c in step.components]
        struggling = [
            StrugglingComponent(
                component_snapshot_id=c.component_snapshot_id,
                status=c.status,
                attempts=c.attempts,
                time_spent=c.time_spent,
            )
            for c in components
            if not c.is_completed
            and (c.attempts > STRUGGLING_ATTEMPTS or c.time_spent > STRUGGLING_SECONDS)
        ]
        completed = [c for c in components if c.is_completed]
        average = (
            round(sum(c.time_spent for c in completed) / len(completed), 2) if completed else 0.0
        )
        return ProgressAnalytics(
            assignment_id=assignment_id,
            struggling_components=struggling,
            completed_components=len(completed),
            total_time_spent=progress.time_spent,
            average_time_per_completed_component=average,
        )

    def _snapshot(self, assignment_id: AssignmentId) -> FlowSnapshot:
        snapshot = self.snapshot_repository.find_by_assignment_id(assignment_id)
        if snapshot is None:
            raise SnapshotNotFoundError(assignment_id)
        return snapshot

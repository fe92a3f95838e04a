"""
Learner progress through a flow snapshot.

FlowProgress is the aggregate root (one per assignment). It owns one
StepProgress per snapshot step, each owning one ComponentProgress per
snapshot component. Totals and percentages are derived on read.
"""

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from buddyflow.domain.common.aggregate_root import AggregateRoot
from buddyflow.domain.common.domain_event import DomainEvent
from buddyflow.domain.common.entity import Entity
from buddyflow.domain.common.exceptions import (
    BusinessRuleViolationError,
    InvariantViolationError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentProgressId,
    ComponentSnapshotId,
    FlowProgressId,
    StepProgressId,
    StepSnapshotId,
)
from buddyflow.domain.progress.exceptions import ComponentLockedError
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot


class ComponentStatus(StrEnum):
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StepStatus(StrEnum):
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class FlowProgressStatus(StrEnum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True, kw_only=True)
class StepUnlocked(DomainEvent):
    assignment_id: AssignmentId
    step_snapshot_id: StepSnapshotId
    order: int


@dataclass(frozen=True, kw_only=True)
class StepCompleted(DomainEvent):
    assignment_id: AssignmentId
    step_snapshot_id: StepSnapshotId
    order: int


@dataclass(frozen=True, kw_only=True)
class FlowProgressCompleted(DomainEvent):
    assignment_id: AssignmentId


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


@dataclass(eq=False)
class ComponentProgress(Entity[ComponentProgressId]):
    """
    Progress of one learner on one snapshot component.

    Business Rules:
    - A locked component cannot record interactions
    - Time spent never decreases
    - Once completed, a component stays completed
    """

    id: ComponentProgressId
    component_snapshot_id: ComponentSnapshotId
    order: int
    is_required: bool = True
    status: ComponentStatus = ComponentStatus.LOCKED
    started_at: datetime | None = None
    completed_at: datetime | None = None
    time_spent: int = 0
    progress_data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.time_spent < 0:
            raise ValidationError("Time spent cannot be negative", field="time_spent")

    @property
    def is_completed(self) -> bool:
        return self.status == ComponentStatus.COMPLETED

    @property
    def is_locked(self) -> bool:
        return self.status == ComponentStatus.LOCKED

    @property
    def is_terminal(self) -> bool:
        return self.status in (ComponentStatus.COMPLETED, ComponentStatus.FAILED)

    @property
    def percentage(self) -> float:
        if self.is_completed:
            return 100.0
        return float(self.progress_data.get("progress", 0.0))

    @property
    def attempts(self) -> int:
        return int(self.progress_data.get("attempts", 0))

    def unlock(self) -> bool:
        """Unlock the component; returns True when the status changed."""
        if self.status != ComponentStatus.LOCKED:
            return False
        self.status = ComponentStatus.UNLOCKED
        return True

    def record_interaction(
        self,
        status: ComponentStatus,
        progress_data: dict[str, Any],
        time_spent: float = 0,
        completed_at: datetime | None = None,
        now: datetime | None = None,
    ) -> None:
        """
        Apply the outcome of one interaction.

        Args:
            status: Status computed by the component handler
            progress_data: New per-type accumulator
            time_spent: Seconds spent during this interaction
            completed_at: Completion timestamp computed by the handler
            now: Current time

        Raises:
            ComponentLockedError: If the component is locked
            InvariantViolationError: If a completed component would regress
            ValidationError: If time spent is negative
        """
        if self.is_locked:
            raise ComponentLockedError(self.component_snapshot_id)
        if self.is_completed and status != ComponentStatus.COMPLETED:
            raise InvariantViolationError("ComponentProgress", "completed components cannot regress")
        if time_spent < 0:
            raise ValidationError("Time spent cannot be negative", field="time_spent", value=time_spent)

        current = _now(now)
        if self.started_at is None:
            self.started_at = current
        self.time_spent += round(time_spent)
        self.progress_data = copy.deepcopy(progress_data)
        if status == ComponentStatus.COMPLETED and self.completed_at is None:
            self.completed_at = completed_at or current
        self.status = status

    def reset(self) -> None:
        """
        Clear the accumulator so the learner can start the component again.

        Raises:
            BusinessRuleViolationError: If the component is locked or completed
        """
        if self.is_locked:
            raise ComponentLockedError(self.component_snapshot_id)
        if self.is_completed:
            raise BusinessRuleViolationError(
                "completed_component_reset", "A completed component cannot be reset"
            )
        self.status = ComponentStatus.UNLOCKED
        self.progress_data = {}
        self.started_at = None
        self.completed_at = None

    @classmethod
    def create(
        cls,
        component_snapshot_id: ComponentSnapshotId,
        order: int,
        is_required: bool = True,
        status: ComponentStatus = ComponentStatus.LOCKED,
    ) -> "ComponentProgress":
        return cls(
            id=ComponentProgressId.generate(),
            component_snapshot_id=component_snapshot_id,
            order=order,
            is_required=is_required,
            status=status,
        )


@dataclass(eq=False)
class StepProgress(Entity[StepProgressId]):
    id: StepProgressId
    step_snapshot_id: StepSnapshotId
    order: int
    status: StepStatus = StepStatus.LOCKED
    started_at: datetime | None = None
    completed_at: datetime | None = None
    components: list[ComponentProgress] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.components.sort(key=lambda c: c.order)

    @property
    def is_completed(self) -> bool:
        return self.status == StepStatus.COMPLETED

    @property
    def is_locked(self) -> bool:
        return self.status == StepStatus.LOCKED

    @property
    def required_components(self) -> list[ComponentProgress]:
        return [c for c in self.components if c.is_required]

    @property
    def all_required_completed(self) -> bool:
        """True when every required component is completed (vacuously for none)."""
        return all(c.is_completed for c in self.required_components)

    @property
    def time_spent(self) -> int:
        return sum(c.time_spent for c in self.components)

    @property
    def percentage(self) -> float:
        if self.is_completed:
            return 100.0
        counted = self.required_components or self.components
        if not counted:
            return 0.0
        done = sum(1 for c in counted if c.is_completed)
        return round(done / len(counted) * 100, 2)

    def component(self, component_id: ComponentSnapshotId) -> ComponentProgress | None:
        return next((c for c in self.components if c.component_snapshot_id == component_id), None)

    def unlock(self) -> list[ComponentProgress]:
        """Unlock the step and all of its components; returns the newly unlocked components."""
        if self.status == StepStatus.LOCKED:
            self.status = StepStatus.UNLOCKED
        return [c for c in self.components if c.unlock()]

    def mark_started(self, now: datetime | None = None) -> None:
        if self.status == StepStatus.UNLOCKED:
            self.status = StepStatus.IN_PROGRESS
            self.started_at = _now(now)

    def complete(self, now: datetime | None = None) -> None:
        current = _now(now)
        if self.started_at is None:
            self.started_at = current
        self.status = StepStatus.COMPLETED
        self.completed_at = current

    @classmethod
    def create(
        cls,
        step_snapshot_id: StepSnapshotId,
        order: int,
        components: list[ComponentProgress],
    ) -> "StepProgress":
        return cls(
            id=StepProgressId.generate(),
            step_snapshot_id=step_snapshot_id,
            order=order,
            components=components,
        )


@dataclass(frozen=True)
class UnlockResult:
    """Steps and components that became accessible after a step was completed."""

    completed_steps: list[StepProgress] = field(default_factory=list)
    unlocked_steps: list[StepProgress] = field(default_factory=list)
    unlocked_components: list[ComponentProgress] = field(default_factory=list)
    flow_completed: bool = False


@dataclass(eq=False)
class FlowProgress(AggregateRoot[FlowProgressId]):
    """
    Progress of one assignment through its snapshot.

    Business Rules:
    - Steps are gated strictly in order: only steps up to current_step_order
      are accessible
    - A step completes when all of its required components are completed;
      completing it unlocks the next step by order and all its components
    - Steps without required components complete as soon as they are reached
    - Completed steps are never locked again
    """

    id: FlowProgressId
    assignment_id: AssignmentId
    status: FlowProgressStatus = FlowProgressStatus.NOT_STARTED
    current_step_order: int = 0
    steps: list[StepProgress] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_activity: datetime | None = None

    def __post_init__(self) -> None:
        orders = [s.order for s in self.steps]
        if len(orders) != len(set(orders)):
            raise InvariantViolationError("FlowProgress", "step orders must be unique")
        self.steps.sort(key=lambda s: s.order)

    # Derived counters

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def completed_steps(self) -> int:
        return sum(1 for s in self.steps if s.is_completed)

    @property
    def percentage(self) -> float:
        if not self.steps:
            return 0.0
        return round(sum(s.percentage for s in self.steps) / len(self.steps), 2)

    @property
    def time_spent(self) -> int:
        return sum(s.time_spent for s in self.steps)

    @property
    def is_completed(self) -> bool:
        return self.status == FlowProgressStatus.COMPLETED

    @property
    def unlocked_step_ids(self) -> list[StepSnapshotId]:
        return [s.step_snapshot_id for s in self.steps if not s.is_locked]

    # Lookups

    def step(self, step_snapshot_id: StepSnapshotId) -> StepProgress | None:
        return next((s for s in self.steps if s.step_snapshot_id == step_snapshot_id), None)

    def step_for_component(self, component_id: ComponentSnapshotId) -> StepProgress | None:
        return next((s for s in self.steps if s.component(component_id) is not None), None)

    def component(self, component_id: ComponentSnapshotId) -> ComponentProgress | None:
        step = self.step_for_component(component_id)
        return step.component(component_id) if step else None

    def is_step_accessible(self, order: int) -> bool:
        return order <= self.current_step_order

    def is_step_completed(self, step_snapshot_id: StepSnapshotId) -> bool:
        step = self._require_step(step_snapshot_id)
        return step.all_required_completed

    # Mutations

    def start(self, now: datetime | None = None) -> UnlockResult:
        """
        Mark the flow as started and skip past leading steps with nothing required.

        Returns:
            Steps completed and unlocked while skipping
        """
        current = _now(now)
        if self.status == FlowProgressStatus.NOT_STARTED:
            self.status = FlowProgressStatus.IN_PROGRESS
            self.started_at = current
        self.last_activity = current
        first = self.steps[0] if self.steps else None
        if first is None or first.is_completed or not first.all_required_completed:
            return UnlockResult()
        return self.complete_step(first.step_snapshot_id, now=current)

    def record_interaction(
        self,
        component_id: ComponentSnapshotId,
        status: ComponentStatus,
        progress_data: dict[str, Any],
        time_spent: float = 0,
        completed_at: datetime | None = None,
        now: datetime | None = None,
    ) -> ComponentProgress:
        """
        Apply a handler outcome to one component.

        Raises:
            BusinessRuleViolationError: If the component is not part of this progress
            ComponentLockedError: If the component is locked
        """
        current = _now(now)
        step = self.step_for_component(component_id)
        if step is None:
            raise BusinessRuleViolationError(
                "component_in_progress", f"Component {component_id} is not tracked by this progress"
            )
        component = step.component(component_id)
        assert component is not None
        component.record_interaction(
            status=status,
            progress_data=progress_data,
            time_spent=time_spent,
            completed_at=completed_at,
            now=current,
        )
        step.mark_started(current)
        if self.status == FlowProgressStatus.NOT_STARTED:
            self.status = FlowProgressStatus.IN_PROGRESS
            self.started_at = current
        self.last_activity = current
        return component

    def complete_step(
        self, step_snapshot_id: StepSnapshotId, now: datetime | None = None
    ) -> UnlockResult:
        """
        Complete a step and unlock what follows it.

        Following steps without required components are completed on the
        way. Completing an already completed step is a no-op.

        Raises:
            BusinessRuleViolationError: If required components are still open
        """
        current = _now(now)
        step = self._require_step(step_snapshot_id)
        if step.is_completed:
            return UnlockResult()
        if not step.all_required_completed:
            raise BusinessRuleViolationError(
                "step_requirements", f"Step {step.order} still has required components open"
            )

        completed: list[StepProgress] = []
        unlocked_steps: list[StepProgress] = []
        unlocked_components: list[ComponentProgress] = []

        while step is not None:
            step.complete(current)
            completed.append(step)
            self._record_event(
                StepCompleted(
                    assignment_id=self.assignment_id,
                    step_snapshot_id=step.step_snapshot_id,
                    order=step.order,
                )
            )
            following = self._next_step_after(step.order)
            if following is None:
                break
            was_locked = following.is_locked
            unlocked_components.extend(following.unlock())
            if was_locked:
                unlocked_steps.append(following)
                self._record_event(
                    StepUnlocked(
                        assignment_id=self.assignment_id,
                        step_snapshot_id=following.step_snapshot_id,
                        order=following.order,
                    )
                )
            self.current_step_order = max(self.current_step_order, following.order)
            if following.is_completed or not following.all_required_completed:
                break
            step = following

        flow_completed = self._complete_if_done(current)
        self.last_activity = current
        return UnlockResult(
            completed_steps=completed,
            unlocked_steps=unlocked_steps,
            unlocked_components=unlocked_components,
            flow_completed=flow_completed,
        )

    def reset_component(self, component_id: ComponentSnapshotId) -> ComponentProgress:
        component = self.component(component_id)
        if component is None:
            raise BusinessRuleViolationError(
                "component_in_progress", f"Component {component_id} is not tracked by this progress"
            )
        component.reset()
        return component

    def _complete_if_done(self, now: datetime) -> bool:
        if self.is_completed or not self.steps:
            return False
        if all(s.is_completed for s in self.steps):
            self.status = FlowProgressStatus.COMPLETED
            self.completed_at = now
            self._record_event(FlowProgressCompleted(assignment_id=self.assignment_id))
            return True
        return False

    def _next_step_after(self, order: int) -> StepProgress | None:
        return next((s for s in self.steps if s.order > order), None)

    def _require_step(self, step_snapshot_id: StepSnapshotId) -> StepProgress:
        step = self.step(step_snapshot_id)
        if step is None:
            raise BusinessRuleViolationError(
                "step_in_progress", f"Step {step_snapshot_id} is not tracked by this progress"
            )
        return step

    @classmethod
    def initialize(cls, assignment_id: AssignmentId, snapshot: FlowSnapshot) -> "FlowProgress":
        """
        Build the progress tree for a freshly frozen snapshot.

        The first step and its components start unlocked; all others are locked.
        """
        steps = [
            StepProgress.create(
                step_snapshot_id=step.id,
                order=step.order,
                components=[
                    ComponentProgress.create(
                        component_snapshot_id=component.id,
                        order=component.order,
                        is_required=component.is_required,
                    )
                    for component in step.components
                ],
            )
            for step in snapshot.steps
        ]
        progress = cls(id=FlowProgressId.generate(), assignment_id=assignment_id, steps=steps)
        if progress.steps:
            progress.steps[0].unlock()
            progress.current_step_order = progress.steps[0].order
        return progress

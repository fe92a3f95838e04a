"""
Frozen per-assignment copy of a flow template.

Snapshot entities are frozen dataclasses. Component payloads are deep
copied on construction, so nothing a snapshot holds is shared with the
template it was built from.
"""

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from buddyflow.domain.common.entity import Entity
from buddyflow.domain.common.exceptions import InvariantViolationError
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    ComponentType,
    ContentHash,
    FlowId,
    FlowSnapshotId,
    FlowStepId,
    StepSnapshotId,
    UserId,
)

SNAPSHOT_FORMAT_VERSION = "1.0.0"


@dataclass(frozen=True, eq=False)
class ComponentSnapshot(Entity[ComponentSnapshotId]):
    id: ComponentSnapshotId
    order: int
    type: str
    data: dict[str, Any] = field(default_factory=dict)
    type_version: str = "1.0"
    is_required: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", copy.deepcopy(dict(self.data)))

    @property
    def known_type(self) -> ComponentType | None:
        """The handled variant, or None when the type is unknown to this engine."""
        return ComponentType.parse(self.type)

    def to_structure(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "type": self.type,
            "type_version": self.type_version,
            "is_required": self.is_required,
            "data": self.data,
        }


@dataclass(frozen=True, eq=False)
class FlowStepSnapshot(Entity[StepSnapshotId]):
    id: StepSnapshotId
    order: int
    title: str
    description: str = ""
    components: tuple[ComponentSnapshot, ...] = ()
    original_step_id: FlowStepId | None = None

    def __post_init__(self) -> None:
        orders = [c.order for c in self.components]
        if len(orders) != len(set(orders)):
            raise InvariantViolationError("FlowStepSnapshot", "component orders must be unique")
        object.__setattr__(
            self, "components", tuple(sorted(self.components, key=lambda c: c.order))
        )

    @property
    def required_components(self) -> tuple[ComponentSnapshot, ...]:
        return tuple(c for c in self.components if c.is_required)

    def find_component(self, component_id: ComponentSnapshotId) -> ComponentSnapshot | None:
        return next((c for c in self.components if c.id == component_id), None)

    def to_structure(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "title": self.title,
            "description": self.description,
            "original_step_id": str(self.original_step_id) if self.original_step_id else None,
            "components": [c.to_structure() for c in self.components],
        }


@dataclass(frozen=True, eq=False)
class FlowSnapshot(Entity[FlowSnapshotId]):
    """
    Immutable deep copy of a flow, owned by one assignment.

    Business Rules:
    - Never mutated after creation; detaching from a deleted assignment
      produces a new value
    - Step orders are unique and steps are kept sorted by order
    - Provenance (original flow id and version) is always recorded
    """

    id: FlowSnapshotId
    title: str
    original_flow_id: FlowId
    original_flow_version: str
    created_at: datetime
    description: str = ""
    assignment_id: AssignmentId | None = None
    created_by: UserId | None = None
    steps: tuple[FlowStepSnapshot, ...] = ()
    snapshot_version: str = SNAPSHOT_FORMAT_VERSION
    content_hash: ContentHash | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        orders = [s.order for s in self.steps]
        if len(orders) != len(set(orders)):
            raise InvariantViolationError("FlowSnapshot", "step orders must be unique")
        object.__setattr__(self, "steps", tuple(sorted(self.steps, key=lambda s: s.order)))
        object.__setattr__(self, "metadata", copy.deepcopy(dict(self.metadata)))

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def total_components(self) -> int:
        return sum(len(step.components) for step in self.steps)

    @property
    def first_step(self) -> FlowStepSnapshot | None:
        return self.steps[0] if self.steps else None

    def step_by_id(self, step_id: StepSnapshotId) -> FlowStepSnapshot | None:
        return next((s for s in self.steps if s.id == step_id), None)

    def step_by_order(self, order: int) -> FlowStepSnapshot | None:
        return next((s for s in self.steps if s.order == order), None)

    def next_step_after(self, order: int) -> FlowStepSnapshot | None:
        """Return the step with the smallest order greater than ``order``."""
        return next((s for s in self.steps if s.order > order), None)

    def find_component(
        self, component_id: ComponentSnapshotId
    ) -> tuple[FlowStepSnapshot, ComponentSnapshot] | None:
        """Locate a component and its containing step."""
        for step in self.steps:
            component = step.find_component(component_id)
            if component is not None:
                return step, component
        return None

    def detached(self) -> "FlowSnapshot":
        """Return a copy without the assignment back-reference."""
        return replace(self, assignment_id=None)

    def to_structure(self) -> dict[str, Any]:
        """Content-only structure used for hashing and size statistics."""
        return {
            "title": self.title,
            "description": self.description,
            "original_flow_id": str(self.original_flow_id),
            "original_flow_version": self.original_flow_version,
            "snapshot_version": self.snapshot_version,
            "steps": [s.to_structure() for s in self.steps],
        }

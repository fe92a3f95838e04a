"""
Flow template aggregate.

A Flow is the mutable, author-edited learning path. Running assignments
never read it directly: they work against a snapshot frozen at
assignment time.
"""

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from buddyflow.domain.common.aggregate_root import AggregateRoot
from buddyflow.domain.common.entity import Entity
from buddyflow.domain.common.exceptions import (
    BusinessRuleViolationError,
    InvariantViolationError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import (
    ComponentDefinitionId,
    FlowId,
    FlowStepId,
    UserId,
)

DEFAULT_FLOW_VERSION = "1.0.0"
MAX_TITLE_LENGTH = 255


@dataclass(eq=False)
class ComponentDefinition(Entity[ComponentDefinitionId]):
    """Component inside a template step; ``data`` is an opaque per-type payload."""

    id: ComponentDefinitionId
    order: int
    type: str
    data: dict[str, Any] = field(default_factory=dict)
    type_version: str = "1.0"
    is_required: bool = True

    def __post_init__(self) -> None:
        if not self.type or not self.type.strip():
            raise ValidationError("Component type cannot be empty", field="type")
        if self.order < 0:
            raise ValidationError("Component order must be non-negative", field="order", value=self.order)

    @classmethod
    def create(
        cls,
        order: int,
        type: str,
        data: dict[str, Any] | None = None,
        type_version: str = "1.0",
        is_required: bool = True,
    ) -> "ComponentDefinition":
        return cls(
            id=ComponentDefinitionId.generate(),
            order=order,
            type=type.strip().lower(),
            data=copy.deepcopy(data or {}),
            type_version=type_version,
            is_required=is_required,
        )


@dataclass(eq=False)
class FlowStep(Entity[FlowStepId]):
    """
    Ordered step of a flow template.

    Business Rules:
    - Title cannot be empty
    - Component orders are unique within the step
    """

    id: FlowStepId
    order: int
    title: str
    description: str = ""
    components: list[ComponentDefinition] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.title or not self.title.strip():
            raise ValidationError("Step title cannot be empty", field="title")
        orders = [c.order for c in self.components]
        if len(orders) != len(set(orders)):
            raise InvariantViolationError("FlowStep", "component orders must be unique")
        self.components.sort(key=lambda c: c.order)

    @property
    def required_components(self) -> list[ComponentDefinition]:
        return [c for c in self.components if c.is_required]

    def add_component(self, component: ComponentDefinition) -> None:
        """
        Append a component to the step.

        Raises:
            InvariantViolationError: If a component with the same order exists
        """
        if any(c.order == component.order for c in self.components):
            raise InvariantViolationError(
                "FlowStep", f"component order {component.order} already used"
            )
        self.components.append(component)
        self.components.sort(key=lambda c: c.order)

    def remove_component(self, component_id: ComponentDefinitionId) -> None:
        self.components = [c for c in self.components if c.id != component_id]

    @classmethod
    def create(
        cls,
        order: int,
        title: str,
        description: str = "",
        components: list[ComponentDefinition] | None = None,
    ) -> "FlowStep":
        return cls(
            id=FlowStepId.generate(),
            order=order,
            title=title.strip(),
            description=description.strip(),
            components=list(components or []),
        )


@dataclass(eq=False)
class Flow(AggregateRoot[FlowId]):
    """
    Reusable learning path template.

    Business Rules:
    - Title cannot be empty and is at most MAX_TITLE_LENGTH characters
    - Step orders are unique within the flow
    - A flow can be assigned only while it is active and has at least one step
    """

    id: FlowId
    title: str
    creator_id: UserId
    description: str = ""
    version: str = DEFAULT_FLOW_VERSION
    is_active: bool = True
    default_deadline_days: int | None = None
    steps: list[FlowStep] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        self._validate_title(self.title)
        if self.default_deadline_days is not None and self.default_deadline_days < 1:
            raise ValidationError(
                "Default deadline days must be at least 1",
                field="default_deadline_days",
                value=self.default_deadline_days,
            )
        orders = [s.order for s in self.steps]
        if len(orders) != len(set(orders)):
            raise InvariantViolationError("Flow", "step orders must be unique")
        self.steps.sort(key=lambda s: s.order)

    @staticmethod
    def _validate_title(title: str) -> None:
        if not title or not title.strip():
            raise ValidationError("Flow title cannot be empty", field="title")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Flow title cannot exceed {MAX_TITLE_LENGTH} characters", field="title"
            )

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def total_components(self) -> int:
        return sum(len(step.components) for step in self.steps)

    @property
    def is_ready_for_assignment(self) -> bool:
        """Whether the flow can be frozen into a snapshot."""
        return self.is_active and bool(self.steps)

    def ordered_steps(self) -> list[FlowStep]:
        return sorted(self.steps, key=lambda s: s.order)

    def rename(self, title: str, description: str | None = None) -> None:
        self._validate_title(title)
        self.title = title.strip()
        if description is not None:
            self.description = description.strip()
        self._touch()

    def add_step(self, step: FlowStep) -> None:
        """
        Add a step to the template.

        Raises:
            InvariantViolationError: If a step with the same order exists
        """
        if any(s.order == step.order for s in self.steps):
            raise InvariantViolationError("Flow", f"step order {step.order} already used")
        self.steps.append(step)
        self.steps.sort(key=lambda s: s.order)
        self._touch()

    def remove_step(self, step_id: FlowStepId) -> None:
        remaining = [s for s in self.steps if s.id != step_id]
        if len(remaining) == len(self.steps):
            raise BusinessRuleViolationError("step_exists", f"Step {step_id} is not part of this flow")
        self.steps = remaining
        self._touch()

    def activate(self) -> None:
        self.is_active = True
        self._touch()

    def deactivate(self) -> None:
        self.is_active = False
        self._touch()

    def bump_version(self, version: str) -> None:
        if not version or not version.strip():
            raise ValidationError("Version cannot be empty", field="version")
        self.version = version.strip()
        self._touch()

    def _touch(self) -> None:
        self.updated_at = datetime.now(UTC)

    @classmethod
    def create(
        cls,
        title: str,
        creator_id: UserId,
        description: str = "",
        steps: list[FlowStep] | None = None,
        default_deadline_days: int | None = None,
        version: str = DEFAULT_FLOW_VERSION,
    ) -> "Flow":
        """
        Create a new active flow template.

        Args:
            title: Flow title
            creator_id: Author of the flow
            description: Optional description
            steps: Initial steps
            default_deadline_days: Business days granted to assignees by default
            version: Template version label

        Returns:
            New Flow instance
        """
        now = datetime.now(UTC)
        return cls(
            id=FlowId.generate(),
            title=title.strip(),
            creator_id=creator_id,
            description=description.strip(),
            version=version,
            default_deadline_days=default_deadline_days,
            steps=list(steps or []),
            created_at=now,
            updated_at=now,
        )

"""
Snapshot builder domain service.

Freezes a flow template into a FlowSnapshot: every step and component is
copied by value, in order, under new identifiers. The template can be
edited freely afterwards without touching running assignments.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

import structlog

from buddyflow.domain.common.exceptions import ValidationError
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    ContentHash,
    FlowSnapshotId,
    StepSnapshotId,
    UserId,
    canonical_json,
)
from buddyflow.domain.flows.entities.flow import ComponentDefinition, Flow, FlowStep
from buddyflow.domain.flows.exceptions import FlowInactiveError, FlowNotReadyError
from buddyflow.domain.progress.handlers.base import ValidationResult
from buddyflow.domain.progress.handlers.registry import ComponentHandlerRegistry
from buddyflow.domain.snapshots.entities.flow_snapshot import (
    SNAPSHOT_FORMAT_VERSION,
    ComponentSnapshot,
    FlowSnapshot,
    FlowStepSnapshot,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SnapshotContext:
    """Who the snapshot is built for and by whom."""

    assignment_id: AssignmentId | None = None
    created_by: UserId | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SnapshotStats:
    total_steps: int
    total_components: int
    creation_time_ms: float
    snapshot_size: int


class SnapshotBuilder:
    """Builds immutable snapshots from flow templates."""

    def __init__(
        self,
        registry: ComponentHandlerRegistry,
        snapshot_version: str = SNAPSHOT_FORMAT_VERSION,
    ) -> None:
        self.registry = registry
        self.snapshot_version = snapshot_version

    def validate_flow(self, flow: Flow) -> ValidationResult:
        """
        Check that a flow can be frozen.

        A flow needs at least one step. Each step needs a title. Components
        of known types must carry a valid payload. Empty steps and unknown
        component types only produce warnings.
        """
        errors: list[str] = []
        warnings: list[str] = []
        if not flow.steps:
            errors.append("flow has no steps")
        for step in flow.ordered_steps():
            if not step.title.strip():
                errors.append(f"step {step.order}: title is required")
            if not step.components:
                warnings.append(f"step {step.order} has no components")
            for component in step.components:
                result = self.registry.validate_schema(component.type, component.data)
                errors.extend(
                    f"step {step.order} component {component.order}: {error}"
                    for error in result.errors
                )
                warnings.extend(
                    f"step {step.order} component {component.order}: {warning}"
                    for warning in result.warnings
                )
        if errors:
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)
        return ValidationResult.ok(warnings=warnings)

    def create_snapshot(
        self,
        flow: Flow,
        context: SnapshotContext,
        now: datetime | None = None,
    ) -> tuple[FlowSnapshot, SnapshotStats]:
        """
        Freeze a flow into a snapshot.

        Args:
            flow: Fully loaded flow aggregate (all steps and components)
            context: Owning assignment, creator and caller metadata
            now: Creation timestamp (defaults to the current time)

        Returns:
            The snapshot and its statistics

        Raises:
            FlowInactiveError: If the flow is not active
            FlowNotReadyError: If the flow has no steps
            ValidationError: If a step or a known component payload is invalid
        """
        started = time.perf_counter()
        if not flow.is_active:
            raise FlowInactiveError(flow.id)
        if not flow.steps:
            raise FlowNotReadyError(flow.id)

        validation = self.validate_flow(flow)
        if not validation.is_valid:
            raise ValidationError(
                f"Flow {flow.id} cannot be frozen", field="flow", errors=validation.errors
            )
        for warning in validation.warnings:
            logger.warning("snapshot_validation_warning", flow_id=str(flow.id), warning=warning)

        steps = tuple(self._copy_step(step) for step in flow.ordered_steps())
        draft = FlowSnapshot(
            id=FlowSnapshotId.generate(),
            title=flow.title,
            description=flow.description,
            original_flow_id=flow.id,
            original_flow_version=flow.version,
            created_at=now or datetime.now(UTC),
            assignment_id=context.assignment_id,
            created_by=context.created_by,
            steps=steps,
            snapshot_version=self.snapshot_version,
            metadata=context.metadata,
        )
        structure = draft.to_structure()
        snapshot = replace(draft, content_hash=ContentHash.compute_from_structure(structure))

        stats = SnapshotStats(
            total_steps=snapshot.total_steps,
            total_components=snapshot.total_components,
            creation_time_ms=round((time.perf_counter() - started) * 1000, 3),
            snapshot_size=len(canonical_json(structure).encode("utf-8")),
        )
        logger.info(
            "snapshot_built",
            flow_id=str(flow.id),
            snapshot_id=str(snapshot.id),
            total_steps=stats.total_steps,
            total_components=stats.total_components,
            snapshot_size=stats.snapshot_size,
        )
        return snapshot, stats

    @staticmethod
    def _copy_step(step: FlowStep) -> FlowStepSnapshot:
        return FlowStepSnapshot(
            id=StepSnapshotId.generate(),
            order=step.order,
            title=step.title,
            description=step.description,
            original_step_id=step.id,
            components=tuple(SnapshotBuilder._copy_component(c) for c in step.components),
        )

    @staticmethod
    def _copy_component(component: ComponentDefinition) -> ComponentSnapshot:
        return ComponentSnapshot(
            id=ComponentSnapshotId.generate(),
            order=component.order,
            type=component.type,
            type_version=component.type_version,
            is_required=component.is_required,
            data=component.data,
        )

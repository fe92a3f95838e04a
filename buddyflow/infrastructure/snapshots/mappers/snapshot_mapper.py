"""Mapper for FlowSnapshot ORM ↔ Domain conversion."""

import copy

from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    ContentHash,
    FlowId,
    FlowSnapshotId,
    FlowStepId,
    StepSnapshotId,
    UserId,
)
from buddyflow.domain.snapshots.entities.flow_snapshot import (
    ComponentSnapshot,
    FlowSnapshot,
    FlowStepSnapshot,
)
from buddyflow.infrastructure.common.datetimes import require_utc
from buddyflow.models import ComponentSnapshot as ComponentSnapshotORM
from buddyflow.models import FlowSnapshot as FlowSnapshotORM
from buddyflow.models import FlowStepSnapshot as FlowStepSnapshotORM


class FlowSnapshotMapper:
    """
    Mapper for FlowSnapshot ORM ↔ Domain conversion.

    Snapshots are written once; only the assignment back-reference is ever
    updated, so there is no update path for the step tree.
    """

    def to_domain(self, orm_model: FlowSnapshotORM) -> FlowSnapshot:
        """Convert ORM model to domain entity."""
        return FlowSnapshot(
            id=FlowSnapshotId(orm_model.id),
            title=orm_model.title,
            description=orm_model.description,
            original_flow_id=FlowId(orm_model.original_flow_id),
            original_flow_version=orm_model.original_flow_version,
            created_at=require_utc(orm_model.created_at),
            assignment_id=AssignmentId(orm_model.assignment_id) if orm_model.assignment_id else None,
            created_by=UserId(orm_model.created_by) if orm_model.created_by else None,
            snapshot_version=orm_model.snapshot_version,
            content_hash=ContentHash(orm_model.content_hash) if orm_model.content_hash else None,
            metadata=orm_model.snapshot_metadata or {},
            steps=tuple(self._step_to_domain(step) for step in orm_model.steps),
        )

    def to_orm(self, domain_entity: FlowSnapshot) -> FlowSnapshotORM:
        """Convert a new snapshot to its ORM tree."""
        return FlowSnapshotORM(
            id=domain_entity.id.value,
            assignment_id=domain_entity.assignment_id.value if domain_entity.assignment_id else None,
            original_flow_id=domain_entity.original_flow_id.value,
            original_flow_version=domain_entity.original_flow_version,
            title=domain_entity.title,
            description=domain_entity.description,
            created_by=domain_entity.created_by.value if domain_entity.created_by else None,
            snapshot_version=domain_entity.snapshot_version,
            content_hash=domain_entity.content_hash.value if domain_entity.content_hash else None,
            snapshot_metadata=copy.deepcopy(domain_entity.metadata),
            created_at=domain_entity.created_at,
            steps=[
                FlowStepSnapshotORM(
                    id=step.id.value,
                    original_step_id=step.original_step_id.value if step.original_step_id else None,
                    order=step.order,
                    title=step.title,
                    description=step.description,
                    components=[
                        ComponentSnapshotORM(
                            id=component.id.value,
                            order=component.order,
                            type=component.type,
                            type_version=component.type_version,
                            is_required=component.is_required,
                            data=copy.deepcopy(component.data),
                        )
                        for component in step.components
                    ],
                )
                for step in domain_entity.steps
            ],
        )

    def _step_to_domain(self, orm_step: FlowStepSnapshotORM) -> FlowStepSnapshot:
        return FlowStepSnapshot(
            id=StepSnapshotId(orm_step.id),
            order=orm_step.order,
            title=orm_step.title,
            description=orm_step.description,
            original_step_id=FlowStepId(orm_step.original_step_id) if orm_step.original_step_id else None,
            components=tuple(
                ComponentSnapshot(
                    id=ComponentSnapshotId(component.id),
                    order=component.order,
                    type=component.type,
                    data=component.data or {},
                    type_version=component.type_version,
                    is_required=component.is_required,
                )
                for component in orm_step.components
            ),
        )

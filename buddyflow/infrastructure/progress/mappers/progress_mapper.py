"""Mapper for FlowProgress ORM ↔ Domain conversion."""

import copy

from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentProgressId,
    ComponentSnapshotId,
    FlowProgressId,
    StepProgressId,
    StepSnapshotId,
)
from buddyflow.domain.progress.entities.progress import (
    ComponentProgress,
    ComponentStatus,
    FlowProgress,
    FlowProgressStatus,
    StepProgress,
    StepStatus,
)
from buddyflow.infrastructure.common.datetimes import ensure_utc
from buddyflow.models import ComponentProgress as ComponentProgressORM
from buddyflow.models import FlowProgress as FlowProgressORM
from buddyflow.models import StepProgress as StepProgressORM


class FlowProgressMapper:
    """
    Mapper for FlowProgress ORM ↔ Domain conversion.

    The step and component rows are created once with the progress; updates
    only rewrite their state, matched by id.
    """

    def to_domain(self, orm_model: FlowProgressORM) -> FlowProgress:
        """Convert ORM model to domain entity."""
        return FlowProgress(
            id=FlowProgressId(orm_model.id),
            assignment_id=AssignmentId(orm_model.assignment_id),
            status=FlowProgressStatus(orm_model.status),
            current_step_order=orm_model.current_step_order,
            started_at=ensure_utc(orm_model.started_at),
            completed_at=ensure_utc(orm_model.completed_at),
            last_activity=ensure_utc(orm_model.last_activity),
            steps=[self._step_to_domain(step) for step in orm_model.steps],
        )

    def to_orm(self, domain_entity: FlowProgress, orm_model: FlowProgressORM | None = None) -> FlowProgressORM:
        """Convert domain entity to ORM model."""
        if orm_model is None:
            orm_model = FlowProgressORM(
                id=domain_entity.id.value,
                assignment_id=domain_entity.assignment_id.value,
                steps=[
                    StepProgressORM(
                        id=step.id.value,
                        step_snapshot_id=step.step_snapshot_id.value,
                        order=step.order,
                        components=[
                            ComponentProgressORM(
                                id=component.id.value,
                                component_snapshot_id=component.component_snapshot_id.value,
                                order=component.order,
                                is_required=component.is_required,
                            )
                            for component in step.components
                        ],
                    )
                    for step in domain_entity.steps
                ],
            )

        orm_model.status = domain_entity.status.value
        orm_model.current_step_order = domain_entity.current_step_order
        orm_model.started_at = domain_entity.started_at
        orm_model.completed_at = domain_entity.completed_at
        orm_model.last_activity = domain_entity.last_activity

        orm_steps = {step.id: step for step in orm_model.steps}
        for step in domain_entity.steps:
            orm_step = orm_steps[step.id.value]
            orm_step.status = step.status.value
            orm_step.started_at = step.started_at
            orm_step.completed_at = step.completed_at
            orm_components = {component.id: component for component in orm_step.components}
            for component in step.components:
                orm_component = orm_components[component.id.value]
                orm_component.status = component.status.value
                orm_component.started_at = component.started_at
                orm_component.completed_at = component.completed_at
                orm_component.time_spent = component.time_spent
                orm_component.progress_data = copy.deepcopy(component.progress_data)
        return orm_model

    def _step_to_domain(self, orm_step: StepProgressORM) -> StepProgress:
        return StepProgress(
            id=StepProgressId(orm_step.id),
            step_snapshot_id=StepSnapshotId(orm_step.step_snapshot_id),
            order=orm_step.order,
            status=StepStatus(orm_step.status),
            started_at=ensure_utc(orm_step.started_at),
            completed_at=ensure_utc(orm_step.completed_at),
            components=[
                ComponentProgress(
                    id=ComponentProgressId(component.id),
                    component_snapshot_id=ComponentSnapshotId(component.component_snapshot_id),
                    order=component.order,
                    is_required=component.is_required,
                    status=ComponentStatus(component.status),
                    started_at=ensure_utc(component.started_at),
                    completed_at=ensure_utc(component.completed_at),
                    time_spent=component.time_spent,
                    progress_data=copy.deepcopy(component.progress_data or {}),
                )
                for component in orm_step.components
            ],
        )

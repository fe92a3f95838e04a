"""Mapper for Flow ORM ↔ Domain conversion."""

import copy

from buddyflow.domain.common.value_objects import (
    ComponentDefinitionId,
    FlowId,
    FlowStepId,
    UserId,
)
from buddyflow.domain.flows.entities.flow import ComponentDefinition, Flow, FlowStep
from buddyflow.infrastructure.common.datetimes import ensure_utc
from buddyflow.models import Flow as FlowORM
from buddyflow.models import FlowComponent as FlowComponentORM
from buddyflow.models import FlowStep as FlowStepORM


class FlowMapper:
    """Mapper for Flow ORM ↔ Domain conversion, including steps and components."""

    def to_domain(self, orm_model: FlowORM) -> Flow:
        """Convert ORM model to domain entity."""
        return Flow(
            id=FlowId(orm_model.id),
            title=orm_model.title,
            creator_id=UserId(orm_model.creator_id),
            description=orm_model.description,
            version=orm_model.version,
            is_active=orm_model.is_active,
            default_deadline_days=orm_model.default_deadline_days,
            steps=[self._step_to_domain(step) for step in orm_model.steps],
            created_at=ensure_utc(orm_model.created_at),
            updated_at=ensure_utc(orm_model.updated_at),
        )

    def to_orm(self, domain_entity: Flow, orm_model: FlowORM | None = None) -> FlowORM:
        """Convert domain entity to ORM model."""
        if orm_model is None:
            orm_model = FlowORM(id=domain_entity.id.value)

        orm_model.title = domain_entity.title
        orm_model.description = domain_entity.description
        orm_model.version = domain_entity.version
        orm_model.is_active = domain_entity.is_active
        orm_model.default_deadline_days = domain_entity.default_deadline_days
        orm_model.creator_id = domain_entity.creator_id.value

        existing = {step.id: step for step in orm_model.steps}
        orm_model.steps = [
            self._step_to_orm(step, existing.get(step.id.value)) for step in domain_entity.steps
        ]
        return orm_model

    def _step_to_domain(self, orm_step: FlowStepORM) -> FlowStep:
        return FlowStep(
            id=FlowStepId(orm_step.id),
            order=orm_step.order,
            title=orm_step.title,
            description=orm_step.description,
            components=[
                ComponentDefinition(
                    id=ComponentDefinitionId(component.id),
                    order=component.order,
                    type=component.type,
                    data=copy.deepcopy(component.data or {}),
                    type_version=component.type_version,
                    is_required=component.is_required,
                )
                for component in orm_step.components
            ],
        )

    def _step_to_orm(self, step: FlowStep, orm_step: FlowStepORM | None) -> FlowStepORM:
        if orm_step is None:
            orm_step = FlowStepORM(id=step.id.value)
        orm_step.order = step.order
        orm_step.title = step.title
        orm_step.description = step.description

        existing = {component.id: component for component in orm_step.components}
        components = []
        for component in step.components:
            orm_component = existing.get(component.id.value) or FlowComponentORM(id=component.id.value)
            orm_component.order = component.order
            orm_component.type = component.type
            orm_component.type_version = component.type_version
            orm_component.is_required = component.is_required
            orm_component.data = copy.deepcopy(component.data)
            components.append(orm_component)
        orm_step.components = components
        return orm_step

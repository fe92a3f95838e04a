"""Repository for Flow aggregates."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from buddyflow.domain.common.value_objects import FlowId
from buddyflow.domain.flows.entities.flow import Flow
from buddyflow.infrastructure.flows.mappers.flow_mapper import FlowMapper
from buddyflow.models import Flow as FlowORM
from buddyflow.models import FlowStep as FlowStepORM

logger = logging.getLogger(__name__)


class FlowRepository:
    """Repository for Flow aggregates."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.mapper = FlowMapper()

    def find_by_id(self, flow_id: FlowId) -> Flow | None:
        """
        Load a flow with all of its steps and components.

        Args:
            flow_id: The flow ID

        Returns:
            Flow aggregate if found, None otherwise
        """
        stmt = (
            select(FlowORM)
            .options(selectinload(FlowORM.steps).selectinload(FlowStepORM.components))
            .where(FlowORM.id == flow_id.value)
        )
        orm_model = self.db.execute(stmt).scalar_one_or_none()
        return self.mapper.to_domain(orm_model) if orm_model else None

    def save(self, flow: Flow) -> Flow:
        """
        Save a flow (create or update), replacing its step tree.

        Args:
            flow: The flow aggregate to save

        Returns:
            The saved flow
        """
        orm_model = self.db.get(FlowORM, flow.id.value)
        if orm_model is None:
            orm_model = self.mapper.to_orm(flow)
            self.db.add(orm_model)
        else:
            self.mapper.to_orm(flow, orm_model)
        self.db.flush()
        logger.debug("Saved flow %s with %d steps", flow.id, len(flow.steps))
        return flow

    def delete(self, flow_id: FlowId) -> bool:
        """
        Delete a flow template; snapshots taken from it are unaffected.

        Returns:
            True if deleted, False if not found
        """
        orm_model = self.db.get(FlowORM, flow_id.value)
        if orm_model is None:
            return False
        self.db.delete(orm_model)
        self.db.flush()
        logger.info("Deleted flow %s", flow_id)
        return True

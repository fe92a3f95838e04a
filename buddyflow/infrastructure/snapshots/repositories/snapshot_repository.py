"""Repository for FlowSnapshot entities."""

import logging

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from buddyflow.domain.common.value_objects import AssignmentId, FlowSnapshotId
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot
from buddyflow.infrastructure.snapshots.mappers.snapshot_mapper import FlowSnapshotMapper
from buddyflow.models import FlowSnapshot as FlowSnapshotORM
from buddyflow.models import FlowStepSnapshot as FlowStepSnapshotORM

logger = logging.getLogger(__name__)


class FlowSnapshotRepository:
    """Repository for FlowSnapshot entities."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.mapper = FlowSnapshotMapper()

    def _select_tree(self) -> Select[tuple[FlowSnapshotORM]]:
        return select(FlowSnapshotORM).options(
            selectinload(FlowSnapshotORM.steps).selectinload(FlowStepSnapshotORM.components)
        )

    def find_by_id(self, snapshot_id: FlowSnapshotId) -> FlowSnapshot | None:
        """
        Load a snapshot with all of its steps and components.

        Args:
            snapshot_id: The snapshot ID

        Returns:
            FlowSnapshot if found, None otherwise
        """
        stmt = self._select_tree().where(FlowSnapshotORM.id == snapshot_id.value)
        orm_model = self.db.execute(stmt).scalar_one_or_none()
        return self.mapper.to_domain(orm_model) if orm_model else None

    def find_by_assignment_id(self, assignment_id: AssignmentId) -> FlowSnapshot | None:
        stmt = self._select_tree().where(FlowSnapshotORM.assignment_id == assignment_id.value)
        orm_model = self.db.execute(stmt).scalar_one_or_none()
        return self.mapper.to_domain(orm_model) if orm_model else None

    def add(self, snapshot: FlowSnapshot) -> FlowSnapshot:
        """
        Stage a new snapshot with its whole step tree.

        The rows are flushed so the assignment can reference the snapshot in
        the same transaction; the unit of work commits.
        """
        self.db.add(self.mapper.to_orm(snapshot))
        self.db.flush()
        logger.debug(
            "Staged snapshot %s (%d steps, %d components)",
            snapshot.id,
            snapshot.total_steps,
            snapshot.total_components,
        )
        return snapshot

    def detach(self, assignment_id: AssignmentId) -> FlowSnapshot | None:
        """
        Clear the assignment back-reference of the assignment's snapshot.

        Returns:
            The detached snapshot, or None if the assignment has none
        """
        stmt = self._select_tree().where(FlowSnapshotORM.assignment_id == assignment_id.value)
        orm_model = self.db.execute(stmt).scalar_one_or_none()
        if orm_model is None:
            return None
        orm_model.assignment_id = None
        self.db.flush()
        return self.mapper.to_domain(orm_model)

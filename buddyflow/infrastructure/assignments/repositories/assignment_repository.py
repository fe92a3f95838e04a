"""Repository for FlowAssignment aggregates."""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from buddyflow.domain.assignments.entities.flow_assignment import (
    ACTIVE_STATUSES,
    FlowAssignment,
)
from buddyflow.domain.assignments.exceptions import AssignmentNotFoundError
from buddyflow.domain.common.exceptions import ConcurrencyConflictError
from buddyflow.domain.common.value_objects import AssignmentId, FlowId, UserId
from buddyflow.infrastructure.assignments.mappers.assignment_mapper import FlowAssignmentMapper
from buddyflow.models import FlowAssignment as FlowAssignmentORM
from buddyflow.models import FlowSnapshot as FlowSnapshotORM

logger = logging.getLogger(__name__)

_ACTIVE = [status.value for status in ACTIVE_STATUSES]


class FlowAssignmentRepository:
    """
    Repository for FlowAssignment aggregates.

    Soft-deleted assignments are invisible to every query. Loaded rows are
    held until the repository goes away so that ``save`` checks the version
    that was read, not one reloaded after a concurrent commit.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.mapper = FlowAssignmentMapper()
        self._loaded: dict[uuid.UUID, FlowAssignmentORM] = {}

    def _to_domain(self, orm_model: FlowAssignmentORM) -> FlowAssignment:
        self._loaded[orm_model.id] = orm_model
        return self.mapper.to_domain(orm_model)

    def _select_live(self) -> Select[tuple[FlowAssignmentORM]]:
        return (
            select(FlowAssignmentORM)
            .options(selectinload(FlowAssignmentORM.buddies))
            .where(FlowAssignmentORM.deleted_at.is_(None))
        )

    def _get_live(self, assignment_id: AssignmentId) -> FlowAssignmentORM | None:
        stmt = self._select_live().where(FlowAssignmentORM.id == assignment_id.value)
        return self.db.execute(stmt).scalar_one_or_none()

    def find_by_id(self, assignment_id: AssignmentId) -> FlowAssignment | None:
        """
        Find an assignment by ID.

        Args:
            assignment_id: The assignment ID

        Returns:
            FlowAssignment if found and not deleted, None otherwise
        """
        orm_model = self._get_live(assignment_id)
        return self._to_domain(orm_model) if orm_model else None

    def find_by_user(self, user_id: UserId) -> list[FlowAssignment]:
        """
        Get all assignments of a learner.

        Returns:
            List of assignments ordered by assigned_at DESC
        """
        stmt = (
            self._select_live()
            .where(FlowAssignmentORM.user_id == user_id.value)
            .order_by(FlowAssignmentORM.assigned_at.desc())
        )
        return [self._to_domain(orm) for orm in self.db.execute(stmt).scalars().all()]

    def find_active_by_user_and_flow(self, user_id: UserId, flow_id: FlowId) -> FlowAssignment | None:
        """Find an active assignment of the given flow template for a learner."""
        stmt = (
            self._select_live()
            .join(FlowSnapshotORM, FlowSnapshotORM.id == FlowAssignmentORM.flow_snapshot_id)
            .where(
                FlowAssignmentORM.user_id == user_id.value,
                FlowSnapshotORM.original_flow_id == flow_id.value,
                FlowAssignmentORM.status.in_(_ACTIVE),
            )
            .limit(1)
        )
        orm_model = self.db.execute(stmt).scalars().first()
        return self._to_domain(orm_model) if orm_model else None

    def count_active_by_user(self, user_id: UserId) -> int:
        stmt = select(func.count(FlowAssignmentORM.id)).where(
            FlowAssignmentORM.user_id == user_id.value,
            FlowAssignmentORM.status.in_(_ACTIVE),
            FlowAssignmentORM.deleted_at.is_(None),
        )
        return self.db.execute(stmt).scalar() or 0

    def find_overdue_candidates(self, now: datetime) -> list[FlowAssignment]:
        """Active assignments past their deadline that are not flagged overdue yet."""
        stmt = (
            self._select_live()
            .where(
                FlowAssignmentORM.status.in_(_ACTIVE),
                FlowAssignmentORM.is_overdue.is_(False),
                FlowAssignmentORM.deadline < now,
            )
            .order_by(FlowAssignmentORM.deadline)
        )
        return [self._to_domain(orm) for orm in self.db.execute(stmt).scalars().all()]

    def add(self, assignment: FlowAssignment) -> FlowAssignment:
        """Stage a new assignment; the unit of work commits."""
        self.db.add(self.mapper.to_orm(assignment))
        self.db.flush()
        return assignment

    def save(self, assignment: FlowAssignment) -> FlowAssignment:
        """
        Write the state of a loaded assignment back to its row.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist or was deleted
            ConcurrencyConflictError: If the row changed since it was loaded
        """
        orm_model = self._get_live(assignment.id)
        if orm_model is None:
            raise AssignmentNotFoundError(assignment.id)
        self.mapper.to_orm(assignment, orm_model)
        # Buddy changes only touch child rows; keep the version check
        flag_modified(orm_model, "last_activity")
        try:
            self.db.flush()
        except StaleDataError as err:
            logger.warning("Stale assignment %s", assignment.id)
            raise ConcurrencyConflictError("FlowAssignment", assignment.id) from err
        return assignment

    def soft_delete(self, assignment_id: AssignmentId) -> bool:
        """
        Mark an assignment as deleted.

        Returns:
            True if deleted, False if not found
        """
        orm_model = self._get_live(assignment_id)
        if orm_model is None:
            return False
        orm_model.deleted_at = datetime.now(UTC)
        self.db.flush()
        logger.info("Soft-deleted assignment %s", assignment_id)
        return True

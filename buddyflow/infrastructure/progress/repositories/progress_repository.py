"""Repository for FlowProgress aggregates."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from buddyflow.domain.common.exceptions import ConcurrencyConflictError
from buddyflow.domain.common.value_objects import AssignmentId
from buddyflow.domain.progress.entities.progress import FlowProgress
from buddyflow.domain.progress.exceptions import ProgressNotFoundError
from buddyflow.infrastructure.progress.mappers.progress_mapper import FlowProgressMapper
from buddyflow.models import FlowProgress as FlowProgressORM
from buddyflow.models import StepProgress as StepProgressORM

logger = logging.getLogger(__name__)


class FlowProgressRepository:
    """
    Repository for FlowProgress aggregates.

    Every save bumps the row version of ``flow_progress``, so two writers
    that loaded the same version cannot both succeed.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.mapper = FlowProgressMapper()

    def _get(self, assignment_id: AssignmentId, for_update: bool = False) -> FlowProgressORM | None:
        stmt = (
            select(FlowProgressORM)
            .options(selectinload(FlowProgressORM.steps).selectinload(StepProgressORM.components))
            .where(FlowProgressORM.assignment_id == assignment_id.value)
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def find_by_assignment_id(
        self, assignment_id: AssignmentId, for_update: bool = False
    ) -> FlowProgress | None:
        """
        Load the progress tree of an assignment.

        Args:
            assignment_id: The assignment ID
            for_update: Lock the progress row until the transaction ends

        Returns:
            FlowProgress if found, None otherwise
        """
        orm_model = self._get(assignment_id, for_update=for_update)
        return self.mapper.to_domain(orm_model) if orm_model else None

    def add(self, progress: FlowProgress) -> FlowProgress:
        """Stage a new progress tree; the unit of work commits."""
        self.db.add(self.mapper.to_orm(progress))
        self.db.flush()
        return progress

    def save(self, progress: FlowProgress) -> FlowProgress:
        """
        Write the progress tree back.

        Raises:
            ProgressNotFoundError: If the progress row does not exist
            ConcurrencyConflictError: If the row changed since it was loaded
        """
        orm_model = self._get(progress.assignment_id)
        if orm_model is None:
            raise ProgressNotFoundError(progress.assignment_id)
        self.mapper.to_orm(progress, orm_model)
        # Forces an UPDATE (and version check) when only child rows changed
        flag_modified(orm_model, "last_activity")
        try:
            self.db.flush()
        except StaleDataError as err:
            logger.warning("Stale progress for assignment %s", progress.assignment_id)
            raise ConcurrencyConflictError("FlowProgress", progress.id) from err
        return progress

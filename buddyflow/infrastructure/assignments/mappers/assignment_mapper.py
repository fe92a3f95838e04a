"""Mapper for FlowAssignment ORM ↔ Domain conversion."""

from buddyflow.domain.assignments.entities.flow_assignment import (
    AssignmentStatus,
    FlowAssignment,
)
from buddyflow.domain.common.value_objects import AssignmentId, FlowSnapshotId, UserId
from buddyflow.infrastructure.common.datetimes import ensure_utc, require_utc
from buddyflow.models import AssignmentBuddy as AssignmentBuddyORM
from buddyflow.models import FlowAssignment as FlowAssignmentORM


class FlowAssignmentMapper:
    """Mapper for FlowAssignment ORM ↔ Domain conversion."""

    def to_domain(self, orm_model: FlowAssignmentORM) -> FlowAssignment:
        """Convert ORM model to domain entity."""
        return FlowAssignment(
            id=AssignmentId(orm_model.id),
            user_id=UserId(orm_model.user_id),
            flow_snapshot_id=FlowSnapshotId(orm_model.flow_snapshot_id),
            assigned_by_id=UserId(orm_model.assigned_by_id),
            deadline=require_utc(orm_model.deadline),
            assigned_at=require_utc(orm_model.assigned_at),
            buddy_ids=[UserId(buddy.user_id) for buddy in orm_model.buddies],
            status=AssignmentStatus(orm_model.status),
            is_overdue=orm_model.is_overdue,
            started_at=ensure_utc(orm_model.started_at),
            completed_at=ensure_utc(orm_model.completed_at),
            paused_at=ensure_utc(orm_model.paused_at),
            paused_by_id=UserId(orm_model.paused_by_id) if orm_model.paused_by_id else None,
            pause_reason=orm_model.pause_reason,
            time_spent=orm_model.time_spent,
            last_activity=ensure_utc(orm_model.last_activity),
        )

    def to_orm(
        self, domain_entity: FlowAssignment, orm_model: FlowAssignmentORM | None = None
    ) -> FlowAssignmentORM:
        """Convert domain entity to ORM model."""
        if orm_model is None:
            orm_model = FlowAssignmentORM(
                id=domain_entity.id.value,
                user_id=domain_entity.user_id.value,
                flow_snapshot_id=domain_entity.flow_snapshot_id.value,
                assigned_by_id=domain_entity.assigned_by_id.value,
                assigned_at=domain_entity.assigned_at,
            )

        orm_model.status = domain_entity.status.value
        orm_model.deadline = domain_entity.deadline
        orm_model.is_overdue = domain_entity.is_overdue
        orm_model.started_at = domain_entity.started_at
        orm_model.completed_at = domain_entity.completed_at
        orm_model.paused_at = domain_entity.paused_at
        orm_model.paused_by_id = domain_entity.paused_by_id.value if domain_entity.paused_by_id else None
        orm_model.pause_reason = domain_entity.pause_reason
        orm_model.time_spent = domain_entity.time_spent
        orm_model.last_activity = domain_entity.last_activity
        self._sync_buddies(domain_entity, orm_model)
        return orm_model

    @staticmethod
    def _sync_buddies(domain_entity: FlowAssignment, orm_model: FlowAssignmentORM) -> None:
        # Rows are keyed by (assignment, user): reuse them instead of replacing
        existing = {buddy.user_id: buddy for buddy in orm_model.buddies}
        buddies = []
        for position, buddy_id in enumerate(domain_entity.buddy_ids):
            row = existing.get(buddy_id.value) or AssignmentBuddyORM(user_id=buddy_id.value)
            row.position = position
            buddies.append(row)
        orm_model.buddies = buddies

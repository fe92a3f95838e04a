"""Domain events recorded by FlowAssignment."""

from dataclasses import dataclass
from datetime import datetime

from buddyflow.domain.common.domain_event import DomainEvent
from buddyflow.domain.common.value_objects import AssignmentId, FlowSnapshotId, UserId


@dataclass(frozen=True, kw_only=True)
class AssignmentCreated(DomainEvent):
    assignment_id: AssignmentId
    user_id: UserId
    flow_snapshot_id: FlowSnapshotId
    deadline: datetime


@dataclass(frozen=True, kw_only=True)
class AssignmentStarted(DomainEvent):
    assignment_id: AssignmentId


@dataclass(frozen=True, kw_only=True)
class AssignmentPaused(DomainEvent):
    assignment_id: AssignmentId
    paused_by_id: UserId
    reason: str


@dataclass(frozen=True, kw_only=True)
class AssignmentResumed(DomainEvent):
    assignment_id: AssignmentId
    resumed_by_id: UserId
    extended_by_days: int


@dataclass(frozen=True, kw_only=True)
class AssignmentCompleted(DomainEvent):
    assignment_id: AssignmentId


@dataclass(frozen=True, kw_only=True)
class AssignmentCancelled(DomainEvent):
    assignment_id: AssignmentId
    cancelled_by_id: UserId
    reason: str


@dataclass(frozen=True, kw_only=True)
class DeadlineExtended(DomainEvent):
    assignment_id: AssignmentId
    extended_by_id: UserId
    days: int
    new_deadline: datetime


@dataclass(frozen=True, kw_only=True)
class AssignmentBecameOverdue(DomainEvent):
    assignment_id: AssignmentId
    deadline: datetime


@dataclass(frozen=True, kw_only=True)
class BuddiesUpdated(DomainEvent):
    assignment_id: AssignmentId
    buddy_ids: tuple[str, ...]

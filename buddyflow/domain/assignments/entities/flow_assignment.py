"""
Flow assignment aggregate.

An assignment binds one learner to one frozen flow snapshot, together with
the buddies who mentor them and a deadline. Its status moves through:

    NOT_STARTED -> IN_PROGRESS <-> PAUSED -> COMPLETED
                                          \\-> CANCELLED
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from buddyflow.domain.assignments.deadlines import (
    DAY,
    DeadlineCheck,
    add_business_days,
    evaluate_deadline,
    whole_days_between,
)
from buddyflow.domain.assignments.events import (
    AssignmentBecameOverdue,
    AssignmentCancelled,
    AssignmentCompleted,
    AssignmentCreated,
    AssignmentPaused,
    AssignmentResumed,
    AssignmentStarted,
    BuddiesUpdated,
    DeadlineExtended,
)
from buddyflow.domain.common.aggregate_root import AggregateRoot
from buddyflow.domain.common.exceptions import BusinessRuleViolationError, ValidationError
from buddyflow.domain.common.value_objects import AssignmentId, FlowSnapshotId, UserId

# Domain constraints
MAX_BUDDIES = 5
DEFAULT_DEADLINE_BUSINESS_DAYS = 7
MIN_EXTENSION_DAYS = 1
MAX_EXTENSION_DAYS = 365


class AssignmentStatus(StrEnum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (
    AssignmentStatus.NOT_STARTED,
    AssignmentStatus.IN_PROGRESS,
    AssignmentStatus.PAUSED,
)


class PauseReason(StrEnum):
    USER_REQUEST = "USER_REQUEST"
    BUDDY_DECISION = "BUDDY_DECISION"
    TECHNICAL_ISSUES = "TECHNICAL_ISSUES"
    PERSONAL_CIRCUMSTANCES = "PERSONAL_CIRCUMSTANCES"
    WORKLOAD = "WORKLOAD"
    VACATION = "VACATION"
    ILLNESS = "ILLNESS"


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


@dataclass(eq=False)
class FlowAssignment(AggregateRoot[AssignmentId]):
    """
    Assignment of a flow snapshot to a learner.

    Business Rules:
    - 1 to MAX_BUDDIES distinct buddies, none of them the learner
    - Time spent is a non-negative, monotonic accumulator
    - Pausing never counts against the learner: resuming pushes the
      deadline forward by the whole days spent paused
    - Once overdue, the flag stays set until the deadline is extended
    - Completed and cancelled assignments are terminal
    """

    id: AssignmentId
    user_id: UserId
    flow_snapshot_id: FlowSnapshotId
    assigned_by_id: UserId
    deadline: datetime
    assigned_at: datetime
    buddy_ids: list[UserId] = field(default_factory=list)
    status: AssignmentStatus = AssignmentStatus.NOT_STARTED
    is_overdue: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    paused_at: datetime | None = None
    paused_by_id: UserId | None = None
    pause_reason: str | None = None
    time_spent: int = 0
    last_activity: datetime | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.user_id is None:
            raise ValidationError("Assignment requires a user", field="user_id")
        if self.flow_snapshot_id is None:
            raise ValidationError("Assignment requires a flow snapshot", field="flow_snapshot_id")
        self._validate_buddies(self.user_id, self.buddy_ids)
        if self.time_spent < 0:
            raise ValidationError("Time spent cannot be negative", field="time_spent")

    @staticmethod
    def _validate_buddies(user_id: UserId, buddy_ids: list[UserId]) -> None:
        if not buddy_ids:
            raise ValidationError("At least one buddy is required", field="buddy_ids")
        if len(buddy_ids) > MAX_BUDDIES:
            raise ValidationError(
                f"An assignment can have at most {MAX_BUDDIES} buddies",
                field="buddy_ids",
                value=len(buddy_ids),
            )
        if len(set(buddy_ids)) != len(buddy_ids):
            raise ValidationError("Buddy ids must be unique", field="buddy_ids")
        if user_id in buddy_ids:
            raise ValidationError("A user cannot be their own buddy", field="buddy_ids")

    # Queries

    @property
    def is_paused(self) -> bool:
        return self.status == AssignmentStatus.PAUSED

    @property
    def is_completed(self) -> bool:
        return self.status == AssignmentStatus.COMPLETED

    @property
    def is_cancelled(self) -> bool:
        return self.status == AssignmentStatus.CANCELLED

    @property
    def is_active(self) -> bool:
        """Whether the assignment still counts against the learner's load."""
        return self.status in ACTIVE_STATUSES

    @property
    def can_interact(self) -> bool:
        return self.status == AssignmentStatus.IN_PROGRESS and not self.is_overdue

    @property
    def primary_buddy_id(self) -> UserId:
        return self.buddy_ids[0]

    @property
    def formatted_time_spent(self) -> str:
        """Time spent as ``h:mm``."""
        minutes = self.time_spent // 60
        return f"{minutes // 60}:{minutes % 60:02d}"

    def is_buddy(self, user_id: UserId) -> bool:
        return user_id in self.buddy_ids

    def is_assignee(self, user_id: UserId) -> bool:
        return user_id == self.user_id

    def days_since_assignment(self, now: datetime | None = None) -> int:
        return max((_now(now) - self.assigned_at) // DAY, 0)

    def days_since_last_activity(self, now: datetime | None = None) -> int | None:
        if self.last_activity is None:
            return None
        return max((_now(now) - self.last_activity) // DAY, 0)

    # Transitions

    def start(self, now: datetime | None = None) -> None:
        """
        Start working on the assignment.

        Raises:
            BusinessRuleViolationError: If already started or overdue
        """
        if self.status != AssignmentStatus.NOT_STARTED:
            raise BusinessRuleViolationError(
                "start_from_not_started",
                f"Only a not started assignment can be started (status is {self.status})",
            )
        if self.is_overdue:
            raise BusinessRuleViolationError(
                "start_before_deadline", "An overdue assignment cannot be started"
            )
        current = _now(now)
        self.status = AssignmentStatus.IN_PROGRESS
        self.started_at = current
        self.last_activity = current
        self._record_event(AssignmentStarted(assignment_id=self.id))

    def pause(
        self,
        paused_by_id: UserId,
        reason: str = PauseReason.USER_REQUEST,
        now: datetime | None = None,
    ) -> None:
        """
        Pause an assignment in progress.

        Raises:
            ValidationError: If no actor is given
            BusinessRuleViolationError: If the assignment is not in progress
        """
        if paused_by_id is None:
            raise ValidationError("Pausing requires an actor", field="paused_by_id")
        if self.is_paused or self.paused_at is not None:
            raise BusinessRuleViolationError("pause_once", "The assignment is already paused")
        if self.status != AssignmentStatus.IN_PROGRESS:
            raise BusinessRuleViolationError(
                "pause_in_progress",
                f"Only an assignment in progress can be paused (status is {self.status})",
            )
        current = _now(now)
        self.status = AssignmentStatus.PAUSED
        self.paused_at = current
        self.paused_by_id = paused_by_id
        self.pause_reason = str(reason)
        self.last_activity = current
        self._record_event(
            AssignmentPaused(assignment_id=self.id, paused_by_id=paused_by_id, reason=str(reason))
        )

    def resume(self, resumed_by_id: UserId, now: datetime | None = None) -> int:
        """
        Resume a paused assignment.

        The deadline moves forward by the number of started days the
        assignment spent paused.

        Returns:
            Number of days the deadline was extended by

        Raises:
            BusinessRuleViolationError: If the assignment is not paused
        """
        if resumed_by_id is None:
            raise ValidationError("Resuming requires an actor", field="resumed_by_id")
        if not self.is_paused or self.paused_at is None:
            raise BusinessRuleViolationError(
                "resume_paused", f"Only a paused assignment can be resumed (status is {self.status})"
            )
        current = _now(now)
        paused_days = whole_days_between(self.paused_at, current)
        self.deadline = self.deadline + timedelta(days=paused_days)
        if self.is_overdue and self.deadline > current:
            self.is_overdue = False
        self.status = AssignmentStatus.IN_PROGRESS
        self._clear_pause()
        self.last_activity = current
        self._record_event(
            AssignmentResumed(
                assignment_id=self.id, resumed_by_id=resumed_by_id, extended_by_days=paused_days
            )
        )
        return paused_days

    def complete(self, now: datetime | None = None) -> None:
        """
        Mark the assignment completed.

        Raises:
            BusinessRuleViolationError: If already completed or cancelled
        """
        self._ensure_not_terminal("complete")
        current = _now(now)
        self.status = AssignmentStatus.COMPLETED
        self.completed_at = current
        self.last_activity = current
        self._clear_pause()
        self._record_event(AssignmentCompleted(assignment_id=self.id))

    def cancel(self, cancelled_by_id: UserId, reason: str, now: datetime | None = None) -> None:
        """
        Cancel the assignment; the actor and reason are kept in the pause fields.

        Raises:
            BusinessRuleViolationError: If already completed or cancelled
        """
        if cancelled_by_id is None:
            raise ValidationError("Cancelling requires an actor", field="cancelled_by_id")
        self._ensure_not_terminal("cancel")
        current = _now(now)
        self.status = AssignmentStatus.CANCELLED
        self.paused_at = current
        self.paused_by_id = cancelled_by_id
        self.pause_reason = reason
        self.last_activity = current
        self._record_event(
            AssignmentCancelled(assignment_id=self.id, cancelled_by_id=cancelled_by_id, reason=reason)
        )

    def extend_deadline(self, days: int, actor_id: UserId, now: datetime | None = None) -> None:
        """
        Push the deadline forward by calendar days.

        Raises:
            ValidationError: If days is outside [MIN_EXTENSION_DAYS, MAX_EXTENSION_DAYS]
                or no actor is given
            BusinessRuleViolationError: If the assignment is completed or cancelled
        """
        if actor_id is None:
            raise ValidationError("Extending the deadline requires an actor", field="actor_id")
        if not MIN_EXTENSION_DAYS <= days <= MAX_EXTENSION_DAYS:
            raise ValidationError(
                f"Deadline extension must be between {MIN_EXTENSION_DAYS} and "
                f"{MAX_EXTENSION_DAYS} days",
                field="days",
                value=days,
            )
        self._ensure_not_terminal("extend_deadline")
        current = _now(now)
        self.deadline = self.deadline + timedelta(days=days)
        if self.deadline > current:
            self.is_overdue = False
        self._record_event(
            DeadlineExtended(
                assignment_id=self.id, extended_by_id=actor_id, days=days, new_deadline=self.deadline
            )
        )

    def check_deadline(self, now: datetime | None = None) -> DeadlineCheck:
        """
        Recompute the deadline status and latch the overdue flag.

        Terminal assignments report their state without latching.
        """
        check = evaluate_deadline(self.deadline, _now(now))
        if check.is_overdue and not self.is_overdue and self.is_active:
            self.is_overdue = True
            self._record_event(AssignmentBecameOverdue(assignment_id=self.id, deadline=self.deadline))
        return DeadlineCheck(
            is_overdue=self.is_overdue or check.is_overdue,
            days_remaining=check.days_remaining,
            is_at_risk=check.is_at_risk,
            is_critical=check.is_critical,
        )

    def add_time_spent(self, seconds: float, now: datetime | None = None) -> None:
        if seconds < 0:
            raise ValidationError("Time spent cannot be negative", field="time_spent", value=seconds)
        self.time_spent += round(seconds)
        self.last_activity = _now(now)

    def update_buddies(self, buddy_ids: list[UserId]) -> None:
        """
        Replace the buddy list.

        Raises:
            ValidationError: If the new list breaks the buddy rules
        """
        self._validate_buddies(self.user_id, buddy_ids)
        self.buddy_ids = list(buddy_ids)
        self._record_event(
            BuddiesUpdated(assignment_id=self.id, buddy_ids=tuple(str(b) for b in buddy_ids))
        )

    def _clear_pause(self) -> None:
        self.paused_at = None
        self.paused_by_id = None
        self.pause_reason = None

    def _ensure_not_terminal(self, operation: str) -> None:
        if self.status in (AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED):
            raise BusinessRuleViolationError(
                f"{operation}_not_terminal",
                f"Cannot {operation.replace('_', ' ')} an assignment that is {self.status}",
            )

    @classmethod
    def create(
        cls,
        user_id: UserId,
        flow_snapshot_id: FlowSnapshotId,
        assigned_by_id: UserId,
        buddy_ids: list[UserId],
        deadline: datetime | None = None,
        custom_deadline_days: int | None = None,
        default_deadline_days: int = DEFAULT_DEADLINE_BUSINESS_DAYS,
        assignment_id: AssignmentId | None = None,
        now: datetime | None = None,
    ) -> "FlowAssignment":
        """
        Create a new, not started assignment.

        Args:
            user_id: Learner
            flow_snapshot_id: Snapshot frozen for this assignment
            assigned_by_id: Who made the assignment
            buddy_ids: Mentors of the learner
            deadline: Explicit deadline, must lie in the future
            custom_deadline_days: Business days from now, used without ``deadline``
            default_deadline_days: Business days used when neither is given
            assignment_id: Pre-generated id (the snapshot references it)
            now: Creation time

        Returns:
            New FlowAssignment instance

        Raises:
            ValidationError: If the deadline or buddy list is invalid
        """
        current = _now(now)
        if deadline is None:
            days = custom_deadline_days if custom_deadline_days is not None else default_deadline_days
            if days < 1:
                raise ValidationError(
                    "Deadline days must be at least 1", field="custom_deadline_days", value=days
                )
            deadline = add_business_days(current, days)
        if deadline <= current:
            raise ValidationError("Deadline must be in the future", field="deadline")

        assignment = cls(
            id=assignment_id or AssignmentId.generate(),
            user_id=user_id,
            flow_snapshot_id=flow_snapshot_id,
            assigned_by_id=assigned_by_id,
            deadline=deadline,
            assigned_at=current,
            buddy_ids=list(buddy_ids),
            last_activity=current,
        )
        assignment._record_event(
            AssignmentCreated(
                assignment_id=assignment.id,
                user_id=user_id,
                flow_snapshot_id=flow_snapshot_id,
                deadline=deadline,
            )
        )
        return assignment

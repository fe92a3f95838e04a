"""
Base class for Aggregate Roots.

An aggregate root is the only entry point into a cluster of domain objects.
It enforces the cluster's invariants and records what happened to it as
domain events, which the unit of work dispatches after a successful commit.

Example:
    @dataclass(eq=False)
    class FlowAssignment(AggregateRoot[AssignmentId]):
        id: AssignmentId
        status: AssignmentStatus

        def start(self) -> None:
            self.status = AssignmentStatus.IN_PROGRESS
            self._record_event(AssignmentStarted(assignment_id=self.id))
"""

from dataclasses import dataclass, field
from typing import Generic

from .domain_event import DomainEvent
from .entity import Entity, IdType


@dataclass(eq=False)
class AggregateRoot(Entity[IdType], Generic[IdType]):
    """Entity that owns a consistency boundary and buffers domain events."""

    _events: list[DomainEvent] = field(
        default_factory=list, repr=False, compare=False, kw_only=True
    )

    def _record_event(self, event: DomainEvent) -> None:
        """Buffer an event until the unit of work collects it."""
        self._events.append(event)

    def collect_events(self) -> list[DomainEvent]:
        """
        Collect and clear all recorded domain events.

        Called by the unit of work once the aggregate has been committed.
        """
        events = self._events.copy()
        self._events.clear()
        return events

    @property
    def pending_events(self) -> list[DomainEvent]:
        """Return pending events without clearing them."""
        return self._events.copy()

"""
Unit of Work interface.

The Unit of Work pattern maintains a list of objects affected by a business
transaction and coordinates the writing out of changes and the resolution
of concurrency problems.

Example:
    class StartAssignment:
        def __init__(self, repo: FlowAssignmentRepositoryProtocol, uow: UnitOfWork) -> None:
            self._repo = repo
            self._uow = uow

        def execute(self, assignment_id: AssignmentId) -> FlowAssignment:
            with self._uow:
                assignment = self._repo.find_by_id(assignment_id)
                assignment.start()
                self._repo.save(assignment)
                self._uow.track(assignment)
                self._uow.commit()
                return assignment
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType
from typing import Self

from buddyflow.domain.common import AggregateRoot, DomainEvent

EventHandler = Callable[[DomainEvent], None]


class UnitOfWork(ABC):
    """
    Unit of Work interface (Port).

    The Unit of Work:
    - Manages database transactions
    - Ensures atomicity of operations
    - Collects and dispatches domain events of tracked aggregates
    - Can be used as a context manager

    Infrastructure layer provides concrete implementations
    (e.g., SQLAlchemyUnitOfWork).
    """

    def __init__(self) -> None:
        self._tracked: list[AggregateRoot] = []
        self._event_handlers: list[EventHandler] = []

    @abstractmethod
    def commit(self) -> None:
        """
        Commit the current transaction.

        This persists all changes made within the unit of work.
        After commit, domain events are dispatched.

        Raises:
            ConcurrencyConflictError: If a concurrent write made the loaded state stale
        """
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        """
        Rollback the current transaction.

        This discards all changes made within the unit of work.
        """
        raise NotImplementedError

    def __enter__(self) -> Self:
        """Enter the unit of work context."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """
        Exit the unit of work context.

        If an exception occurred, rollback. Otherwise, do nothing
        (commit must be called explicitly).
        """
        if exc_type is not None:
            self.rollback()

    def track(self, *aggregates: AggregateRoot) -> None:
        """Register aggregates whose events are dispatched after commit."""
        for aggregate in aggregates:
            if all(aggregate is not tracked for tracked in self._tracked):
                self._tracked.append(aggregate)

    def collect_events(self) -> list[DomainEvent]:
        """Collect (and clear) the events of every tracked aggregate."""
        events: list[DomainEvent] = []
        for aggregate in self._tracked:
            events.extend(aggregate.collect_events())
        self._tracked.clear()
        return events

    def discard_events(self) -> None:
        for aggregate in self._tracked:
            aggregate.collect_events()
        self._tracked.clear()

    def register_event_handler(self, handler: EventHandler) -> None:
        """
        Register a handler to be called for domain events.

        Events are dispatched after successful commit.
        """
        self._event_handlers.append(handler)

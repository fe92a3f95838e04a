"""SQLAlchemy implementation of the unit of work."""

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from buddyflow.application.common.unit_of_work import EventHandler, UnitOfWork
from buddyflow.domain.common.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work bound to one SQLAlchemy session.

    Repositories stage and flush their rows; only the unit of work commits.
    Events of tracked aggregates are dispatched once the commit succeeded.
    """

    def __init__(self, db: Session, event_handlers: Iterable[EventHandler] = ()) -> None:
        super().__init__()
        self.db = db
        for handler in event_handlers:
            self.register_event_handler(handler)

    def commit(self) -> None:
        try:
            self.db.commit()
        except StaleDataError as err:
            # flow_progress is the only versioned table
            self.rollback()
            raise ConcurrencyConflictError("FlowProgress") from err

        for event in self.collect_events():
            for handler in self._event_handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception("Event handler failed for %s", type(event).__name__)

    def rollback(self) -> None:
        self.db.rollback()
        self.discard_events()

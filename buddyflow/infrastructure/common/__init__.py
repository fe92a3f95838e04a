from .datetimes import ensure_utc
from .event_log import log_domain_event
from .unit_of_work import SQLAlchemyUnitOfWork

__all__ = ["SQLAlchemyUnitOfWork", "ensure_utc", "log_domain_event"]

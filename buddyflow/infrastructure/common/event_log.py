"""Domain event handler that writes every committed event to the log."""

import structlog

from buddyflow.domain.common import DomainEvent

logger = structlog.get_logger(__name__)


def log_domain_event(event: DomainEvent) -> None:
    payload = event.to_dict()
    event_type = payload.pop("event_type")
    logger.info("domain_event", event_type=event_type, **payload)

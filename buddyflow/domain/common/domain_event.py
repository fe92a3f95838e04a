"""
Base class for Domain Events.

A domain event is an immutable record of something that happened to an
aggregate, e.g. an assignment being paused or its deadline slipping.

Example:
    @dataclass(frozen=True, kw_only=True)
    class AssignmentPaused(DomainEvent):
        assignment_id: AssignmentId
        paused_by_id: UserId
"""

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """
    Base class for Domain Events.

    Subclasses are frozen, keyword-only dataclasses named in the past tense.
    """

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def event_type(self) -> str:
        """Return the event type name for serialization."""
        return self.__class__.__name__

    def to_dict(self) -> dict[str, object]:
        """Convert event to a flat dictionary of primitives."""
        result: dict[str, object] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, datetime):
                result[item.name] = value.isoformat()
            elif isinstance(value, UUID):
                result[item.name] = str(value)
            elif isinstance(value, Enum):
                result[item.name] = value.value
            elif hasattr(value, "to_primitive"):
                result[item.name] = value.to_primitive()
            else:
                result[item.name] = value
        result["event_type"] = self.event_type
        return result

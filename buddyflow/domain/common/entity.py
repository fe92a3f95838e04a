"""
Base class for Entities.

Entities carry an identity that survives state changes. Two entities are
equal when their identities are equal, whatever their attributes hold.

Example:
    @dataclass
    class FlowAssignment(Entity[AssignmentId]):
        id: AssignmentId
        status: AssignmentStatus

        def start(self) -> None:
            self.status = AssignmentStatus.IN_PROGRESS
"""

from abc import ABC
from dataclasses import dataclass
from typing import Generic, Self, TypeVar
from uuid import UUID, uuid4

from .value_object import ValueObject


@dataclass(frozen=True)
class EntityId(ValueObject):
    """
    Base class for strongly-typed entity identifiers.

    Identifiers wrap a UUID and are generated inside the domain, so an
    aggregate can reference another one (a snapshot and its assignment)
    before either is persisted.

    Example:
        @dataclass(frozen=True)
        class FlowId(EntityId):
            pass

        flow_id = FlowId.generate()
        FlowId.parse("0b0f...")  # from a primitive
    """

    value: UUID

    def __post_init__(self) -> None:
        if not isinstance(self.value, UUID):
            raise TypeError(f"{self.__class__.__name__} must wrap a UUID")

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def generate(cls) -> Self:
        """Create a fresh random identifier."""
        return cls(uuid4())

    @classmethod
    def parse(cls, raw: "str | UUID | EntityId") -> Self:
        """
        Build an identifier from a string, UUID or another identifier.

        Raises:
            ValueError: If the string is not a valid UUID
        """
        if isinstance(raw, EntityId):
            return cls(raw.value)
        if isinstance(raw, UUID):
            return cls(raw)
        return cls(UUID(str(raw)))

    def to_primitive(self) -> str:
        """Convert to primitive for serialization."""
        return str(self.value)


IdType = TypeVar("IdType", bound=EntityId)


class Entity(ABC, Generic[IdType]):
    """
    Base class for Entities in the domain model.

    Subclasses must have an 'id' attribute of type IdType and are usually
    declared as ``@dataclass(eq=False)`` so identity equality is kept.
    """

    id: IdType

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

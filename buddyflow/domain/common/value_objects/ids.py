from dataclasses import dataclass

from ..entity import EntityId


@dataclass(frozen=True)
class UserId(EntityId):
    """Strongly-typed user identifier."""


@dataclass(frozen=True)
class FlowId(EntityId):
    """Strongly-typed flow template identifier."""


@dataclass(frozen=True)
class FlowStepId(EntityId):
    """Strongly-typed flow template step identifier."""


@dataclass(frozen=True)
class ComponentDefinitionId(EntityId):
    """Strongly-typed identifier of a component inside a flow template step."""


@dataclass(frozen=True)
class FlowSnapshotId(EntityId):
    """Strongly-typed flow snapshot identifier."""


@dataclass(frozen=True)
class StepSnapshotId(EntityId):
    """Strongly-typed snapshot step identifier."""


@dataclass(frozen=True)
class ComponentSnapshotId(EntityId):
    """Strongly-typed snapshot component identifier."""


@dataclass(frozen=True)
class AssignmentId(EntityId):
    """Strongly-typed flow assignment identifier."""


@dataclass(frozen=True)
class FlowProgressId(EntityId):
    """Strongly-typed flow progress identifier."""


@dataclass(frozen=True)
class StepProgressId(EntityId):
    """Strongly-typed step progress identifier."""


@dataclass(frozen=True)
class ComponentProgressId(EntityId):
    """Strongly-typed component progress identifier."""

"""Snapshot domain exceptions."""

from buddyflow.domain.common.exceptions import EntityNotFoundError
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    FlowSnapshotId,
)


class SnapshotNotFoundError(EntityNotFoundError):
    """Raised when a flow snapshot cannot be found."""

    def __init__(self, snapshot_id: FlowSnapshotId | AssignmentId) -> None:
        super().__init__("FlowSnapshot", snapshot_id)


class ComponentNotFoundError(EntityNotFoundError):
    """Raised when a component id is not part of a snapshot."""

    def __init__(self, component_id: ComponentSnapshotId) -> None:
        super().__init__("Component", component_id)

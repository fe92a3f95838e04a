from typing import Protocol

from buddyflow.domain.common.value_objects import AssignmentId, FlowSnapshotId
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot


class FlowSnapshotRepositoryProtocol(Protocol):
    def find_by_id(self, snapshot_id: FlowSnapshotId) -> FlowSnapshot | None: ...

    def find_by_assignment_id(self, assignment_id: AssignmentId) -> FlowSnapshot | None: ...

    def add(self, snapshot: FlowSnapshot) -> FlowSnapshot:
        """Stage a new snapshot with all steps and components; the unit of work commits."""
        ...

    def detach(self, assignment_id: AssignmentId) -> FlowSnapshot | None:
        """Clear the assignment back-reference of the assignment's snapshot."""
        ...

from typing import Protocol

from buddyflow.domain.common.value_objects import AssignmentId
from buddyflow.domain.progress.entities.progress import FlowProgress


class FlowProgressRepositoryProtocol(Protocol):
    def find_by_assignment_id(
        self, assignment_id: AssignmentId, for_update: bool = False
    ) -> FlowProgress | None:
        """
        Load the progress tree of an assignment.

        With ``for_update`` the rows stay locked until the transaction ends,
        serializing concurrent interactions on one assignment.
        """
        ...

    def add(self, progress: FlowProgress) -> FlowProgress: ...

    def save(self, progress: FlowProgress) -> FlowProgress: ...

from typing import Protocol

from buddyflow.domain.common.value_objects import FlowId
from buddyflow.domain.flows.entities.flow import Flow


class FlowRepositoryProtocol(Protocol):
    def find_by_id(self, flow_id: FlowId) -> Flow | None:
        """Load a flow with all of its steps and components."""
        ...

    def save(self, flow: Flow) -> Flow: ...

    def delete(self, flow_id: FlowId) -> bool: ...

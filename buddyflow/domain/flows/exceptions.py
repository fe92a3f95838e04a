"""Flow template domain exceptions."""

from buddyflow.domain.common.exceptions import BusinessRuleViolationError, EntityNotFoundError
from buddyflow.domain.common.value_objects import FlowId


class FlowNotFoundError(EntityNotFoundError):
    """Raised when a flow template cannot be found."""

    def __init__(self, flow_id: FlowId) -> None:
        super().__init__("Flow", flow_id)


class FlowNotReadyError(BusinessRuleViolationError):
    """Raised when a flow without steps is frozen or assigned."""

    def __init__(self, flow_id: FlowId) -> None:
        super().__init__("flow_not_ready", f"Flow {flow_id} has no steps and cannot be assigned")
        self.flow_id = flow_id


class FlowInactiveError(BusinessRuleViolationError):
    """Raised when an inactive flow is frozen or assigned."""

    def __init__(self, flow_id: FlowId) -> None:
        super().__init__("flow_active", f"Flow {flow_id} is not active")
        self.flow_id = flow_id

"""Flow template domain layer."""

from .entities import ComponentDefinition, Flow, FlowStep
from .exceptions import FlowInactiveError, FlowNotFoundError, FlowNotReadyError

__all__ = [
    "ComponentDefinition",
    "Flow",
    "FlowInactiveError",
    "FlowNotFoundError",
    "FlowNotReadyError",
    "FlowStep",
]

from .flow_snapshot import (
    SNAPSHOT_FORMAT_VERSION,
    ComponentSnapshot,
    FlowSnapshot,
    FlowStepSnapshot,
)

__all__ = [
    "SNAPSHOT_FORMAT_VERSION",
    "ComponentSnapshot",
    "FlowSnapshot",
    "FlowStepSnapshot",
]

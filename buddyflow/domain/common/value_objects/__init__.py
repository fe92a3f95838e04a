"""Common value objects shared across all domain modules."""

from .component_type import ComponentType
from .content_hash import ContentHash, canonical_json
from .ids import (
    AssignmentId,
    ComponentDefinitionId,
    ComponentProgressId,
    ComponentSnapshotId,
    FlowId,
    FlowProgressId,
    FlowSnapshotId,
    FlowStepId,
    StepProgressId,
    StepSnapshotId,
    UserId,
)

__all__ = [
    # IDs
    "AssignmentId",
    "ComponentDefinitionId",
    "ComponentProgressId",
    "ComponentSnapshotId",
    "ComponentType",
    "ContentHash",
    "FlowId",
    "FlowProgressId",
    "FlowSnapshotId",
    "FlowStepId",
    "StepProgressId",
    "StepSnapshotId",
    "UserId",
    "canonical_json",
]

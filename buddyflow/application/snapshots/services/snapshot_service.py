"""Application service for flow snapshots."""

import structlog

from buddyflow.application.snapshots.protocols.snapshot_repository import (
    FlowSnapshotRepositoryProtocol,
)
from buddyflow.domain.common.value_objects import AssignmentId, FlowSnapshotId
from buddyflow.domain.flows.entities.flow import Flow
from buddyflow.domain.snapshots.entities.flow_snapshot import FlowSnapshot
from buddyflow.domain.snapshots.exceptions import SnapshotNotFoundError
from buddyflow.domain.snapshots.services.snapshot_builder import (
    SnapshotBuilder,
    SnapshotContext,
    SnapshotStats,
)

logger = structlog.get_logger(__name__)


class SnapshotService:
    """
    Builds and stores snapshots.

    Writes are staged in the caller's unit of work: a snapshot is committed
    together with the assignment that owns it, or not at all.
    """

    def __init__(
        self,
        snapshot_repository: FlowSnapshotRepositoryProtocol,
        snapshot_builder: SnapshotBuilder,
    ) -> None:
        self.snapshot_repository = snapshot_repository
        self.snapshot_builder = snapshot_builder

    def create_snapshot(
        self, flow: Flow, context: SnapshotContext
    ) -> tuple[FlowSnapshot, SnapshotStats]:
        """
        Freeze a flow and stage the snapshot for persistence.

        Args:
            flow: Fully loaded flow
            context: Owning assignment, creator and metadata

        Returns:
            The staged snapshot and its statistics

        Raises:
            FlowInactiveError: If the flow is not active
            FlowNotReadyError: If the flow has no steps
            ValidationError: If the flow content is invalid
        """
        snapshot, stats = self.snapshot_builder.create_snapshot(flow, context)
        self.snapshot_repository.add(snapshot)
        logger.info(
            "snapshot_created",
            snapshot_id=str(snapshot.id),
            flow_id=str(flow.id),
            flow_version=flow.version,
            assignment_id=str(context.assignment_id) if context.assignment_id else None,
            creation_time_ms=stats.creation_time_ms,
        )
        return snapshot, stats

    def get_snapshot(self, snapshot_id: FlowSnapshotId) -> FlowSnapshot:
        snapshot = self.snapshot_repository.find_by_id(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        return snapshot

    def get_snapshot_by_assignment(self, assignment_id: AssignmentId) -> FlowSnapshot:
        snapshot = self.snapshot_repository.find_by_assignment_id(assignment_id)
        if snapshot is None:
            raise SnapshotNotFoundError(assignment_id)
        return snapshot

    def detach_snapshot(self, assignment_id: AssignmentId) -> FlowSnapshot:
        """
        Clear the assignment back-reference so the snapshot outlives its assignment.

        Raises:
            SnapshotNotFoundError: If the assignment has no snapshot
        """
        snapshot = self.snapshot_repository.detach(assignment_id)
        if snapshot is None:
            raise SnapshotNotFoundError(assignment_id)
        logger.info("snapshot_detached", snapshot_id=str(snapshot.id), assignment_id=str(assignment_id))
        return snapshot

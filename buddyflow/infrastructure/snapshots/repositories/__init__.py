from .snapshot_repository import FlowSnapshotRepository

__all__ = ["FlowSnapshotRepository"]

from .snapshot_repository import FlowSnapshotRepositoryProtocol

__all__ = ["FlowSnapshotRepositoryProtocol"]

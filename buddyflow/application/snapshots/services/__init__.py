from .snapshot_service import SnapshotService

__all__ = ["SnapshotService"]

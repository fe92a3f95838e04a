from .snapshot_builder import SnapshotBuilder, SnapshotContext, SnapshotStats

__all__ = ["SnapshotBuilder", "SnapshotContext", "SnapshotStats"]

from .snapshot_mapper import FlowSnapshotMapper

__all__ = ["FlowSnapshotMapper"]

from .progress_mapper import FlowProgressMapper

__all__ = ["FlowProgressMapper"]

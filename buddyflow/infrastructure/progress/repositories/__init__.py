from .progress_repository import FlowProgressRepository

__all__ = ["FlowProgressRepository"]

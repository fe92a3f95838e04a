from .assignment_repository import FlowAssignmentRepository

__all__ = ["FlowAssignmentRepository"]

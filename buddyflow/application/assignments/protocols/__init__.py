from .assignment_repository import FlowAssignmentRepositoryProtocol

__all__ = ["FlowAssignmentRepositoryProtocol"]

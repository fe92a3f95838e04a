from .assignment_mapper import FlowAssignmentMapper

__all__ = ["FlowAssignmentMapper"]

from .flow_repository import FlowRepositoryProtocol

__all__ = ["FlowRepositoryProtocol"]

from .flow_repository import FlowRepository

__all__ = ["FlowRepository"]

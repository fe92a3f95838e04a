from .flow_mapper import FlowMapper

__all__ = ["FlowMapper"]

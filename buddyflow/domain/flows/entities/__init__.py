from .flow import ComponentDefinition, Flow, FlowStep

__all__ = ["ComponentDefinition", "Flow", "FlowStep"]

from .interact_with_component_use_case import (
    AssignmentProgressView,
    ComponentInteractionInput,
    ComponentInteractionResult,
    InteractWithComponentUseCase,
    UnlockedComponent,
    UnlockedStep,
)

__all__ = [
    "AssignmentProgressView",
    "ComponentInteractionInput",
    "ComponentInteractionResult",
    "InteractWithComponentUseCase",
    "UnlockedComponent",
    "UnlockedStep",
]

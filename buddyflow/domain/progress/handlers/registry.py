"""
Component handler registry.

A registry is a plain table from component type to handler. One is built
at startup with ``build_default_registry`` and handed to whoever needs to
dispatch interactions; adding a component type means registering one more
handler.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from buddyflow.domain.common.value_objects import ComponentType
from buddyflow.domain.progress.exceptions import UnsupportedActionError, UnsupportedComponentTypeError

from .article import ArticleHandler
from .base import (
    ComponentAction,
    ComponentHandler,
    InteractionContext,
    InteractionOutcome,
    ValidationResult,
)
from .quiz import QuizHandler
from .task import TaskHandler
from .video import VideoHandler

logger = structlog.get_logger(__name__)


class ComponentHandlerRegistry:
    """Dispatch table mapping component types to their handlers."""

    def __init__(self, handlers: Iterable[ComponentHandler] = ()) -> None:
        self._handlers: dict[ComponentType, ComponentHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: ComponentHandler) -> None:
        """
        Add a handler for its component type.

        Raises:
            ValueError: If the type already has a handler
        """
        if handler.component_type in self._handlers:
            raise ValueError(f"A handler for {handler.component_type} is already registered")
        self._handlers[handler.component_type] = handler

    @property
    def supported_types(self) -> list[ComponentType]:
        return sorted(self._handlers)

    def supports(self, component_type: str) -> bool:
        known = ComponentType.parse(component_type)
        return known is not None and known in self._handlers

    def get(self, component_type: str) -> ComponentHandler | None:
        known = ComponentType.parse(component_type)
        return self._handlers.get(known) if known is not None else None

    def require(self, component_type: str) -> ComponentHandler:
        handler = self.get(component_type)
        if handler is None:
            raise UnsupportedComponentTypeError(component_type)
        return handler

    def validate_schema(self, component_type: str, data: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a component payload.

        Unknown types are accepted unchanged with a warning so snapshots can
        carry components this engine does not interpret yet.
        """
        handler = self.get(component_type)
        if handler is None:
            return ValidationResult.ok(warnings=[f"unknown component type {component_type!r}"])
        return handler.validate_schema(data)

    def dispatch(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> InteractionOutcome:
        """
        Run one action through its handler.

        The checks always run in the same order: component type, frozen
        payload, action support, action data, then business rules. The
        first failure is raised.

        Raises:
            UnsupportedComponentTypeError: If no handler serves the component type
            UnsupportedActionError: If the handler does not support the action
            ValidationError: If the component payload or the action data is invalid
            DomainError: If a business rule rejects the action
        """
        component = context.component
        handler = self.require(component.type)

        handler.validate_schema(component.data).raise_if_invalid(
            f"Component {component.id} has an invalid {component.type} payload"
        )
        if action not in handler.supported_actions:
            raise UnsupportedActionError(action.value, component.type)
        handler.validate_action_data(action, data).raise_if_invalid(
            f"Invalid data for action {action.value}"
        )
        handler.validate_business_rules(action, data, context)

        outcome = handler.process_action(action, data, context)
        logger.debug(
            "component_action_processed",
            component_id=str(component.id),
            component_type=component.type,
            action=action.value,
            status=outcome.status.value,
            progress=outcome.progress,
        )
        return outcome

    def available_actions(self, context: InteractionContext) -> list[ComponentAction]:
        handler = self.get(context.component.type)
        if handler is None:
            return []
        return handler.available_actions(context)


def build_default_registry() -> ComponentHandlerRegistry:
    """Registry with the article, task, quiz and video handlers."""
    return ComponentHandlerRegistry(
        [ArticleHandler(), TaskHandler(), QuizHandler(), VideoHandler()]
    )

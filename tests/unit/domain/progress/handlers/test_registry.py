"""Tests for the component handler registry."""

import pytest

from buddyflow.domain.common.exceptions import BusinessRuleViolationError, ValidationError
from buddyflow.domain.common.value_objects import ComponentSnapshotId, ComponentType
from buddyflow.domain.progress.entities.progress import ComponentStatus
from buddyflow.domain.progress.exceptions import UnsupportedActionError, UnsupportedComponentTypeError
from buddyflow.domain.progress.handlers import (
    ArticleHandler,
    ComponentAction,
    ComponentHandlerRegistry,
    InteractionContext,
    TaskHandler,
    build_default_registry,
)
from buddyflow.domain.snapshots.entities.flow_snapshot import ComponentSnapshot

TASK = {"content": {"instruction": "Say hi", "correctAnswer": "hi"}}


def _context(type: str, data: dict) -> InteractionContext:
    return InteractionContext(
        component=ComponentSnapshot(id=ComponentSnapshotId.generate(), order=1, type=type, data=data)
    )


class TestRegistry:
    def test_default_registry_serves_every_known_type(self) -> None:
        registry = build_default_registry()
        assert registry.supported_types == sorted(ComponentType)
        assert registry.supports("Quiz") is True
        assert registry.supports("checklist") is False

    def test_duplicate_registration_is_rejected(self) -> None:
        registry = ComponentHandlerRegistry([ArticleHandler()])
        with pytest.raises(ValueError):
            registry.register(ArticleHandler())

    def test_require_unknown_type(self) -> None:
        with pytest.raises(UnsupportedComponentTypeError) as exc_info:
            ComponentHandlerRegistry().require("checklist")
        assert exc_info.value.component_type == "checklist"

    def test_unknown_types_pass_schema_validation_with_a_warning(self) -> None:
        result = build_default_registry().validate_schema("checklist", {"items": []})
        assert result.is_valid is True
        assert result.warnings == ["unknown component type 'checklist'"]

    def test_available_actions_for_unknown_type(self) -> None:
        assert build_default_registry().available_actions(_context("checklist", {})) == []


class TestDispatch:
    def test_dispatches_to_the_handler(self) -> None:
        outcome = build_default_registry().dispatch(
            ComponentAction.SUBMIT_ANSWER, {"answer": "Hi"}, _context("task", TASK)
        )
        assert outcome.status == ComponentStatus.COMPLETED

    def test_unknown_type_fails_first(self) -> None:
        with pytest.raises(UnsupportedComponentTypeError):
            build_default_registry().dispatch(ComponentAction.FINISH_QUIZ, {}, _context("checklist", {}))

    def test_invalid_payload_fails_before_action_support(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_default_registry().dispatch(
                ComponentAction.FINISH_QUIZ, {}, _context("task", {"content": {}})
            )
        assert not isinstance(exc_info.value, UnsupportedActionError)
        assert exc_info.value.errors

    def test_unsupported_action(self) -> None:
        with pytest.raises(UnsupportedActionError) as exc_info:
            build_default_registry().dispatch(ComponentAction.FINISH_QUIZ, {}, _context("task", TASK))
        assert exc_info.value.action == "FINISH_QUIZ"

    def test_action_data_is_checked_before_business_rules(self) -> None:
        registry = ComponentHandlerRegistry([TaskHandler()])
        no_hint = _context("task", TASK)

        with pytest.raises(ValidationError):
            registry.dispatch(ComponentAction.REQUEST_HINT, {"timeSpent": -1}, no_hint)
        with pytest.raises(BusinessRuleViolationError):
            registry.dispatch(ComponentAction.REQUEST_HINT, {}, no_hint)

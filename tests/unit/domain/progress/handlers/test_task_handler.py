"""Tests for the task component handler."""

from datetime import UTC, datetime
from typing import Any

import pytest

from buddyflow.domain.common.exceptions import BusinessRuleViolationError
from buddyflow.domain.common.value_objects import ComponentProgressId, ComponentSnapshotId
from buddyflow.domain.progress.entities.progress import ComponentProgress, ComponentStatus
from buddyflow.domain.progress.exceptions import AttemptsExhaustedError
from buddyflow.domain.progress.handlers.base import ComponentAction, InteractionContext
from buddyflow.domain.progress.handlers.task import (
    TaskContent,
    TaskHandler,
    check_answer,
    task_progress,
)
from buddyflow.domain.snapshots.entities.flow_snapshot import ComponentSnapshot

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

TASK = {
    "content": {
        "instruction": "Name the capital of France",
        "correctAnswer": "Paris",
        "hint": "City of light",
        "examples": ["Berlin is the capital of Germany"],
        "maxAttempts": 3,
    }
}


def _context(
    data: dict[str, Any] = TASK,
    status: ComponentStatus = ComponentStatus.UNLOCKED,
    progress_data: dict[str, Any] | None = None,
) -> InteractionContext:
    component = ComponentSnapshot(
        id=ComponentSnapshotId.generate(), order=1, type="task", data=data
    )
    progress = ComponentProgress(
        id=ComponentProgressId.generate(),
        component_snapshot_id=component.id,
        order=1,
        status=status,
        progress_data=progress_data or {},
    )
    return InteractionContext(component=component, progress=progress, now=NOW)


def _content(**overrides: Any) -> TaskContent:
    return TaskContent.model_validate({"instruction": "Answer", "correctAnswer": "Paris", **overrides})


class TestCheckAnswer:
    def test_trims_and_ignores_case_by_default(self) -> None:
        assert check_answer(" Paris ", _content()) is True
        assert check_answer("paris", _content()) is True

    def test_case_sensitive_matching(self) -> None:
        content = _content(validation={"caseSensitive": True})
        assert check_answer("paris", content) is False
        assert check_answer("Paris", content) is True

    def test_alternative_answers(self) -> None:
        content = _content(alternativeAnswers=["Paname"])
        assert check_answer("paname", content) is True

    def test_regex_pattern(self) -> None:
        content = _content(validation={"regexPattern": r"^pa.is$"})
        assert check_answer("PARIS", content) is True
        assert check_answer("parois", content) is False

    def test_partial_match(self) -> None:
        content = _content(correctAnswer="Paris, France", validation={"allowPartialMatch": True})
        assert check_answer("paris", content) is True

    def test_blank_answer_is_wrong(self) -> None:
        assert check_answer("   ", _content()) is False


class TestTaskProgress:
    def test_correct_is_complete(self) -> None:
        assert task_progress(3, 3, True, True) == 100.0

    def test_attempts_and_hint_share(self) -> None:
        assert task_progress(1, 2, False, False) == 25.0
        assert task_progress(1, 2, True, False) == 35.0

    def test_unfinished_is_capped(self) -> None:
        assert task_progress(10, 1, True, False) == 99.0


class TestTaskHandler:
    def test_schema_requires_an_answer_key(self) -> None:
        result = TaskHandler().validate_schema({"content": {"instruction": "Do it"}})
        assert result.is_valid is False
        assert result.errors

    def test_schema_rejects_invalid_regex(self) -> None:
        data = {"content": {"instruction": "Do it", "correctAnswer": "x", "validation": {"regexPattern": "("}}}
        assert TaskHandler().validate_schema(data).is_valid is False

    def test_submit_requires_an_answer(self) -> None:
        result = TaskHandler().validate_action_data(ComponentAction.SUBMIT_ANSWER, {"answer": " "})
        assert result.is_valid is False

    def test_correct_first_answer(self) -> None:
        outcome = TaskHandler().process_action(
            ComponentAction.SUBMIT_ANSWER, {"answer": " Paris "}, _context()
        )
        assert outcome.status == ComponentStatus.COMPLETED
        assert outcome.is_correct is True
        assert outcome.progress == 100.0
        assert outcome.completed_at == NOW
        assert outcome.progress_data["attempts"] == 1
        assert outcome.feedback == {"attempts": 1, "attempts_remaining": 2}

    def test_hint_appears_after_second_wrong_attempt(self) -> None:
        handler = TaskHandler()
        first = handler.process_action(ComponentAction.SUBMIT_ANSWER, {"answer": "Lyon"}, _context())
        assert "hint" not in first.feedback

        second = handler.process_action(
            ComponentAction.SUBMIT_ANSWER,
            {"answer": "Nice"},
            _context(status=ComponentStatus.IN_PROGRESS, progress_data=first.progress_data),
        )
        assert second.status == ComponentStatus.IN_PROGRESS
        assert second.feedback["hint"] == "City of light"
        assert "examples" not in second.feedback
        assert [a["answer"] for a in second.progress_data["answers"]] == ["Lyon", "Nice"]

    def test_last_wrong_attempt_fails_the_task(self) -> None:
        context = _context(status=ComponentStatus.IN_PROGRESS, progress_data={"attempts": 2})

        outcome = TaskHandler().process_action(ComponentAction.SUBMIT_ANSWER, {"answer": "Rome"}, context)

        assert outcome.status == ComponentStatus.FAILED
        assert outcome.feedback["attempts_remaining"] == 0
        assert outcome.feedback["examples"] == ["Berlin is the capital of Germany"]

    def test_submitting_after_failure_is_a_conflict(self) -> None:
        context = _context(status=ComponentStatus.FAILED, progress_data={"attempts": 3})

        with pytest.raises(AttemptsExhaustedError):
            TaskHandler().validate_business_rules(ComponentAction.SUBMIT_ANSWER, {"answer": "x"}, context)

    def test_completed_task_cannot_be_resubmitted(self) -> None:
        context = _context(status=ComponentStatus.COMPLETED)

        with pytest.raises(BusinessRuleViolationError) as exc_info:
            TaskHandler().validate_business_rules(ComponentAction.SUBMIT_ANSWER, {"answer": "x"}, context)
        assert exc_info.value.rule == "task_already_completed"

    def test_hint_request_without_hint(self) -> None:
        data = {"content": {"instruction": "Answer", "correctAnswer": "Paris"}}

        with pytest.raises(BusinessRuleViolationError) as exc_info:
            TaskHandler().validate_business_rules(ComponentAction.REQUEST_HINT, {}, _context(data))
        assert exc_info.value.rule == "hint_available"

    def test_hint_request_marks_hint_used(self) -> None:
        outcome = TaskHandler().process_action(ComponentAction.REQUEST_HINT, {}, _context())

        assert outcome.status == ComponentStatus.IN_PROGRESS
        assert outcome.progress_data["hint_used"] is True
        assert outcome.progress == 10.0
        assert outcome.feedback == {"hint": "City of light"}

    def test_available_actions(self) -> None:
        handler = TaskHandler()
        assert handler.available_actions(_context()) == [
            ComponentAction.SUBMIT_ANSWER,
            ComponentAction.REQUEST_HINT,
            ComponentAction.MARK_COMPLETED,
        ]
        assert handler.available_actions(_context(progress_data={"hint_used": True})) == [
            ComponentAction.SUBMIT_ANSWER,
            ComponentAction.MARK_COMPLETED,
        ]
        assert handler.available_actions(_context(status=ComponentStatus.FAILED)) == []

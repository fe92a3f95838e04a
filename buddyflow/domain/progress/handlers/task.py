"""Task (free-text answer) component handler."""

import re
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import AliasChoices, Field, model_validator

from buddyflow.domain.common.exceptions import BusinessRuleViolationError
from buddyflow.domain.common.value_objects import ComponentType
from buddyflow.domain.progress.entities.progress import ComponentStatus
from buddyflow.domain.progress.exceptions import AttemptsExhaustedError

from .base import (
    ComponentAction,
    ContentEnvelope,
    InteractionContext,
    InteractionOutcome,
    PayloadModel,
    ValidationResult,
    clamp_percentage,
    completion_timestamp,
    parse_payload,
    require_payload,
)

DEFAULT_MAX_ATTEMPTS = 3
MAX_ANSWER_LENGTH = 1000
HINT_AFTER_ATTEMPT = 2
EXAMPLES_AFTER_ATTEMPT = 3
HINT_BONUS = 10.0
ATTEMPT_SHARE = 50.0
MAX_UNFINISHED_PROGRESS = 99.0


class AnswerValidation(PayloadModel):
    case_sensitive: bool = False
    trim_whitespace: bool = True
    allow_partial_match: bool = False
    regex_pattern: str | None = None


class TaskContent(PayloadModel):
    instruction: str = Field(
        min_length=1, validation_alias=AliasChoices("instruction", "description")
    )
    correct_answer: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "correct_answer", "correctAnswer", "expected_output", "expectedOutput"
        ),
    )
    alternative_answers: list[str] = Field(default_factory=list)
    hint: str | None = None
    examples: list[str] = Field(default_factory=list)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    validation: AnswerValidation = Field(
        default_factory=AnswerValidation,
        validation_alias=AliasChoices("validation", "validation_settings", "validationSettings"),
    )

    @model_validator(mode="after")
    def require_answer_key(self) -> "TaskContent":
        has_answer = bool(self.correct_answer and self.correct_answer.strip())
        if not has_answer and not any(a.strip() for a in self.alternative_answers):
            raise ValueError("task needs a correct answer or alternative answers")
        if self.validation.regex_pattern:
            try:
                re.compile(self.validation.regex_pattern)
            except re.error as err:
                raise ValueError(f"invalid regex pattern: {err}") from err
        return self

    @property
    def accepted_answers(self) -> list[str]:
        answers = [self.correct_answer] if self.correct_answer else []
        return answers + [a for a in self.alternative_answers if a.strip()]


class TaskComponentData(ContentEnvelope):
    content: TaskContent


class TaskActionData(PayloadModel):
    answer: str | None = Field(default=None, max_length=MAX_ANSWER_LENGTH)
    time_spent: float | None = Field(default=None, ge=0)


def check_answer(answer: str, content: TaskContent) -> bool:
    """
    Check a learner answer against the task's answer key.

    Matching honours the task's validation settings: whitespace trimming and
    case folding by default, then the regex pattern, exact matches against
    the correct and alternative answers, and finally partial matches.
    """
    settings = content.validation

    def normalize(value: str) -> str:
        if settings.trim_whitespace:
            value = value.strip()
        if not settings.case_sensitive:
            value = value.casefold()
        return value

    candidate = normalize(answer)
    if not candidate:
        return False

    if settings.regex_pattern:
        flags = 0 if settings.case_sensitive else re.IGNORECASE
        if re.search(settings.regex_pattern, candidate, flags):
            return True

    for expected in content.accepted_answers:
        normalized = normalize(expected)
        if candidate == normalized:
            return True
        if settings.allow_partial_match and candidate in normalized:
            return True
    return False


def task_progress(attempts: int, max_attempts: int, hint_used: bool, correct: bool) -> float:
    if correct:
        return 100.0
    value = attempts / max_attempts * ATTEMPT_SHARE + (HINT_BONUS if hint_used else 0.0)
    return clamp_percentage(min(value, MAX_UNFINISHED_PROGRESS))


class TaskHandler:
    """
    Grades free-text answers.

    A wrong answer on the last allowed attempt fails the task for good.
    The hint is surfaced after the second wrong attempt and the examples
    after the third.
    """

    component_type: ClassVar[ComponentType] = ComponentType.TASK
    supported_actions: ClassVar[frozenset[ComponentAction]] = frozenset(
        {
            ComponentAction.SUBMIT_ANSWER,
            ComponentAction.REQUEST_HINT,
            ComponentAction.MARK_COMPLETED,
        }
    )

    def validate_schema(self, component_data: Mapping[str, Any]) -> ValidationResult:
        parsed, errors = parse_payload(TaskComponentData, component_data)
        if parsed is None:
            return ValidationResult.failed(errors)
        return ValidationResult.ok()

    def validate_action_data(
        self, action: ComponentAction, data: Mapping[str, Any]
    ) -> ValidationResult:
        parsed, errors = parse_payload(TaskActionData, data)
        if parsed is None:
            return ValidationResult.failed(errors)
        if action == ComponentAction.SUBMIT_ANSWER and not (parsed.answer and parsed.answer.strip()):
            return ValidationResult.failed(["answer: an answer is required"])
        return ValidationResult.ok()

    def validate_business_rules(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> None:
        content = self._content(context)
        if action == ComponentAction.SUBMIT_ANSWER:
            if context.is_completed:
                raise BusinessRuleViolationError(
                    "task_already_completed", "This task has already been solved"
                )
            attempts = int(context.progress_data.get("attempts", 0))
            if context.status == ComponentStatus.FAILED or attempts >= content.max_attempts:
                raise AttemptsExhaustedError(content.max_attempts)
        elif action == ComponentAction.REQUEST_HINT and not content.hint:
            raise BusinessRuleViolationError("hint_available", "This task has no hint")

    def process_action(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> InteractionOutcome:
        content = self._content(context)
        payload = require_payload(TaskActionData, data, "task action data")
        previous = context.progress_data
        attempts = int(previous.get("attempts", 0))
        hint_used = bool(previous.get("hint_used", False))

        if action == ComponentAction.MARK_COMPLETED:
            return InteractionOutcome(
                status=ComponentStatus.COMPLETED,
                progress=100.0,
                progress_data={**previous, "progress": 100.0},
                completed_at=completion_timestamp(context, True),
                message="Task marked as completed",
            )

        if action == ComponentAction.REQUEST_HINT:
            progress = task_progress(attempts, content.max_attempts, True, context.is_completed)
            status = context.status
            if context.is_untouched:
                status = ComponentStatus.IN_PROGRESS
            return InteractionOutcome(
                status=status,
                progress=progress,
                progress_data={**previous, "hint_used": True, "progress": progress},
                completed_at=completion_timestamp(context, context.is_completed),
                message="Hint revealed",
                feedback={"hint": content.hint},
            )

        answer = payload.answer or ""
        attempts += 1
        correct = check_answer(answer, content)
        progress = task_progress(attempts, content.max_attempts, hint_used, correct)
        remaining = max(content.max_attempts - attempts, 0)

        if correct:
            status = ComponentStatus.COMPLETED
            message = "Correct answer"
        elif remaining == 0:
            status = ComponentStatus.FAILED
            message = "Incorrect answer; no attempts left"
        else:
            status = ComponentStatus.IN_PROGRESS
            message = f"Incorrect answer; {remaining} attempt(s) left"

        feedback: dict[str, Any] = {"attempts": attempts, "attempts_remaining": remaining}
        if not correct and attempts >= HINT_AFTER_ATTEMPT and content.hint:
            feedback["hint"] = content.hint
        if not correct and attempts >= EXAMPLES_AFTER_ATTEMPT and content.examples:
            feedback["examples"] = list(content.examples)

        history = list(previous.get("answers", []))
        history.append(
            {"answer": answer, "is_correct": correct, "submitted_at": context.now.isoformat()}
        )
        return InteractionOutcome(
            status=status,
            progress=progress,
            progress_data={
                **previous,
                "attempts": attempts,
                "answers": history,
                "last_answer": answer,
                "is_correct": correct,
                "hint_used": hint_used,
                "progress": progress,
            },
            completed_at=completion_timestamp(context, correct),
            is_correct=correct,
            message=message,
            feedback=feedback,
        )

    def is_completed(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> bool:
        if context.is_completed or action == ComponentAction.MARK_COMPLETED:
            return True
        if action != ComponentAction.SUBMIT_ANSWER:
            return False
        payload = require_payload(TaskActionData, data, "task action data")
        return check_answer(payload.answer or "", self._content(context))

    def calculate_progress(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> float:
        content = self._content(context)
        previous = context.progress_data
        attempts = int(previous.get("attempts", 0))
        hint_used = bool(previous.get("hint_used", False))
        if action == ComponentAction.SUBMIT_ANSWER:
            attempts += 1
        elif action == ComponentAction.REQUEST_HINT:
            hint_used = True
        completed = self.is_completed(action, data, context)
        return task_progress(attempts, content.max_attempts, hint_used, completed)

    def available_actions(self, context: InteractionContext) -> list[ComponentAction]:
        if context.status in (ComponentStatus.LOCKED, ComponentStatus.COMPLETED, ComponentStatus.FAILED):
            return []
        actions = [ComponentAction.SUBMIT_ANSWER]
        if self._content(context).hint and not context.progress_data.get("hint_used"):
            actions.append(ComponentAction.REQUEST_HINT)
        actions.append(ComponentAction.MARK_COMPLETED)
        return actions

    def _content(self, context: InteractionContext) -> TaskContent:
        return require_payload(TaskComponentData, context.component.data, "task content").content

"""Quiz component handler and scoring."""

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any, ClassVar

from pydantic import AliasChoices, Field, model_validator

from buddyflow.domain.common.exceptions import (
    BusinessRuleViolationError,
    EntityNotFoundError,
    ValidationError,
)
from buddyflow.domain.common.value_objects import ComponentType
from buddyflow.domain.progress.entities.progress import ComponentStatus

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

DEFAULT_PASSING_SCORE = 60.0
MULTIPLE_CHOICE = "multiple_choice"


class QuizOption(PayloadModel):
    id: str = Field(min_length=1)
    text: str
    is_correct: bool = False


class QuizQuestion(PayloadModel):
    id: str = Field(min_length=1)
    question: str = Field(min_length=1, validation_alias=AliasChoices("question", "text"))
    options: list[QuizOption] = Field(min_length=2)
    type: str = "single_choice"
    points: float = Field(default=1.0, gt=0)
    explanation: str | None = None

    @model_validator(mode="after")
    def check_options(self) -> "QuizQuestion":
        ids = [o.id for o in self.options]
        if len(ids) != len(set(ids)):
            raise ValueError(f"question {self.id} has duplicate option ids")
        if not any(o.is_correct for o in self.options):
            raise ValueError(f"question {self.id} needs at least one correct option")
        return self

    @property
    def is_multiple_choice(self) -> bool:
        return self.type.strip().lower() == MULTIPLE_CHOICE

    @property
    def option_ids(self) -> set[str]:
        return {o.id for o in self.options}

    @property
    def correct_option_ids(self) -> set[str]:
        return {o.id for o in self.options if o.is_correct}


class QuizSettings(PayloadModel):
    passing_score: float = Field(default=DEFAULT_PASSING_SCORE, ge=0, le=100)
    time_limit: int | None = Field(default=None, gt=0)
    show_results_immediately: bool = True


def _normalize_legacy_question(index: int, raw: Any) -> Any:
    """Convert ``{question, options: [str], correctAnswer}`` into the option-object shape."""
    if not isinstance(raw, Mapping):
        return raw
    question = dict(raw)
    question.setdefault("id", f"q{index + 1}")
    options = question.get("options")
    if isinstance(options, list) and options and all(isinstance(o, str) for o in options):
        correct = question.pop("correctAnswer", question.pop("correct_answer", None))
        question["options"] = [
            {
                "id": str(position),
                "text": text,
                "is_correct": correct == position if isinstance(correct, int) else correct == text,
            }
            for position, text in enumerate(options)
        ]
    return question


class QuizContent(PayloadModel):
    questions: list[QuizQuestion] = Field(min_length=1)
    settings: QuizSettings = Field(default_factory=QuizSettings)

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy(cls, value: Any) -> Any:
        if isinstance(value, Mapping) and isinstance(value.get("questions"), list):
            value = dict(value)
            value["questions"] = [
                _normalize_legacy_question(i, q) for i, q in enumerate(value["questions"])
            ]
        return value

    @model_validator(mode="after")
    def unique_question_ids(self) -> "QuizContent":
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique")
        return self

    def question(self, question_id: str) -> QuizQuestion | None:
        return next((q for q in self.questions if q.id == question_id), None)


class QuizComponentData(ContentEnvelope):
    content: QuizContent


class QuizActionData(PayloadModel):
    question_id: str | None = None
    selected_option_id: str | None = None
    selected_option_ids: list[str] | None = None
    all_answers: dict[str, str | list[str]] | None = None
    time_spent: float | None = Field(default=None, ge=0)

    @property
    def selection(self) -> list[str]:
        if self.selected_option_ids:
            return sorted(set(self.selected_option_ids))
        if self.selected_option_id:
            return [self.selected_option_id]
        return []


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    is_correct: bool
    points_earned: float
    points_possible: float
    selected_option_ids: list[str]
    correct_option_ids: list[str]


@dataclass(frozen=True)
class QuizResult:
    score: float
    max_score: float
    percentage: float
    correct_answers: int
    total_questions: int
    passed: bool
    question_results: list[QuestionResult]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_answer_correct(question: QuizQuestion, selected: set[str]) -> bool:
    """
    Grade one question.

    Multiple-choice questions need exactly the set of correct options. Every
    other question type needs exactly one selected option, and it must be correct.
    """
    correct = question.correct_option_ids
    if question.is_multiple_choice:
        return selected == correct
    return len(selected) == 1 and selected <= correct


def score_quiz(content: QuizContent, answers: Mapping[str, list[str]]) -> QuizResult:
    results = []
    for question in content.questions:
        selected = sorted(set(answers.get(question.id, [])))
        correct = is_answer_correct(question, set(selected))
        results.append(
            QuestionResult(
                question_id=question.id,
                is_correct=correct,
                points_earned=question.points if correct else 0.0,
                points_possible=question.points,
                selected_option_ids=selected,
                correct_option_ids=sorted(question.correct_option_ids),
            )
        )
    score = sum(r.points_earned for r in results)
    max_score = sum(r.points_possible for r in results)
    percentage = clamp_percentage(score / max_score * 100) if max_score else 0.0
    return QuizResult(
        score=score,
        max_score=max_score,
        percentage=percentage,
        correct_answers=sum(1 for r in results if r.is_correct),
        total_questions=len(results),
        passed=percentage >= content.settings.passing_score,
        question_results=results,
    )


def _as_selection(value: str | list[str]) -> list[str]:
    if isinstance(value, str):
        return [value]
    return sorted(set(value))


class QuizHandler:
    """
    Collects quiz answers one question at a time and scores the quiz on finish.

    A finished quiz is completed whether or not it was passed; the result
    records ``passed`` and the percentage score.
    """

    component_type: ClassVar[ComponentType] = ComponentType.QUIZ
    supported_actions: ClassVar[frozenset[ComponentAction]] = frozenset(
        {
            ComponentAction.SUBMIT_QUIZ_ANSWER,
            ComponentAction.FINISH_QUIZ,
            ComponentAction.MARK_COMPLETED,
        }
    )

    def validate_schema(self, component_data: Mapping[str, Any]) -> ValidationResult:
        parsed, errors = parse_payload(QuizComponentData, component_data)
        if parsed is None:
            return ValidationResult.failed(errors)
        return ValidationResult.ok()

    def validate_action_data(
        self, action: ComponentAction, data: Mapping[str, Any]
    ) -> ValidationResult:
        parsed, errors = parse_payload(QuizActionData, data)
        if parsed is None:
            return ValidationResult.failed(errors)
        if action == ComponentAction.SUBMIT_QUIZ_ANSWER:
            if not parsed.question_id:
                errors.append("question_id: a question id is required")
            if not parsed.selection:
                errors.append("selected_option_id: at least one option must be selected")
        if action == ComponentAction.FINISH_QUIZ and parsed.all_answers is not None:
            errors.extend(
                f"all_answers.{question_id}: no option selected"
                for question_id, selection in parsed.all_answers.items()
                if not selection
            )
        return ValidationResult.failed(errors) if errors else ValidationResult.ok()

    def validate_business_rules(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> None:
        if action == ComponentAction.MARK_COMPLETED:
            return
        content = self._content(context)
        payload = require_payload(QuizActionData, data, "quiz action data")

        if context.is_completed:
            raise BusinessRuleViolationError("quiz_already_completed", "This quiz is already finished")

        time_limit = content.settings.time_limit
        if time_limit and context.started_at is not None:
            if context.now - context.started_at > timedelta(seconds=time_limit):
                raise BusinessRuleViolationError("quiz_time_limit", "The quiz time limit has expired")

        if action == ComponentAction.SUBMIT_QUIZ_ANSWER:
            question = content.question(payload.question_id or "")
            if question is None:
                raise EntityNotFoundError("QuizQuestion", payload.question_id)
            self._check_selection(question, payload.selection, "selected_option_ids")

        if action == ComponentAction.FINISH_QUIZ:
            answers = self._answers_for_finish(payload, context)
            missing = [q.id for q in content.questions if not answers.get(q.id)]
            if missing:
                raise ValidationError(
                    "All questions must be answered before finishing the quiz",
                    field="all_answers",
                    errors=[f"{question_id}: not answered" for question_id in missing],
                )
            unknown_questions = sorted(set(answers) - {q.id for q in content.questions})
            if unknown_questions:
                raise EntityNotFoundError("QuizQuestion", ", ".join(unknown_questions))
            for question in content.questions:
                self._check_selection(question, answers[question.id], f"all_answers.{question.id}")

    @staticmethod
    def _check_selection(question: QuizQuestion, selection: list[str], field: str) -> None:
        unknown = set(selection) - question.option_ids
        if unknown:
            raise EntityNotFoundError("QuizOption", ", ".join(sorted(unknown)))
        if not question.is_multiple_choice and len(selection) > 1:
            raise ValidationError("Only one option can be selected for this question", field=field)

    def process_action(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> InteractionOutcome:
        content = self._content(context)
        payload = require_payload(QuizActionData, data, "quiz action data")
        previous = context.progress_data

        if action == ComponentAction.MARK_COMPLETED:
            return InteractionOutcome(
                status=ComponentStatus.COMPLETED,
                progress=100.0,
                progress_data={**previous, "progress": 100.0},
                completed_at=completion_timestamp(context, True),
                message="Quiz marked as completed",
            )

        if action == ComponentAction.FINISH_QUIZ:
            answers = self._answers_for_finish(payload, context)
            result = score_quiz(content, answers)
            return InteractionOutcome(
                status=ComponentStatus.COMPLETED,
                progress=100.0,
                progress_data={
                    **previous,
                    "answers": answers,
                    "result": result.to_dict(),
                    "progress": 100.0,
                },
                completed_at=completion_timestamp(context, True),
                is_correct=result.passed,
                score=result.percentage,
                message="Quiz passed" if result.passed else "Quiz finished without passing",
                feedback={"quiz_result": result.to_dict()},
            )

        question = content.question(payload.question_id or "")
        assert question is not None
        answers = dict(previous.get("answers", {}))
        answers[question.id] = payload.selection
        progress = self._answered_share(content, answers)
        correct = is_answer_correct(question, set(payload.selection))

        feedback: dict[str, Any] = {
            "question_id": question.id,
            "answered_questions": len([q for q in content.questions if q.id in answers]),
            "total_questions": len(content.questions),
            "next_question_id": self._next_question_id(content, answers, question.id),
        }
        if content.settings.show_results_immediately:
            feedback["is_correct"] = correct
            if question.explanation:
                feedback["explanation"] = question.explanation

        return InteractionOutcome(
            status=ComponentStatus.IN_PROGRESS,
            progress=progress,
            progress_data={**previous, "answers": answers, "progress": progress},
            is_correct=correct if content.settings.show_results_immediately else None,
            message="Answer saved",
            feedback=feedback,
        )

    def is_completed(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> bool:
        return context.is_completed or action in (
            ComponentAction.FINISH_QUIZ,
            ComponentAction.MARK_COMPLETED,
        )

    def calculate_progress(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> float:
        if self.is_completed(action, data, context):
            return 100.0
        content = self._content(context)
        answers = dict(context.progress_data.get("answers", {}))
        if action == ComponentAction.SUBMIT_QUIZ_ANSWER:
            payload = require_payload(QuizActionData, data, "quiz action data")
            if payload.question_id:
                answers[payload.question_id] = payload.selection
        return self._answered_share(content, answers)

    def available_actions(self, context: InteractionContext) -> list[ComponentAction]:
        if context.status in (ComponentStatus.LOCKED, ComponentStatus.COMPLETED, ComponentStatus.FAILED):
            return []
        content = self._content(context)
        answers = context.progress_data.get("answers", {})
        actions = []
        if any(q.id not in answers for q in content.questions):
            actions.append(ComponentAction.SUBMIT_QUIZ_ANSWER)
        if answers:
            actions.append(ComponentAction.FINISH_QUIZ)
        actions.append(ComponentAction.MARK_COMPLETED)
        return actions

    def _content(self, context: InteractionContext) -> QuizContent:
        return require_payload(QuizComponentData, context.component.data, "quiz content").content

    @staticmethod
    def _answers_for_finish(
        payload: QuizActionData, context: InteractionContext
    ) -> dict[str, list[str]]:
        if payload.all_answers is not None:
            return {qid: _as_selection(value) for qid, value in payload.all_answers.items()}
        stored = context.progress_data.get("answers", {})
        return {qid: _as_selection(value) for qid, value in stored.items()}

    @staticmethod
    def _answered_share(content: QuizContent, answers: Mapping[str, list[str]]) -> float:
        answered = sum(1 for q in content.questions if answers.get(q.id))
        return clamp_percentage(answered / len(content.questions) * 100)

    @staticmethod
    def _next_question_id(
        content: QuizContent, answers: Mapping[str, list[str]], current_id: str
    ) -> str | None:
        ids = [q.id for q in content.questions]
        position = ids.index(current_id)
        for question_id in ids[position + 1 :] + ids[:position]:
            if question_id not in answers:
                return question_id
        return None

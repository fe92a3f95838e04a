"""Article (reading) component handler."""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import Field, field_validator, model_validator

from buddyflow.domain.common.exceptions import BusinessRuleViolationError
from buddyflow.domain.common.value_objects import ComponentType
from buddyflow.domain.progress.entities.progress import ComponentStatus

from .base import (
    MAX_SESSION_SECONDS,
    ComponentAction,
    ContentEnvelope,
    InteractionContext,
    InteractionOutcome,
    PayloadModel,
    ValidationResult,
    clamp_percentage,
    completion_timestamp,
    parse_payload,
    reached_milestones,
    require_payload,
    resolve_status,
)

WORDS_PER_MINUTE = 200
MIN_READ_SECONDS = 30.0
MIN_READ_SHARE = 0.5
COMPLETION_THRESHOLD = 95.0

_TAG_PATTERN = re.compile(r"<[^>]+>")


class ArticleContent(PayloadModel):
    text: str | None = None
    html_content: str | None = None
    estimated_read_time: float | None = Field(default=None, gt=0)
    word_count: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def require_body(self) -> "ArticleContent":
        if not (self.text and self.text.strip()) and not (
            self.html_content and self.html_content.strip()
        ):
            raise ValueError("article content needs text or htmlContent")
        return self

    @property
    def plain_text(self) -> str:
        if self.text:
            return self.text
        return _TAG_PATTERN.sub(" ", self.html_content or "")


class ArticleComponentData(ContentEnvelope):
    content: ArticleContent

    @field_validator("content", mode="before")
    @classmethod
    def accept_plain_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value


class ArticleActionData(PayloadModel):
    reading_progress: float | None = Field(default=None, ge=0, le=1)
    scroll_position: float | None = Field(default=None, ge=0)
    time_spent: float | None = Field(default=None, ge=0)
    fully_read: bool = False


def estimated_read_seconds(content: ArticleContent) -> float:
    """Estimated read time from the explicit estimate, the word count, or the text itself."""
    if content.estimated_read_time:
        return content.estimated_read_time * 60
    if content.word_count:
        return content.word_count / WORDS_PER_MINUTE * 60
    words = len(content.plain_text.split())
    return words / WORDS_PER_MINUTE * 60


def minimum_read_seconds(content: ArticleContent) -> float:
    return max(MIN_READ_SECONDS, estimated_read_seconds(content) * MIN_READ_SHARE)


@dataclass(frozen=True)
class _Reading:
    reading_progress: float
    total_time: float
    progress: float
    completed: bool


class ArticleHandler:
    """
    Tracks reading of an article.

    Progress is the best of the reported reading ratio, the time spent
    relative to the estimated read time, and the previous progress. The
    article completes at 95 %, on an explicit finish, or once the learner
    spent half of the estimated read time (never less than 30 seconds).
    """

    component_type: ClassVar[ComponentType] = ComponentType.ARTICLE
    supported_actions: ClassVar[frozenset[ComponentAction]] = frozenset(
        {
            ComponentAction.START_READING,
            ComponentAction.UPDATE_READING_PROGRESS,
            ComponentAction.FINISH_READING,
            ComponentAction.MARK_COMPLETED,
        }
    )

    def validate_schema(self, component_data: Mapping[str, Any]) -> ValidationResult:
        parsed, errors = parse_payload(ArticleComponentData, component_data)
        if parsed is None:
            return ValidationResult.failed(errors)
        return ValidationResult.ok()

    def validate_action_data(
        self, action: ComponentAction, data: Mapping[str, Any]
    ) -> ValidationResult:
        parsed, errors = parse_payload(ArticleActionData, data)
        if parsed is None:
            return ValidationResult.failed(errors)
        if action == ComponentAction.FINISH_READING and not parsed.time_spent:
            return ValidationResult.failed(["time_spent: must be positive to finish reading"])
        return ValidationResult.ok()

    def validate_business_rules(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> None:
        payload = require_payload(ArticleActionData, data, "article action data")
        if action == ComponentAction.FINISH_READING and context.is_completed:
            raise BusinessRuleViolationError(
                "article_already_completed", "This article has already been finished"
            )
        if payload.time_spent is not None and payload.time_spent > MAX_SESSION_SECONDS:
            raise BusinessRuleViolationError(
                "reading_time_limit", "Reported reading time exceeds 24 hours"
            )

    def process_action(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> InteractionOutcome:
        payload = require_payload(ArticleActionData, data, "article action data")
        reading = self._measure(action, payload, context)
        previous = context.progress_data

        milestones_reached = reached_milestones(context.previous_progress, reading.progress)
        progress_data = {
            **previous,
            "reading_progress": reading.reading_progress,
            "time_spent": reading.total_time,
            "progress": reading.progress,
            "last_action": action.value,
            "milestones": sorted(set(previous.get("milestones", [])) | set(milestones_reached)),
        }
        if payload.scroll_position is not None:
            progress_data["scroll_position"] = payload.scroll_position

        if reading.completed:
            message = "Article completed"
        elif action == ComponentAction.START_READING:
            message = "Reading started"
        else:
            message = "Reading progress saved"

        return InteractionOutcome(
            status=resolve_status(context, reading.completed),
            progress=reading.progress,
            progress_data=progress_data,
            completed_at=completion_timestamp(context, reading.completed),
            message=message,
            feedback={
                "milestones": milestones_reached,
                "minimum_read_seconds": minimum_read_seconds(self._content(context)),
            },
        )

    def is_completed(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> bool:
        payload = require_payload(ArticleActionData, data, "article action data")
        return self._measure(action, payload, context).completed

    def calculate_progress(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> float:
        payload = require_payload(ArticleActionData, data, "article action data")
        return self._measure(action, payload, context).progress

    def available_actions(self, context: InteractionContext) -> list[ComponentAction]:
        if context.status in (ComponentStatus.LOCKED, ComponentStatus.COMPLETED, ComponentStatus.FAILED):
            return []
        if context.is_untouched:
            return [ComponentAction.START_READING, ComponentAction.MARK_COMPLETED]
        return [
            ComponentAction.UPDATE_READING_PROGRESS,
            ComponentAction.FINISH_READING,
            ComponentAction.MARK_COMPLETED,
        ]

    def _content(self, context: InteractionContext) -> ArticleContent:
        return require_payload(ArticleComponentData, context.component.data, "article content").content

    def _measure(
        self, action: ComponentAction, payload: ArticleActionData, context: InteractionContext
    ) -> _Reading:
        content = self._content(context)
        previous = context.progress_data

        reading_progress = max(
            float(previous.get("reading_progress", 0.0)),
            payload.reading_progress if payload.reading_progress is not None else 0.0,
        )
        total_time = float(previous.get("time_spent", 0.0)) + (payload.time_spent or 0.0)

        estimated = estimated_read_seconds(content)
        time_ratio = min(total_time / estimated, 1.0) * 100 if estimated > 0 else 0.0
        progress = max(reading_progress * 100, time_ratio, context.previous_progress)

        completed = (
            context.is_completed
            or action in (ComponentAction.FINISH_READING, ComponentAction.MARK_COMPLETED)
            or payload.fully_read
            or progress >= COMPLETION_THRESHOLD
            or total_time >= minimum_read_seconds(content)
        )
        return _Reading(
            reading_progress=reading_progress,
            total_time=total_time,
            progress=100.0 if completed else clamp_percentage(progress),
            completed=completed,
        )

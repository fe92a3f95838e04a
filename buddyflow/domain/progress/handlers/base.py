"""
Shared contract for component interaction handlers.

Every component type is served by one handler object satisfying
``ComponentHandler``. Handlers are stateless: everything they need about the
component and the learner's current progress arrives in an
``InteractionContext``. Opaque payloads are parsed with pydantic models
before any rule looks at them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from buddyflow.domain.common.exceptions import ValidationError
from buddyflow.domain.common.value_objects import ComponentType
from buddyflow.domain.progress.entities.progress import ComponentProgress, ComponentStatus
from buddyflow.domain.snapshots.entities.flow_snapshot import ComponentSnapshot

# Upper bound for a single interaction's reported time, in seconds
MAX_SESSION_SECONDS = 86_400

MILESTONES: tuple[tuple[float, str], ...] = (
    (25.0, "quarter"),
    (50.0, "half"),
    (75.0, "three_quarters"),
    (100.0, "fully"),
)


class ComponentAction(StrEnum):
    START_READING = "START_READING"
    UPDATE_READING_PROGRESS = "UPDATE_READING_PROGRESS"
    FINISH_READING = "FINISH_READING"
    SUBMIT_ANSWER = "SUBMIT_ANSWER"
    REQUEST_HINT = "REQUEST_HINT"
    SUBMIT_QUIZ_ANSWER = "SUBMIT_QUIZ_ANSWER"
    FINISH_QUIZ = "FINISH_QUIZ"
    START_VIDEO = "START_VIDEO"
    UPDATE_VIDEO_PROGRESS = "UPDATE_VIDEO_PROGRESS"
    FINISH_VIDEO = "FINISH_VIDEO"
    MARK_COMPLETED = "MARK_COMPLETED"
    RESET_PROGRESS = "RESET_PROGRESS"

    @classmethod
    def parse(cls, raw: "str | ComponentAction") -> "ComponentAction":
        """
        Parse an action name.

        Raises:
            ValidationError: If the action is unknown
        """
        try:
            return cls(str(raw).strip().upper())
        except ValueError as err:
            raise ValidationError(f"Unknown action: {raw}", field="action", value=raw) from err


class PayloadModel(BaseModel):
    """Base for payload schemas: snake_case fields, camelCase accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class ContentEnvelope(PayloadModel):
    """Component data of the shape ``{"content": {...}}``; a bare content mapping is wrapped."""

    @model_validator(mode="before")
    @classmethod
    def wrap_bare_content(cls, value: Any) -> Any:
        if isinstance(value, Mapping) and "content" not in value:
            return {"content": dict(value)}
        return value


ModelT = TypeVar("ModelT", bound=BaseModel)


def format_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten pydantic errors into ``"location: message"`` strings."""
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "payload"
        errors.append(f"{location}: {error['msg']}")
    return errors


def parse_payload(model: type[ModelT], data: Mapping[str, Any] | None) -> tuple[ModelT | None, list[str]]:
    """Validate ``data`` against ``model`` without raising."""
    try:
        return model.model_validate(dict(data or {})), []
    except PydanticValidationError as exc:
        return None, format_errors(exc)


def require_payload(model: type[ModelT], data: Mapping[str, Any] | None, what: str) -> ModelT:
    """
    Validate ``data`` against ``model``.

    Raises:
        ValidationError: With every problem found, if the payload is invalid
    """
    parsed, errors = parse_payload(model, data)
    if parsed is None:
        raise ValidationError(f"Invalid {what}", errors=errors)
    return parsed


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, warnings: list[str] | None = None) -> "ValidationResult":
        return cls(is_valid=True, warnings=list(warnings or []))

    @classmethod
    def failed(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))

    def raise_if_invalid(self, message: str) -> None:
        if not self.is_valid:
            raise ValidationError(message, errors=self.errors)


@dataclass(frozen=True)
class InteractionContext:
    """What a handler may know about the component being interacted with."""

    component: ComponentSnapshot
    progress: ComponentProgress | None = None
    now: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def status(self) -> ComponentStatus:
        return self.progress.status if self.progress else ComponentStatus.NOT_STARTED

    @property
    def progress_data(self) -> dict[str, Any]:
        return dict(self.progress.progress_data) if self.progress else {}

    @property
    def is_completed(self) -> bool:
        return self.status == ComponentStatus.COMPLETED

    @property
    def is_untouched(self) -> bool:
        return self.status in (
            ComponentStatus.LOCKED,
            ComponentStatus.UNLOCKED,
            ComponentStatus.NOT_STARTED,
        )

    @property
    def started_at(self) -> datetime | None:
        return self.progress.started_at if self.progress else None

    @property
    def previous_progress(self) -> float:
        return float(self.progress_data.get("progress", 0.0))


@dataclass(frozen=True)
class InteractionOutcome:
    """
    Result of processing one action.

    ``progress`` is a percentage in [0, 100]. ``score`` is a percentage score
    where the component type grades the learner (quizzes).
    """

    status: ComponentStatus
    progress: float
    progress_data: dict[str, Any]
    completed_at: datetime | None = None
    is_correct: bool | None = None
    score: float | None = None
    message: str = ""
    feedback: dict[str, Any] = field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        return self.status == ComponentStatus.COMPLETED


class ComponentHandler(Protocol):
    """Capability contract every component type implements."""

    component_type: ClassVar[ComponentType]
    supported_actions: ClassVar[frozenset[ComponentAction]]

    def validate_schema(self, component_data: Mapping[str, Any]) -> ValidationResult: ...

    def validate_action_data(
        self, action: ComponentAction, data: Mapping[str, Any]
    ) -> ValidationResult: ...

    def validate_business_rules(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> None: ...

    def process_action(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> InteractionOutcome: ...

    def is_completed(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> bool: ...

    def calculate_progress(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> float: ...

    def available_actions(self, context: InteractionContext) -> list[ComponentAction]: ...


def reached_milestones(previous: float, current: float) -> list[str]:
    """Milestones crossed when progress moves from ``previous`` to ``current``."""
    return [name for threshold, name in MILESTONES if previous < threshold <= current]


def clamp_percentage(value: float) -> float:
    return round(max(0.0, min(value, 100.0)), 2)


def completion_timestamp(context: InteractionContext, completed: bool) -> datetime | None:
    """Keep the first completion time; stamp ``now`` on a new completion."""
    if not completed:
        return None
    if context.progress is not None and context.progress.completed_at is not None:
        return context.progress.completed_at
    return context.now


def resolve_status(context: InteractionContext, completed: bool) -> ComponentStatus:
    if completed or context.is_completed:
        return ComponentStatus.COMPLETED
    return ComponentStatus.IN_PROGRESS

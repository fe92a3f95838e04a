"""Video component handler."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import AliasChoices, Field, model_validator

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
from .segments import WatchedSegment, merge_segments, required_coverage, total_watch_time, watch_percentage

DEFAULT_MIN_WATCH_SHARE = 0.8
DEFAULT_MAX_PLAYBACK_RATE = 3.0
FULL_WATCH_THRESHOLD = 95.0
REQUIRED_SEGMENTS_THRESHOLD = 90.0
SEEK_TOLERANCE_SECONDS = 5.0
MAX_UNFINISHED_PROGRESS = 99.0

_START_ALIASES = AliasChoices("start", "start_time", "startTime")
_END_ALIASES = AliasChoices("end", "end_time", "endTime")


class RequiredSegment(PayloadModel):
    start: float = Field(ge=0, validation_alias=_START_ALIASES)
    end: float = Field(gt=0, validation_alias=_END_ALIASES)
    name: str | None = None

    @model_validator(mode="after")
    def check_bounds(self) -> "RequiredSegment":
        if self.end <= self.start:
            raise ValueError("required segment end must be after its start")
        return self

    def as_segment(self) -> WatchedSegment:
        return WatchedSegment(start=self.start, end=self.end)


class VideoSettings(PayloadModel):
    require_full_watch: bool = False
    min_watch_percentage: float = Field(default=DEFAULT_MIN_WATCH_SHARE, ge=0, le=1)
    max_playback_rate: float = Field(default=DEFAULT_MAX_PLAYBACK_RATE, gt=0)
    allow_seek_forward: bool = True
    required_segments: list[RequiredSegment] = Field(default_factory=list)


class VideoContent(PayloadModel):
    video_url: str = Field(
        min_length=1, validation_alias=AliasChoices("video_url", "videoUrl", "url")
    )
    duration: float | None = Field(default=None, gt=0)
    title: str | None = None
    settings: VideoSettings = Field(default_factory=VideoSettings)


class VideoComponentData(ContentEnvelope):
    content: VideoContent


class SegmentPayload(PayloadModel):
    start: float = Field(ge=0, validation_alias=_START_ALIASES)
    end: float = Field(ge=0, validation_alias=_END_ALIASES)
    playback_rate: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "SegmentPayload":
        if self.end <= self.start:
            raise ValueError("segment end must be after its start")
        return self


class VideoActionData(PayloadModel):
    current_time: float | None = Field(default=None, ge=0)
    duration: float | None = Field(default=None, gt=0)
    playback_rate: float | None = Field(default=None, gt=0)
    watched_segments: list[SegmentPayload] = Field(default_factory=list)
    session_time: float | None = Field(default=None, ge=0)
    time_spent: float | None = Field(default=None, ge=0)
    event: str | None = None


@dataclass(frozen=True)
class _Viewing:
    segments: list[WatchedSegment]
    duration: float | None
    watch_percentage: float
    required_percentage: float
    completed: bool
    progress: float


class VideoHandler:
    """
    Tracks watched intervals of a video.

    Completion needs 95 % watched when the video requires a full watch;
    otherwise the configured minimum share and, when required segments
    exist, 90 % of their length. Playback above the allowed rate and
    forbidden forward seeks are rejected before any progress is recorded.
    """

    component_type: ClassVar[ComponentType] = ComponentType.VIDEO
    supported_actions: ClassVar[frozenset[ComponentAction]] = frozenset(
        {
            ComponentAction.START_VIDEO,
            ComponentAction.UPDATE_VIDEO_PROGRESS,
            ComponentAction.FINISH_VIDEO,
            ComponentAction.MARK_COMPLETED,
        }
    )

    def validate_schema(self, component_data: Mapping[str, Any]) -> ValidationResult:
        parsed, errors = parse_payload(VideoComponentData, component_data)
        if parsed is None:
            return ValidationResult.failed(errors)
        return ValidationResult.ok()

    def validate_action_data(
        self, action: ComponentAction, data: Mapping[str, Any]
    ) -> ValidationResult:
        parsed, errors = parse_payload(VideoActionData, data)
        if parsed is None:
            return ValidationResult.failed(errors)
        return ValidationResult.ok()

    def validate_business_rules(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> None:
        if action == ComponentAction.MARK_COMPLETED:
            return
        settings = self._content(context).settings
        payload = require_payload(VideoActionData, data, "video action data")

        if action == ComponentAction.FINISH_VIDEO and context.is_completed:
            raise BusinessRuleViolationError("video_already_completed", "This video is already completed")

        rates = [payload.playback_rate] + [s.playback_rate for s in payload.watched_segments]
        if any(rate is not None and rate > settings.max_playback_rate for rate in rates):
            raise BusinessRuleViolationError(
                "max_playback_rate",
                f"Playback rate cannot exceed {settings.max_playback_rate}x",
            )

        if not settings.allow_seek_forward:
            last_position = float(context.progress_data.get("last_position", 0.0))
            limit = last_position + SEEK_TOLERANCE_SECONDS
            seeks = [payload.current_time] + [s.start for s in payload.watched_segments]
            if any(position is not None and position > limit for position in seeks):
                raise BusinessRuleViolationError(
                    "seek_forward", "Seeking forward is not allowed for this video"
                )

        if payload.session_time is not None and payload.session_time > MAX_SESSION_SECONDS:
            raise BusinessRuleViolationError(
                "session_time_limit", "Reported session time exceeds 24 hours"
            )

    def process_action(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> InteractionOutcome:
        payload = require_payload(VideoActionData, data, "video action data")
        viewing = self._measure(action, payload, context)
        previous = context.progress_data

        last_position = float(previous.get("last_position", 0.0))
        if payload.current_time is not None:
            last_position = payload.current_time
        elif viewing.segments:
            last_position = max(last_position, viewing.segments[-1].end)

        rate_samples = int(previous.get("playback_rate_samples", 0))
        average_rate = float(previous.get("average_playback_rate", 1.0))
        if payload.playback_rate is not None:
            average_rate = (average_rate * rate_samples + payload.playback_rate) / (rate_samples + 1)
            rate_samples += 1

        event = (payload.event or "").lower()
        milestones_reached = reached_milestones(context.previous_progress, viewing.progress)
        progress_data = {
            **previous,
            "watched_segments": [s.to_dict() for s in viewing.segments],
            "total_watch_time": total_watch_time(viewing.segments),
            "watch_percentage": round(viewing.watch_percentage, 2),
            "required_segments_percentage": round(viewing.required_percentage, 2),
            "duration": viewing.duration,
            "last_position": last_position,
            "average_playback_rate": round(average_rate, 3),
            "playback_rate_samples": rate_samples,
            "pause_count": int(previous.get("pause_count", 0)) + (event == "pause"),
            "seek_count": int(previous.get("seek_count", 0)) + (event == "seek"),
            "session_time": float(previous.get("session_time", 0.0)) + (payload.session_time or 0.0),
            "progress": viewing.progress,
            "milestones": sorted(set(previous.get("milestones", [])) | set(milestones_reached)),
        }

        if viewing.completed:
            message = "Video completed"
        elif action == ComponentAction.FINISH_VIDEO:
            message = "Video finished but not enough of it was watched"
        else:
            message = "Watch progress saved"

        return InteractionOutcome(
            status=resolve_status(context, viewing.completed),
            progress=viewing.progress,
            progress_data=progress_data,
            completed_at=completion_timestamp(context, viewing.completed),
            message=message,
            feedback={
                "milestones": milestones_reached,
                "watch_percentage": round(viewing.watch_percentage, 2),
                "required_segments_percentage": round(viewing.required_percentage, 2),
            },
        )

    def is_completed(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> bool:
        payload = require_payload(VideoActionData, data, "video action data")
        return self._measure(action, payload, context).completed

    def calculate_progress(
        self, action: ComponentAction, data: Mapping[str, Any], context: InteractionContext
    ) -> float:
        payload = require_payload(VideoActionData, data, "video action data")
        return self._measure(action, payload, context).progress

    def available_actions(self, context: InteractionContext) -> list[ComponentAction]:
        if context.status in (ComponentStatus.LOCKED, ComponentStatus.COMPLETED, ComponentStatus.FAILED):
            return []
        if context.is_untouched:
            return [ComponentAction.START_VIDEO, ComponentAction.MARK_COMPLETED]
        return [
            ComponentAction.UPDATE_VIDEO_PROGRESS,
            ComponentAction.FINISH_VIDEO,
            ComponentAction.MARK_COMPLETED,
        ]

    def _content(self, context: InteractionContext) -> VideoContent:
        return require_payload(VideoComponentData, context.component.data, "video content").content

    def _measure(
        self, action: ComponentAction, payload: VideoActionData, context: InteractionContext
    ) -> _Viewing:
        content = self._content(context)
        settings = content.settings
        previous = context.progress_data

        stored = [WatchedSegment.from_dict(raw) for raw in previous.get("watched_segments", [])]
        incoming = [WatchedSegment(start=s.start, end=s.end) for s in payload.watched_segments]
        segments = merge_segments(stored + incoming)

        duration = content.duration or payload.duration or previous.get("duration")
        watched = watch_percentage(segments, duration)
        required = required_coverage(
            segments, [r.as_segment() for r in settings.required_segments]
        )

        if settings.require_full_watch:
            thresholds_met = watched >= FULL_WATCH_THRESHOLD
        else:
            thresholds_met = watched >= settings.min_watch_percentage * 100 and (
                not settings.required_segments or required >= REQUIRED_SEGMENTS_THRESHOLD
            )

        completed = (
            context.is_completed or action == ComponentAction.MARK_COMPLETED or thresholds_met
        )
        progress = 100.0 if completed else clamp_percentage(min(watched, MAX_UNFINISHED_PROGRESS))
        return _Viewing(
            segments=segments,
            duration=duration,
            watch_percentage=watched,
            required_percentage=required,
            completed=completed,
            progress=progress,
        )

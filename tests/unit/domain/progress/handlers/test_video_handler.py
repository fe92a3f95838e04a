"""Tests for the video component handler."""

from datetime import UTC, datetime
from typing import Any

import pytest

from buddyflow.domain.common.exceptions import BusinessRuleViolationError
from buddyflow.domain.common.value_objects import ComponentProgressId, ComponentSnapshotId
from buddyflow.domain.progress.entities.progress import ComponentProgress, ComponentStatus
from buddyflow.domain.progress.handlers.base import ComponentAction, InteractionContext
from buddyflow.domain.progress.handlers.video import VideoHandler
from buddyflow.domain.snapshots.entities.flow_snapshot import ComponentSnapshot

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _video(**settings: Any) -> dict[str, Any]:
    return {
        "content": {
            "videoUrl": "https://videos.example.com/intro.mp4",
            "duration": 100,
            "settings": settings,
        }
    }


def _context(
    data: dict[str, Any] | None = None,
    status: ComponentStatus = ComponentStatus.IN_PROGRESS,
    progress_data: dict[str, Any] | None = None,
) -> InteractionContext:
    component = ComponentSnapshot(
        id=ComponentSnapshotId.generate(), order=1, type="video", data=data or _video()
    )
    progress = ComponentProgress(
        id=ComponentProgressId.generate(),
        component_snapshot_id=component.id,
        order=1,
        status=status,
        progress_data=progress_data or {},
    )
    return InteractionContext(component=component, progress=progress, now=NOW)


def _watch(*segments: tuple[float, float], **extra: Any) -> dict[str, Any]:
    return {"watchedSegments": [{"start": s, "end": e} for s, e in segments], **extra}


class TestVideoSchema:
    def test_url_is_required(self) -> None:
        assert VideoHandler().validate_schema({"content": {"duration": 10}}).is_valid is False

    def test_url_alias(self) -> None:
        assert VideoHandler().validate_schema({"content": {"url": "https://x/y.mp4"}}).is_valid

    def test_min_watch_percentage_is_a_fraction(self) -> None:
        result = VideoHandler().validate_schema(_video(minWatchPercentage=80))
        assert result.is_valid is False

    def test_segment_bounds_are_checked(self) -> None:
        result = VideoHandler().validate_action_data(
            ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((30, 10))
        )
        assert result.is_valid is False


class TestVideoProgress:
    def test_overlapping_segments_are_merged(self) -> None:
        handler = VideoHandler()
        first = handler.process_action(ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((0, 50)), _context())

        second = handler.process_action(
            ComponentAction.UPDATE_VIDEO_PROGRESS,
            _watch((40, 85)),
            _context(progress_data=first.progress_data),
        )

        assert second.progress_data["watched_segments"] == [{"start": 0.0, "end": 85.0}]
        assert second.progress_data["total_watch_time"] == 85.0
        assert second.status == ComponentStatus.COMPLETED
        assert second.completed_at == NOW

    def test_progress_below_threshold(self) -> None:
        outcome = VideoHandler().process_action(
            ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((0, 60), event="pause"), _context()
        )

        assert outcome.status == ComponentStatus.IN_PROGRESS
        assert outcome.progress == 60.0
        assert outcome.progress_data["pause_count"] == 1
        assert outcome.progress_data["last_position"] == 60.0
        assert outcome.feedback["milestones"] == ["quarter", "half"]

    def test_full_watch_required(self) -> None:
        outcome = VideoHandler().process_action(
            ComponentAction.FINISH_VIDEO, _watch((0, 90)), _context(_video(requireFullWatch=True))
        )

        assert outcome.status == ComponentStatus.IN_PROGRESS
        assert outcome.progress == 90.0
        assert outcome.message == "Video finished but not enough of it was watched"

    def test_unfinished_progress_is_capped(self) -> None:
        required = [{"start": 0, "end": 10}, {"startTime": 200, "endTime": 300}]

        outcome = VideoHandler().process_action(
            ComponentAction.UPDATE_VIDEO_PROGRESS,
            _watch((0, 100)),
            _context(_video(requiredSegments=required)),
        )

        assert outcome.is_completed is False
        assert outcome.progress == 99.0

    def test_required_segments(self) -> None:
        data = _video(minWatchPercentage=0.5, requiredSegments=[{"start": 60, "end": 80}])
        handler = VideoHandler()

        missed = handler.process_action(ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((0, 55)), _context(data))
        covered = handler.process_action(ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((0, 80)), _context(data))

        assert missed.is_completed is False
        assert missed.feedback["required_segments_percentage"] == 0.0
        assert covered.is_completed is True

    def test_average_playback_rate(self) -> None:
        handler = VideoHandler()
        first = handler.process_action(
            ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((0, 10), playbackRate=2.0), _context()
        )
        second = handler.process_action(
            ComponentAction.UPDATE_VIDEO_PROGRESS,
            _watch((10, 20), playbackRate=1.0),
            _context(progress_data=first.progress_data),
        )

        assert second.progress_data["average_playback_rate"] == 1.5
        assert second.progress_data["playback_rate_samples"] == 2


class TestVideoRules:
    def test_playback_rate_limit(self) -> None:
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            VideoHandler().validate_business_rules(
                ComponentAction.UPDATE_VIDEO_PROGRESS, _watch((0, 10), playbackRate=4), _context()
            )
        assert exc_info.value.rule == "max_playback_rate"

    def test_seek_forward_blocked(self) -> None:
        context = _context(_video(allowSeekForward=False), progress_data={"last_position": 20.0})
        handler = VideoHandler()

        handler.validate_business_rules(ComponentAction.UPDATE_VIDEO_PROGRESS, {"currentTime": 24}, context)
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            handler.validate_business_rules(ComponentAction.UPDATE_VIDEO_PROGRESS, {"currentTime": 40}, context)
        assert exc_info.value.rule == "seek_forward"

    def test_finished_video_cannot_be_finished_again(self) -> None:
        with pytest.raises(BusinessRuleViolationError):
            VideoHandler().validate_business_rules(
                ComponentAction.FINISH_VIDEO, {}, _context(status=ComponentStatus.COMPLETED)
            )

    def test_mark_completed_skips_rules(self) -> None:
        VideoHandler().validate_business_rules(
            ComponentAction.MARK_COMPLETED, {}, _context(status=ComponentStatus.COMPLETED)
        )

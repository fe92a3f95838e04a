"""Tests for the outcome-based achievement rules."""

from datetime import UTC, datetime

from buddyflow.domain.common.value_objects import AssignmentId, ComponentSnapshotId, UserId
from buddyflow.domain.progress.entities.progress import ComponentStatus
from buddyflow.domain.progress.handlers.base import ComponentAction, InteractionOutcome
from buddyflow.infrastructure.progress.services import OutcomeAchievementService

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _outcome(status: ComponentStatus = ComponentStatus.COMPLETED, **kwargs) -> InteractionOutcome:
    params = {"progress": 100.0, "progress_data": {}, "completed_at": NOW}
    params.update(kwargs)
    return InteractionOutcome(status=status, **params)


def _codes(action: ComponentAction, outcome: InteractionOutcome) -> list[str]:
    achievements = OutcomeAchievementService().check_component_achievements(
        UserId.generate(), AssignmentId.generate(), ComponentSnapshotId.generate(), action, outcome
    )
    return [a.code for a in achievements]


class TestOutcomeAchievementService:
    def test_perfect_quiz(self) -> None:
        assert _codes(ComponentAction.FINISH_QUIZ, _outcome(score=100.0)) == ["quiz_perfect_score"]
        assert _codes(ComponentAction.FINISH_QUIZ, _outcome(score=90.0)) == []

    def test_task_solved_on_the_first_try(self) -> None:
        first = _outcome(progress_data={"attempts": 1})
        second = _outcome(progress_data={"attempts": 2})

        assert _codes(ComponentAction.SUBMIT_ANSWER, first) == ["task_first_try"]
        assert _codes(ComponentAction.SUBMIT_ANSWER, second) == []

    def test_fully_watched_video(self) -> None:
        outcome = _outcome(progress_data={"watch_percentage": 100.0})
        assert _codes(ComponentAction.UPDATE_VIDEO_PROGRESS, outcome) == ["video_fully_watched"]

    def test_unfinished_components_earn_nothing(self) -> None:
        outcome = _outcome(ComponentStatus.IN_PROGRESS, progress_data={"attempts": 1}, completed_at=None)
        assert _codes(ComponentAction.SUBMIT_ANSWER, outcome) == []

    def test_metadata_points_at_the_component(self) -> None:
        assignment_id = AssignmentId.generate()
        component_id = ComponentSnapshotId.generate()

        [achievement] = OutcomeAchievementService().check_component_achievements(
            UserId.generate(),
            assignment_id,
            component_id,
            ComponentAction.FINISH_QUIZ,
            _outcome(score=100.0),
        )

        assert achievement.metadata == {
            "assignment_id": str(assignment_id),
            "component_id": str(component_id),
        }

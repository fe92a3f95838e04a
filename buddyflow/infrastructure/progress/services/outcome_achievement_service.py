"""Achievement adapter that awards badges from a single interaction outcome."""

from buddyflow.application.progress.protocols.achievement_service import Achievement
from buddyflow.domain.common.value_objects import AssignmentId, ComponentSnapshotId, UserId
from buddyflow.domain.progress.handlers.base import ComponentAction, InteractionOutcome

PERFECT_SCORE = 100.0


class OutcomeAchievementService:
    """
    Stateless achievement rules.

    Only the outcome of the current interaction is inspected; awarding the
    same badge twice is left to the host's achievement store to deduplicate.
    """

    def check_component_achievements(
        self,
        user_id: UserId,
        assignment_id: AssignmentId,
        component_id: ComponentSnapshotId,
        action: ComponentAction,
        result: InteractionOutcome,
    ) -> list[Achievement]:
        if not result.is_completed:
            return []

        metadata = {"assignment_id": str(assignment_id), "component_id": str(component_id)}
        achievements: list[Achievement] = []
        if action == ComponentAction.FINISH_QUIZ and result.score is not None and result.score >= PERFECT_SCORE:
            achievements.append(
                Achievement(
                    code="quiz_perfect_score",
                    title="Flawless",
                    description="Answered every quiz question correctly",
                    metadata=metadata,
                )
            )
        if action == ComponentAction.SUBMIT_ANSWER and result.progress_data.get("attempts") == 1:
            achievements.append(
                Achievement(
                    code="task_first_try",
                    title="First try",
                    description="Solved a task on the first attempt",
                    metadata=metadata,
                )
            )
        if action in (ComponentAction.UPDATE_VIDEO_PROGRESS, ComponentAction.FINISH_VIDEO) and (
            float(result.progress_data.get("watch_percentage", 0.0)) >= PERFECT_SCORE
        ):
            achievements.append(
                Achievement(
                    code="video_fully_watched",
                    title="Front row",
                    description="Watched a video from start to end",
                    metadata=metadata,
                )
            )
        return achievements

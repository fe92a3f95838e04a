from dataclasses import dataclass, field
from typing import Any, Protocol

from buddyflow.domain.common.value_objects import AssignmentId, ComponentSnapshotId, UserId
from buddyflow.domain.progress.handlers.base import ComponentAction, InteractionOutcome


@dataclass(frozen=True)
class Achievement:
    code: str
    title: str
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class AchievementServiceProtocol(Protocol):
    def check_component_achievements(
        self,
        user_id: UserId,
        assignment_id: AssignmentId,
        component_id: ComponentSnapshotId,
        action: ComponentAction,
        result: InteractionOutcome,
    ) -> list[Achievement]: ...

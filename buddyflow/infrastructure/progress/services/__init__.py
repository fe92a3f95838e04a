from .logging_notification_service import LoggingNotificationService
from .outcome_achievement_service import OutcomeAchievementService

__all__ = ["LoggingNotificationService", "OutcomeAchievementService"]

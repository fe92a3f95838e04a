from .achievement_service import Achievement, AchievementServiceProtocol
from .notification_service import NotificationServiceProtocol
from .progress_repository import FlowProgressRepositoryProtocol

__all__ = [
    "Achievement",
    "AchievementServiceProtocol",
    "FlowProgressRepositoryProtocol",
    "NotificationServiceProtocol",
]

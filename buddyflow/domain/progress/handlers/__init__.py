"""Component interaction handlers, one per component type."""

from .article import ArticleHandler
from .base import (
    ComponentAction,
    ComponentHandler,
    InteractionContext,
    InteractionOutcome,
    ValidationResult,
)
from .quiz import QuizHandler, QuizResult, score_quiz
from .registry import ComponentHandlerRegistry, build_default_registry
from .segments import WatchedSegment, merge_segments
from .task import TaskHandler, check_answer
from .video import VideoHandler

__all__ = [
    "ArticleHandler",
    "ComponentAction",
    "ComponentHandler",
    "ComponentHandlerRegistry",
    "InteractionContext",
    "InteractionOutcome",
    "QuizHandler",
    "QuizResult",
    "TaskHandler",
    "ValidationResult",
    "VideoHandler",
    "WatchedSegment",
    "build_default_registry",
    "check_answer",
    "merge_segments",
    "score_quiz",
]

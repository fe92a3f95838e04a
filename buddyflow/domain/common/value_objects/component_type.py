from enum import StrEnum


class ComponentType(StrEnum):
    """Component variants the interaction engine knows how to handle."""

    ARTICLE = "article"
    TASK = "task"
    QUIZ = "quiz"
    VIDEO = "video"

    @classmethod
    def parse(cls, raw: str) -> "ComponentType | None":
        """Return the known variant for ``raw`` or None for unknown types."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None

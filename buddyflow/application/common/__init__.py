"""
Application common module.

Contains base classes for the application layer:
- UnitOfWork: transaction boundary port
- BestEffortRunner: time-bounded runner for notifications and achievements
"""

from .best_effort import BestEffortRunner
from .ids import RawId, parse_id
from .unit_of_work import EventHandler, UnitOfWork

__all__ = [
    "BestEffortRunner",
    "EventHandler",
    "RawId",
    "UnitOfWork",
    "parse_id",
]

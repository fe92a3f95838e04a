"""Identity domain layer."""

from buddyflow.domain.identity.entities.user import User, UserRole
from buddyflow.domain.identity.exceptions import UserNotFoundError

__all__ = [
    "User",
    "UserNotFoundError",
    "UserRole",
]

"""User entity for identity and role checks."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from buddyflow.domain.common.entity import Entity
from buddyflow.domain.common.exceptions import ValidationError
from buddyflow.domain.common.value_objects.ids import UserId

# Domain constraints
MAX_NAME_LENGTH = 200


class UserRole(StrEnum):
    ADMIN = "ADMIN"
    BUDDY = "BUDDY"
    USER = "USER"


@dataclass(eq=False)
class User(Entity[UserId]):
    """
    User taking part in learning flows, either as learner or as buddy.

    Business Rules:
    - Name must be non-empty and at most MAX_NAME_LENGTH characters
    - Buddies and admins may assign flows and mentor assignments
    - Inactive users cannot receive new assignments
    """

    id: UserId
    name: str
    role: UserRole = UserRole.USER
    is_active: bool = True
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.name or not self.name.strip():
            raise ValidationError("Name cannot be empty", field="name", value=self.name)
        if len(self.name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Name cannot exceed {MAX_NAME_LENGTH} characters", field="name", value=self.name
            )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_buddy(self) -> bool:
        """Whether the user can mentor assignments (buddies and admins)."""
        return self.role in (UserRole.BUDDY, UserRole.ADMIN)

    @property
    def can_assign_flows(self) -> bool:
        return self.is_active and self.is_buddy

    def deactivate(self) -> None:
        self.is_active = False

    def activate(self) -> None:
        self.is_active = True

    def change_role(self, role: UserRole) -> None:
        self.role = role

    @classmethod
    def create(cls, name: str, role: UserRole = UserRole.USER) -> "User":
        """
        Create a new active user.

        Args:
            name: Display name
            role: Role of the user

        Returns:
            New User instance
        """
        return cls(id=UserId.generate(), name=name.strip(), role=role)

    @classmethod
    def create_with_id(
        cls,
        id: UserId,
        name: str,
        role: UserRole,
        is_active: bool,
        created_at: datetime | None = None,
    ) -> "User":
        """Reconstitute a user from persistence."""
        return cls(id=id, name=name, role=role, is_active=is_active, created_at=created_at)

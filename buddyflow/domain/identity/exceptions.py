"""Identity domain exceptions."""

from buddyflow.domain.common.exceptions import EntityNotFoundError
from buddyflow.domain.common.value_objects.ids import UserId


class UserNotFoundError(EntityNotFoundError):
    """Raised when a user cannot be found."""

    def __init__(self, user_id: UserId) -> None:
        super().__init__("User", user_id)

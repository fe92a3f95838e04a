from typing import Protocol

from buddyflow.domain.common.value_objects import UserId
from buddyflow.domain.identity.entities.user import User


class UserRepositoryProtocol(Protocol):
    def find_by_id(self, user_id: UserId) -> User | None: ...

    def find_by_ids(self, user_ids: list[UserId]) -> list[User]: ...

    def save(self, user: User) -> User: ...

"""Repository for User domain entities."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from buddyflow.domain.common.value_objects.ids import UserId
from buddyflow.domain.identity.entities.user import User
from buddyflow.infrastructure.identity.mappers.user_mapper import UserMapper
from buddyflow.models import User as UserORM

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User domain entities."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.mapper = UserMapper()

    def find_by_id(self, user_id: UserId) -> User | None:
        """
        Find a user by ID.

        Args:
            user_id: The user ID

        Returns:
            User entity if found, None otherwise
        """
        stmt = select(UserORM).where(UserORM.id == user_id.value)
        orm_model = self.db.execute(stmt).scalar_one_or_none()
        return self.mapper.to_domain(orm_model) if orm_model else None

    def find_by_ids(self, user_ids: list[UserId]) -> list[User]:
        """Find the users among ``user_ids``; missing ids are simply absent."""
        if not user_ids:
            return []
        stmt = select(UserORM).where(UserORM.id.in_([user_id.value for user_id in user_ids]))
        return [self.mapper.to_domain(orm) for orm in self.db.execute(stmt).scalars().all()]

    def save(self, user: User) -> User:
        """
        Save a user entity (create or update).

        Args:
            user: The user entity to save

        Returns:
            Saved user entity
        """
        orm_model = self.db.get(UserORM, user.id.value)
        if orm_model is None:
            orm_model = self.mapper.to_orm(user)
            self.db.add(orm_model)
            logger.info("Staged new user %s", user.id)
        else:
            self.mapper.to_orm(user, orm_model)
        self.db.flush()
        return self.mapper.to_domain(orm_model)

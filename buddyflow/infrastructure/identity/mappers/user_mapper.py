"""Mapper for User ORM ↔ Domain conversion."""

from buddyflow.domain.common.value_objects.ids import UserId
from buddyflow.domain.identity.entities.user import User, UserRole
from buddyflow.infrastructure.common.datetimes import ensure_utc
from buddyflow.models import User as UserORM


class UserMapper:
    """Mapper for User ORM ↔ Domain conversion."""

    def to_domain(self, orm_model: UserORM) -> User:
        """Convert ORM model to domain entity."""
        return User.create_with_id(
            id=UserId(orm_model.id),
            name=orm_model.name,
            role=UserRole(orm_model.role),
            is_active=orm_model.is_active,
            created_at=ensure_utc(orm_model.created_at),
        )

    def to_orm(self, domain_entity: User, orm_model: UserORM | None = None) -> UserORM:
        """Convert domain entity to ORM model."""
        if orm_model:
            # Update existing
            orm_model.name = domain_entity.name
            orm_model.role = domain_entity.role.value
            orm_model.is_active = domain_entity.is_active
            return orm_model

        # Create new
        return UserORM(
            id=domain_entity.id.value,
            name=domain_entity.name,
            role=domain_entity.role.value,
            is_active=domain_entity.is_active,
        )

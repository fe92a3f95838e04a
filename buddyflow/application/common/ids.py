"""Parsing of raw identifiers received from the host."""

from typing import TypeVar
from uuid import UUID

from buddyflow.domain.common.entity import EntityId
from buddyflow.domain.common.exceptions import ValidationError

IdT = TypeVar("IdT", bound=EntityId)

RawId = str | UUID | EntityId


def parse_id(id_type: type[IdT], raw: RawId | None, field_name: str) -> IdT:
    """
    Convert a raw identifier to its value object.

    Raises:
        ValidationError: If the identifier is missing or not a UUID
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"{field_name} is required", field=field_name)
    try:
        return id_type.parse(raw)
    except (ValueError, TypeError) as err:
        raise ValidationError(
            f"{field_name} is not a valid id", field=field_name, value=str(raw)
        ) from err

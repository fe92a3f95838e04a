"""
Domain layer exceptions.

These exceptions represent domain-level errors raised when business rules
are violated or invariants are broken. Every exception carries an
``ErrorKind`` so the host transport can map it onto its own taxonomy
without inspecting exception classes.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Error taxonomy exposed to callers of the engine."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    UNKNOWN = "UNKNOWN"


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain exceptions inherit from this class so they can be caught
    and handled uniformly.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(DomainError):
    """
    Raised when domain validation fails.

    Example: a buddy list containing the assignee, a reading progress of 1.5.
    Schema and action-data validation attach the full list of problems.
    """

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: object = None,
        errors: list[str] | None = None,
    ) -> None:
        details: dict[str, object] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        if errors:
            details["errors"] = list(errors)
        super().__init__(message, details)
        self.field = field
        self.value = value
        self.errors = list(errors or [])


class EntityNotFoundError(DomainError):
    """
    Raised when an entity cannot be found.

    Example: interacting with a component id that is not in the snapshot.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity_type: str, entity_id: object) -> None:
        message = f"{entity_type} with id {entity_id} not found"
        super().__init__(message, {"entity_type": entity_type, "entity_id": str(entity_id)})
        self.entity_type = entity_type
        self.entity_id = entity_id


class BusinessRuleViolationError(DomainError):
    """
    Raised when a business rule is violated.

    Example: pausing an assignment that is not in progress.
    """

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, rule: str, message: str | None = None) -> None:
        msg = message or f"Business rule violated: {rule}"
        super().__init__(msg, {"rule": rule})
        self.rule = rule


class InvariantViolationError(DomainError):
    """
    Raised when an aggregate invariant is violated.

    Invariants are rules that must always be true for an aggregate
    to be in a valid state.

    Example: a snapshot step order that appears twice.
    """

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, aggregate: str, invariant: str) -> None:
        message = f"Invariant violation in {aggregate}: {invariant}"
        super().__init__(message, {"aggregate": aggregate, "invariant": invariant})
        self.aggregate = aggregate
        self.invariant = invariant


class AuthorizationError(DomainError):
    """
    Raised when an operation is not authorized.

    Example: a user interacting with someone else's assignment.
    """

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Not authorized to perform this action") -> None:
        super().__init__(message)


class ConflictError(DomainError):
    """
    Raised when an operation conflicts with existing state.

    Example: a second active assignment of the same flow for one user.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        super().__init__(message, details)


class ConcurrencyConflictError(ConflictError):
    """Raised when a concurrent write made the loaded state stale."""

    def __init__(self, entity_type: str, entity_id: object | None = None) -> None:
        details: dict[str, object] = {"entity_type": entity_type}
        if entity_id is not None:
            details["entity_id"] = str(entity_id)
        super().__init__(f"{entity_type} was modified concurrently, retry the operation", details)
        self.entity_type = entity_type

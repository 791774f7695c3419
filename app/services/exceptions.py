"""
Custom exceptions for service layer.

Provides specific exception types for business logic errors
that can be translated to appropriate HTTP responses.

Storage failures (sqlalchemy.exc.SQLAlchemyError) are not wrapped: a
duplicate registration or a second meeting start reaches the caller as the
IntegrityError raised by the database.
"""

from typing import Any, Iterable, Tuple

from app.services.validation import Violation


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class InvalidArgumentError(ServiceError, ValueError):
    """Raised when the caller's arguments cannot be acted upon."""
    pass


class NotFoundError(InvalidArgumentError):
    """Raised when a resource does not exist or is not owned by the caller.

    The two cases share one error so that non-owners cannot tell which ids exist.
    """

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class ConflictError(InvalidArgumentError):
    """Raised when an operation conflicts with the current event state."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EventValidationError(InvalidArgumentError):
    """Raised with every field and domain violation found for a draft."""

    def __init__(self, violations: Iterable[Violation]):
        self.violations: Tuple[Violation, ...] = tuple(
            sorted(violations, key=lambda v: (v.field or "", v.message))
        )
        self.message = "; ".join(str(v) for v in self.violations)
        super().__init__(self.message)

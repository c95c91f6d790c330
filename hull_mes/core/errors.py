"""
Typed domain errors raised by services and rendered by the API error handler.

Every error carries the HTTP status it maps to and a machine-readable type
code, so routers never translate exceptions themselves:

    raise NotFoundError("Work order")
    raise InvalidTransitionError("Work order must be in PLANNED status to release")
"""
from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 400
    error_type: str = "domain_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class AuthenticationError(DomainError):
    """Missing or invalid actor identity."""

    status_code = 401
    error_type = "unauthorized"

    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None) -> None:
        super().__init__(message, details)


class PermissionDeniedError(DomainError):
    """The actor's role does not allow the requested action."""

    status_code = 403
    error_type = "forbidden"

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Any] = None) -> None:
        super().__init__(message, details)


class DepartmentMismatchError(PermissionDeniedError):
    """An operator acted on a work order whose current stage belongs to another department."""

    error_type = "department_mismatch"

    def __init__(self, message: str = "Not authorized for this stage", details: Optional[Any] = None) -> None:
        super().__init__(message, details)


class NotFoundError(DomainError):
    """A referenced work order, version, routing definition or user does not exist."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, resource: str, details: Optional[Any] = None) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found", details)


class WorkOrderOnHoldError(DomainError):
    """Stage work was attempted while the work order is on hold."""

    status_code = 409
    error_type = "on_hold"

    def __init__(self, message: str = "Work order is on hold", details: Optional[Any] = None) -> None:
        super().__init__(message, details)


class ConcurrencyConflictError(DomainError):
    """The work order changed underneath the current transaction."""

    status_code = 409
    error_type = "concurrent_modification"

    def __init__(
        self,
        message: str = "Work order was modified by another request; reload and retry",
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, details)


class DuplicateError(DomainError):
    """A unique business key is already taken."""

    status_code = 409
    error_type = "duplicate"


class InvalidTransitionError(DomainError):
    """The requested action is not valid from the work order's current status."""

    error_type = "invalid_transition"


class NoCurrentStageError(DomainError):
    """The work order has no resolvable current stage."""

    error_type = "no_current_stage"

    def __init__(self, message: str = "No current stage found", details: Optional[Any] = None) -> None:
        super().__init__(message, details)


class InvalidStationError(DomainError):
    """The station is unknown, inactive, or not part of the current stage's work center."""

    error_type = "invalid_station"

    def __init__(self, message: str = "Invalid station", details: Optional[Any] = None) -> None:
        super().__init__(message, details)


class ValidationFailedError(DomainError):
    """Well-formed input that violates a business rule (dates, immutable fields, ...)."""

    error_type = "validation_error"

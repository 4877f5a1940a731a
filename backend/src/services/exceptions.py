"""
Custom exceptions for service layer.

Provides specific exception types for business logic errors that can be
translated to appropriate HTTP responses. Core operations return these as
values inside a ``Result`` instead of raising them; ``Result.unwrap()``
raises the carried error for callers that prefer exceptions.
"""

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        self.message = message
        self.fields = fields
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")


class ForbiddenError(ServiceError):
    """Raised when the caller is authenticated but may not act on the target."""

    kind = "forbidden"
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    kind = "validation"
    status_code = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message, fields)


class ConflictError(ServiceError):
    """Raised when a blocker event overlaps existing blocker events."""

    kind = "conflict"
    status_code = 409

    def __init__(self, message: str, conflicting_events: Optional[List[Any]] = None):
        self.conflicting_events = list(conflicting_events or [])
        super().__init__(message)


class InternalError(ServiceError):
    """Raised when an unexpected persistence failure aborts an operation."""

    kind = "internal"
    status_code = 500

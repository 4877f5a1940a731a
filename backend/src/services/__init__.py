"""
Service layer for business logic.

Service classes live in their own modules and are imported from there
(``backend.src.services.event_service`` etc.); this package only re-exports
the shared exception hierarchy.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
    InternalError,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "InternalError",
]

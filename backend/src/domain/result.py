"""
Tagged success/failure values returned by core operations.

Domain failures (not found, forbidden, validation, conflict) travel as
``Err`` values carrying a ``ServiceError`` instead of being raised, so every
failure path returns a normal value the HTTP layer can map to a status code.

Usage:
    >>> result = EventAuthorization.check_family_access(family, family_id, user_id)
    >>> if result.is_err:
    ...     return result
    >>> family = result.value
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar, Union

if TYPE_CHECKING:
    from backend.src.services.exceptions import ServiceError


T = TypeVar("T")
E = TypeVar("E", bound="ServiceError")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying a service error."""

    error: E

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self):
        """Raise the carried error."""
        raise self.error


Result = Union[Ok[T], Err[E]]

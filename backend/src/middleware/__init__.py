"""
Middleware components for the family calendar backend.

This module provides:
- UserContext: Dataclass representing the acting user
- require_user: FastAPI dependency resolving the acting user from the request
"""

from backend.src.middleware.auth import UserContext, require_user

__all__ = [
    "UserContext",
    "require_user",
]

"""
Authentication dependency for API routes.

Provides:
- UserContext: The acting user of a request
- require_user: FastAPI dependency that requires an identified user

Identity is taken from the X-User-Id header (a user GUID), set by the
authenticating gateway in front of this service. Session and OAuth handling
are the gateway's concern.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status

from backend.src.services.guid import GuidService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

USER_ID_HEADER = "X-User-Id"


@dataclass(frozen=True)
class UserContext:
    """
    Acting user of the current request.

    Attributes:
        user_id: User GUID (usr_xxx); family membership is checked by the
            services, not here

    Usage:
        @router.get("/items")
        async def list_items(
            ctx: UserContext = Depends(require_user)
        ):
            return service.list_items(user_id=ctx.user_id)
    """

    user_id: str


def require_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> UserContext:
    """
    FastAPI dependency that requires an identified user.

    Returns:
        UserContext for the request

    Raises:
        HTTPException 401: If the header is missing or not a user GUID
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    if not GuidService.validate_guid(user_id, "usr"):
        logger.warning("Rejected malformed user id", extra={"user_id": user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity",
        )

    return UserContext(user_id=user_id)


__all__ = [
    "USER_ID_HEADER",
    "UserContext",
    "require_user",
]

"""
Authorization guards for event operations.

Both guards return a Result instead of raising. A missing event and an event
that belongs to another family produce the same not-found error, so callers
cannot probe for events outside their own families.
"""

from typing import Optional

from backend.src.domain.event import Event
from backend.src.domain.family import Family
from backend.src.domain.result import Err, Ok, Result
from backend.src.services.exceptions import ForbiddenError, NotFoundError


class EventAuthorization:
    """Family membership and event ownership checks."""

    @staticmethod
    def check_family_access(
        family: Optional[Family],
        family_id: str,
        user_id: str,
    ) -> Result[Family, NotFoundError]:
        """
        Ensure the family exists and the user belongs to it.

        Args:
            family: Family loaded by the repository (None if absent)
            family_id: Requested family GUID
            user_id: Acting user GUID

        Returns:
            Ok(family), Err(NotFoundError) or Err(ForbiddenError)
        """
        if family is None:
            return Err(NotFoundError("Family", family_id))

        if not family.is_member(user_id):
            return Err(ForbiddenError("You do not have access to this family"))

        return Ok(family)

    @staticmethod
    def check_event_belongs_to_family(
        event_details: Optional[Event],
        expected_family_id: str,
        event_id: str,
    ) -> Result[Event, NotFoundError]:
        """
        Ensure the event exists and belongs to the expected family.

        Returns:
            Ok(event_details), or Err(NotFoundError) keyed by the event id for
            both a missing event and an event of another family
        """
        if event_details is None:
            return Err(NotFoundError("Event", event_id))

        if event_details.family_id != expected_family_id:
            return Err(NotFoundError("Event", event_id))

        return Ok(event_details)

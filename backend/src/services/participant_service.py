"""
Participant resolution for calendar events.

Turns client-supplied participant references into EventParticipant values
with denormalized names and avatars, resolved against a Family.

Usage (validate, then build):
    >>> result = ParticipantService.validate_participants(family, refs)
    >>> if result.is_err:
    ...     return result
    >>> participants = ParticipantService.build_participants(family, refs)
"""

from typing import List, Sequence

from backend.src.domain.event import EventParticipant, ParticipantReference, ParticipantType
from backend.src.domain.family import Family
from backend.src.domain.result import Err, Ok, Result
from backend.src.services.exceptions import ValidationError


class ParticipantService:
    """Resolves and validates participant references against a family."""

    @staticmethod
    def build_participants(
        family: Family,
        participant_refs: Sequence[ParticipantReference],
    ) -> List[EventParticipant]:
        """
        Resolve references into participants, preserving input order.

        References that do not resolve (e.g. a member who left the family)
        are dropped silently; call validate_participants first when dropping
        is not acceptable.

        Args:
            family: Family to resolve against
            participant_refs: User references (by user id) and child references

        Returns:
            Resolved participants
        """
        participants = []
        for ref in participant_refs:
            if ref.type is ParticipantType.USER:
                member = family.get_member(ref.id)
                if member:
                    participants.append(EventParticipant(
                        id=ref.id,
                        name=member.name,
                        type=ParticipantType.USER,
                        avatar_url=member.avatar_url,
                    ))
            else:
                child = family.get_child(ref.id)
                if child:
                    participants.append(EventParticipant(
                        id=ref.id,
                        name=child.name,
                        type=ParticipantType.CHILD,
                        avatar_url=None,
                    ))
        return participants

    @staticmethod
    def validate_participants(
        family: Family,
        participant_refs: Sequence[ParticipantReference],
    ) -> Result[None, ValidationError]:
        """
        Check that every reference resolves to a member or child of the family.

        Returns:
            Ok(None), or Err(ValidationError) naming the first unknown participant
        """
        for ref in participant_refs:
            if ref.type is ParticipantType.USER:
                known = family.is_member(ref.id)
            else:
                known = family.is_child(ref.id)
            if not known:
                return Err(ValidationError(
                    f"Participant {ref.id} not found in family",
                    {"participants": "invalid"},
                ))
        return Ok(None)

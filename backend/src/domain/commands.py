"""
Write commands accepted by the event services.

Commands are built by the API schemas after request validation. Update
commands are partial: a field left at None is absent and therefore a no-op.
The recurrence pattern is the exception, since clearing it (None) is a
meaningful update; it defaults to the UNSET marker instead.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from backend.src.domain.event import EventType, ParticipantReference, RecurrencePattern


class _Unset:
    """Marker type for a field that was not supplied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "UNSET"


UNSET = _Unset()


@dataclass(frozen=True)
class CreateEventCommand:
    family_id: str
    title: str
    start_time: datetime
    end_time: datetime
    event_type: EventType = EventType.ELASTIC
    is_all_day: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    participants: List[ParticipantReference] = field(default_factory=list)


@dataclass(frozen=True)
class UpdateEventCommand:
    """
    Partial update of an event.

    Attributes:
        title: New title, or None to keep
        start_time, end_time: New bounds; applied to the series only when both
            are given, used as the occurrence override for scope 'this'
        event_type: New category, or None to keep
        recurrence_pattern: New pattern, None to make the event one-off, or
            UNSET to keep
        participants: New participant references, or None to keep
    """

    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    event_type: Optional[EventType] = None
    recurrence_pattern: Union[RecurrencePattern, None, _Unset] = UNSET
    participants: Optional[List[ParticipantReference]] = None

    @property
    def has_recurrence_pattern(self) -> bool:
        """True when the command carries a pattern change (including clearing it)."""
        return self.recurrence_pattern is not UNSET


@dataclass(frozen=True)
class ValidateEventCommand:
    """Dry-run of a create or update, used to surface conflicts ahead of saving."""

    family_id: str
    start_time: datetime
    end_time: datetime
    event_type: EventType = EventType.ELASTIC
    participants: List[ParticipantReference] = field(default_factory=list)
    exclude_event_id: Optional[str] = None

"""
Domain aggregates and value objects for family calendar events.

Aggregates here are immutable: every mutation returns a new value. They hold
no database state and are mapped to and from ORM rows by the repositories.
"""

from backend.src.domain.result import Ok, Err, Result
from backend.src.domain.event import (
    Event,
    EventException,
    EventParticipant,
    EventType,
    Occurrence,
    ParticipantReference,
    ParticipantType,
    RecurrenceFrequency,
    RecurrencePattern,
    UpdateScope,
)
from backend.src.domain.family import Child, Family, FamilyMember, FamilyRole
from backend.src.domain.commands import (
    UNSET,
    CreateEventCommand,
    UpdateEventCommand,
    ValidateEventCommand,
)

__all__ = [
    "Ok",
    "Err",
    "Result",
    "Event",
    "EventException",
    "EventParticipant",
    "EventType",
    "Occurrence",
    "ParticipantReference",
    "ParticipantType",
    "RecurrenceFrequency",
    "RecurrencePattern",
    "UpdateScope",
    "Child",
    "Family",
    "FamilyMember",
    "FamilyRole",
    "UNSET",
    "CreateEventCommand",
    "UpdateEventCommand",
    "ValidateEventCommand",
]

"""
Persistence layer for events, families and children.

Abstract contracts live in base.py; sql.py implements them on SQLAlchemy and
memory.py keeps everything in process memory.
"""

from backend.src.repositories.base import (
    ChildRepository,
    ConflictingEvent,
    EventRepository,
    EventWithParticipants,
    ExceptionData,
    FamilyRepository,
    FindEventsOptions,
)
from backend.src.repositories.memory import (
    InMemoryChildRepository,
    InMemoryEventRepository,
    InMemoryFamilyRepository,
)
from backend.src.repositories.sql import (
    SqlChildRepository,
    SqlEventRepository,
    SqlFamilyRepository,
)

__all__ = [
    "ChildRepository",
    "ConflictingEvent",
    "EventRepository",
    "EventWithParticipants",
    "ExceptionData",
    "FamilyRepository",
    "FindEventsOptions",
    "InMemoryChildRepository",
    "InMemoryEventRepository",
    "InMemoryFamilyRepository",
    "SqlChildRepository",
    "SqlEventRepository",
    "SqlFamilyRepository",
]

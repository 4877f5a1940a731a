"""
SQLAlchemy models for the family calendar.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# Create the declarative base class
# All models will inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# This is required for Alembic autogenerate to detect models
from backend.src.models.user import User
from backend.src.models.family import Family, FamilyMember, FamilyRole
from backend.src.models.child import Child
from backend.src.models.event import Event, EventParticipant, EventType, ParticipantType
from backend.src.models.event_exception import EventException

__all__ = [
    "Base",
    "User",
    "Family",
    "FamilyMember",
    "FamilyRole",
    "Child",
    "Event",
    "EventParticipant",
    "EventType",
    "ParticipantType",
    "EventException",
]

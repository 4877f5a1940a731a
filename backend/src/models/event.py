"""
Event and EventParticipant models for calendar events.

An event row is either a one-off event or the single record of a recurring
series. Recurring events carry their pattern as a JSON document
({"frequency", "interval", "end_date"}) and per-occurrence overrides live in
the event_exceptions table.

Design Rationale:
- One row per series; occurrences are materialized when reading, never stored
- Times are stored as naive UTC datetimes
- Participants reference either a user or a child (exactly one FK set) and
  keep their position so the participant list order is stable
- Synced events mirror an external calendar and are read-only
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import JSONBType


class EventType(enum.Enum):
    """Event category."""
    ELASTIC = "elastic"  # May overlap other events
    BLOCKER = "blocker"  # Must not overlap other blockers of a shared participant


class ParticipantType(enum.Enum):
    """Kind of participant referenced by an EventParticipant row."""
    USER = "user"
    CHILD = "child"


class Event(Base, GuidMixin):
    """
    Calendar event model.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (evt_xxx, inherited from GuidMixin)
        family_id: FK to the owning family
        title: Event title
        start_time: Start of the (first) occurrence, naive UTC
        end_time: End of the (first) occurrence, naive UTC
        is_all_day: Whether the event spans full days
        event_type: elastic or blocker
        recurrence_pattern: JSON pattern (NULL for one-off events)
        is_synced: True when mirrored from an external calendar
        external_calendar_id: Source calendar of synced events
        created_at: Creation timestamp
        updated_at: Last update timestamp (NULL until first update)

    Relationships:
        family: Owning family (many-to-one)
        participants: Ordered participants (one-to-many, CASCADE on delete)
        exceptions: Occurrence overrides (one-to-many, CASCADE on delete)

    Indexes:
        - uuid (unique, for GUID lookups)
        - family_id, start_time (for calendar window queries)
    """

    __tablename__ = "events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(
        Integer,
        ForeignKey("families.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_all_day = Column(Boolean, default=False, nullable=False)
    event_type = Column(String(20), default=EventType.ELASTIC.value, nullable=False)

    # {"frequency": "weekly", "interval": 1, "end_date": "2024-06-01"}
    recurrence_pattern = Column(JSONBType(), nullable=True)

    is_synced = Column(Boolean, default=False, nullable=False)
    external_calendar_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    family = relationship("Family", back_populates="events")
    participants = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventParticipant.position",
    )
    exceptions = relationship(
        "EventException",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventException.original_date",
    )

    __table_args__ = (
        Index("idx_events_family_start", "family_id", "start_time"),
    )

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_pattern is not None

    def __repr__(self) -> str:
        return (
            f"<Event("
            f"id={self.id}, "
            f"title='{self.title}', "
            f"start={self.start_time}, "
            f"type={self.event_type}"
            f")>"
        )


class EventParticipant(Base):
    """
    Participant of an event (a family member's user or a child).

    Attributes:
        event_id: FK to events
        participant_type: user or child
        user_id: FK to users (participant_type = user)
        child_id: FK to children (participant_type = child)
        position: Order within the event's participant list
    """

    __tablename__ = "event_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    participant_type = Column(String(20), nullable=False)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    child_id = Column(
        Integer,
        ForeignKey("children.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    position = Column(Integer, default=0, nullable=False)

    event = relationship("Event", back_populates="participants")
    user = relationship("User")
    child = relationship("Child")

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND child_id IS NULL) OR "
            "(user_id IS NULL AND child_id IS NOT NULL)",
            name="ck_event_participants_one_target",
        ),
    )

    def __repr__(self) -> str:
        target = self.user_id if self.participant_type == ParticipantType.USER.value else self.child_id
        return f"<EventParticipant(event_id={self.event_id}, {self.participant_type}={target})>"

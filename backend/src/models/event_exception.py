"""
EventException model for per-occurrence overrides of recurring events.

An exception either moves one occurrence (new start/end) or cancels it.
There is at most one exception per (event, original_date); writing a second
one for the same date replaces the first.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class EventException(Base, GuidMixin):
    """
    Override of a single occurrence.

    Attributes:
        guid: GUID string property (exc_xxx)
        event_id: FK to the recurring event
        original_date: Date of the occurrence being overridden
        new_start_time: Replacement start (NULL = keep the series time)
        new_end_time: Replacement end (NULL = keep the series time)
        is_cancelled: True suppresses the occurrence
        created_at: Creation timestamp
    """

    __tablename__ = "event_exceptions"

    GUID_PREFIX = "exc"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    original_date = Column(Date, nullable=False)
    new_start_time = Column(DateTime, nullable=True)
    new_end_time = Column(DateTime, nullable=True)
    is_cancelled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    event = relationship("Event", back_populates="exceptions")

    __table_args__ = (
        UniqueConstraint("event_id", "original_date", name="uq_event_exceptions_event_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventException("
            f"event_id={self.event_id}, "
            f"date={self.original_date}, "
            f"cancelled={self.is_cancelled}"
            f")>"
        )

"""
Event aggregate and recurrence value objects.

An Event is a single record, optionally recurring. A recurring event is
stored once, together with a RecurrencePattern and a list of per-occurrence
overrides (EventException). Concrete occurrences are materialized on demand
by stepping the pattern and applying the exceptions.

Design Rationale:
- Aggregates are frozen dataclasses; every update_* method returns a new
  Event with exactly one field replaced (copy-on-write)
- recurrence_pattern is None implies exceptions is empty
- A RecurrencePattern end_date is exclusive: occurrences are generated for
  dates strictly before it, so truncating a series at a split date removes
  the occurrence on that date and everything after it
- All timestamps are naive UTC (the API layer normalizes aware inputs)
"""

import enum
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from backend.src.domain.result import Err, Ok, Result
from backend.src.services.exceptions import ConflictError, ForbiddenError, ValidationError


# Upper bound on occurrences materialized by a single expansion
MAX_OCCURRENCES = 1000


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class EventType(str, enum.Enum):
    """Event category: elastic events may overlap, blockers may not."""
    ELASTIC = "elastic"
    BLOCKER = "blocker"


class ParticipantType(str, enum.Enum):
    """Kind of family participant."""
    USER = "user"
    CHILD = "child"


class RecurrenceFrequency(str, enum.Enum):
    """Supported recurrence frequencies."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class UpdateScope(str, enum.Enum):
    """Blast radius of an update/delete on a recurring event."""
    THIS = "this"      # Only the targeted occurrence
    FUTURE = "future"  # The targeted occurrence and everything after it
    ALL = "all"        # The whole series


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class RecurrencePattern:
    """
    Recurrence description of a repeating event.

    Attributes:
        frequency: daily, weekly or monthly
        interval: Step multiplier (every ``interval`` days/weeks/months)
        end_date: Exclusive boundary date; None means unbounded
    """

    frequency: RecurrenceFrequency
    interval: int = 1
    end_date: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, "frequency", RecurrenceFrequency(self.frequency))
        if self.interval < 1:
            raise ValueError("Recurrence interval must be at least 1")

    def with_end_date(self, end_date: Optional[date]) -> "RecurrencePattern":
        """Return a copy of this pattern bounded at ``end_date``."""
        return replace(self, end_date=end_date)

    def _delta(self, index: int) -> relativedelta:
        steps = self.interval * index
        if self.frequency is RecurrenceFrequency.DAILY:
            return relativedelta(days=steps)
        if self.frequency is RecurrenceFrequency.WEEKLY:
            return relativedelta(weeks=steps)
        return relativedelta(months=steps)

    def _first_index(self, first_start: datetime, window_start: Optional[datetime]) -> int:
        """Index of the first step that could start at or after window_start."""
        if window_start is None or window_start <= first_start:
            return 0
        if self.frequency is RecurrenceFrequency.MONTHLY:
            months = (window_start.year - first_start.year) * 12 + window_start.month - first_start.month
            return max(0, months // self.interval - 1)
        step_days = self.interval * (7 if self.frequency is RecurrenceFrequency.WEEKLY else 1)
        return max(0, (window_start - first_start).days // step_days - 1)

    def occurrence_starts(
        self,
        first_start: datetime,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        limit: int = MAX_OCCURRENCES,
    ) -> Iterator[datetime]:
        """
        Generate occurrence start times for a series beginning at first_start.

        Monthly steps are always computed from first_start, so a series on the
        31st lands on the last day of shorter months without drifting.

        Args:
            first_start: Start of the first occurrence
            window_start: Skip occurrences starting before this moment
            window_end: Stop after this moment (inclusive)
            limit: Maximum number of starts to yield

        Yields:
            Occurrence start datetimes in ascending order
        """
        index = self._first_index(first_start, window_start)
        produced = 0
        while produced < limit:
            current = first_start + self._delta(index)
            if self.end_date is not None and current.date() >= self.end_date:
                return
            if window_end is not None and current > window_end:
                return
            if window_start is None or current >= window_start:
                produced += 1
                yield current
            index += 1

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON storage and API responses."""
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecurrencePattern":
        """Build a pattern from its stored JSON form."""
        end_date = data.get("end_date")
        if isinstance(end_date, str):
            end_date = date.fromisoformat(end_date[:10])
        elif isinstance(end_date, datetime):
            end_date = end_date.date()
        return cls(
            frequency=RecurrenceFrequency(data["frequency"]),
            interval=int(data.get("interval") or 1),
            end_date=end_date,
        )


@dataclass(frozen=True)
class ParticipantReference:
    """Reference to a family member (by user id) or child, as sent by clients."""

    id: str
    type: ParticipantType

    def __post_init__(self):
        object.__setattr__(self, "type", ParticipantType(self.type))


@dataclass(frozen=True)
class EventParticipant:
    """Resolved participant with its display name denormalized."""

    id: str
    name: str
    type: ParticipantType
    avatar_url: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "type", ParticipantType(self.type))

    def to_reference(self) -> ParticipantReference:
        return ParticipantReference(id=self.id, type=self.type)


@dataclass(frozen=True)
class EventException:
    """
    Override of a single occurrence of a recurring event.

    Attributes:
        id: Exception identifier
        original_date: Date of the occurrence being overridden
        new_start_time: Replacement start (None = keep the series time)
        new_end_time: Replacement end (None = keep the series time)
        is_cancelled: True suppresses the occurrence entirely
    """

    id: Optional[str]
    original_date: date
    new_start_time: Optional[datetime] = None
    new_end_time: Optional[datetime] = None
    is_cancelled: bool = False


@dataclass(frozen=True)
class Occurrence:
    """One concrete dated instance of an event."""

    original_date: date
    start_time: datetime
    end_time: datetime
    exception: Optional[EventException] = None

    @property
    def is_modified(self) -> bool:
        return self.exception is not None


# ============================================================================
# Aggregate
# ============================================================================


@dataclass(frozen=True)
class Event:
    """
    Calendar event aggregate root.

    Attributes:
        id: Event GUID (evt_xxx)
        family_id: Owning family GUID (fam_xxx)
        title: Event title
        start_time, end_time: First occurrence bounds (naive UTC)
        event_type: elastic or blocker
        is_all_day: Whether the event spans full days
        created_at: Creation timestamp
        recurrence_pattern: None for one-off events
        is_synced: True when mirrored from an external calendar
        external_calendar_id: Source calendar for synced events
        updated_at: Last persisted update (None if never updated)
        participants: Ordered participant list
        exceptions: Per-occurrence overrides (recurring events only)
    """

    id: str
    family_id: str
    title: str
    start_time: datetime
    end_time: datetime
    event_type: EventType = EventType.ELASTIC
    is_all_day: bool = False
    created_at: Optional[datetime] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    is_synced: bool = False
    external_calendar_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    participants: Tuple[EventParticipant, ...] = field(default_factory=tuple)
    exceptions: Tuple[EventException, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "event_type", EventType(self.event_type))
        object.__setattr__(self, "participants", tuple(self.participants))
        exceptions = tuple(self.exceptions) if self.recurrence_pattern is not None else ()
        object.__setattr__(self, "exceptions", exceptions)

    @classmethod
    def create(
        cls,
        id: str,
        family_id: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        event_type: EventType = EventType.ELASTIC,
        is_all_day: bool = False,
        created_at: Optional[datetime] = None,
        recurrence_pattern: Optional[RecurrencePattern] = None,
        is_synced: bool = False,
        external_calendar_id: Optional[str] = None,
        participants: Sequence[EventParticipant] = (),
    ) -> "Event":
        """
        Validating factory for new events.

        Raises:
            ValueError: If id, family_id or title is blank, or end <= start
        """
        if not id or not id.strip():
            raise ValueError("Event id cannot be empty")
        if not family_id or not family_id.strip():
            raise ValueError("Event family_id cannot be empty")
        if not title or not title.strip():
            raise ValueError("Event title cannot be empty")
        if end_time <= start_time:
            raise ValueError("End time must be after start time")

        return cls(
            id=id,
            family_id=family_id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            event_type=event_type,
            is_all_day=is_all_day,
            created_at=created_at or utcnow(),
            recurrence_pattern=recurrence_pattern,
            is_synced=is_synced,
            external_calendar_id=external_calendar_id,
            updated_at=None,
            participants=tuple(participants),
            exceptions=(),
        )

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_pattern is not None

    @property
    def duration(self):
        return self.end_time - self.start_time

    # ------------------------------------------------------------------
    # Pure updates
    # ------------------------------------------------------------------

    def update_title(self, title: str) -> "Event":
        return replace(self, title=title)

    def update_time(self, start_time: datetime, end_time: datetime) -> "Event":
        return replace(self, start_time=start_time, end_time=end_time)

    def update_event_type(self, event_type: EventType) -> "Event":
        return replace(self, event_type=event_type)

    def update_participants(self, participants: Sequence[EventParticipant]) -> "Event":
        return replace(self, participants=tuple(participants))

    def update_recurrence_pattern(self, recurrence_pattern: Optional[RecurrencePattern]) -> "Event":
        # Clearing the pattern drops the exceptions along with it (see __post_init__)
        return replace(self, recurrence_pattern=recurrence_pattern)

    def with_exception(self, exception: EventException) -> "Event":
        """Return a copy with ``exception`` replacing any override on the same date."""
        kept = [e for e in self.exceptions if e.original_date != exception.original_date]
        kept.append(exception)
        kept.sort(key=lambda e: e.original_date)
        return replace(self, exceptions=tuple(kept))

    def without_exceptions(self, original_date: Optional[date] = None) -> "Event":
        """Return a copy without exceptions (or without the one on original_date)."""
        if original_date is None:
            return replace(self, exceptions=())
        return replace(
            self,
            exceptions=tuple(e for e in self.exceptions if e.original_date != original_date),
        )

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @staticmethod
    def validate_scope(
        scope: UpdateScope,
        recurrence_pattern: Optional[RecurrencePattern],
        occurrence_date: Optional[date],
    ) -> Result[None, ValidationError]:
        """Reject scope 'this' on one-off events or without an occurrence date."""
        if scope is UpdateScope.THIS and recurrence_pattern is None:
            return Err(ValidationError(
                "Scope 'this' can only be used for recurring events",
                {"scope": "invalid"},
            ))
        if scope is UpdateScope.THIS and occurrence_date is None:
            return Err(ValidationError(
                "Date parameter required for scope='this' on recurring events",
                {"date": "required"},
            ))
        return Ok(None)

    def can_modify(self, is_member: bool) -> Result[None, ForbiddenError]:
        if not is_member:
            return Err(ForbiddenError("You do not have access to this event"))
        if self.is_synced:
            return Err(ForbiddenError("Synced events cannot be modified"))
        return Ok(None)

    @staticmethod
    def check_conflicts(event_type: EventType, conflicts: Sequence[Any]) -> Result[None, ConflictError]:
        """Fail when a blocker event overlaps existing blockers."""
        if EventType(event_type) is EventType.BLOCKER and conflicts:
            return Err(ConflictError(
                "This blocker event conflicts with an existing blocker event",
                list(conflicts),
            ))
        return Ok(None)

    # ------------------------------------------------------------------
    # Occurrences
    # ------------------------------------------------------------------

    def exception_for(self, day: date) -> Optional[EventException]:
        for exception in self.exceptions:
            if exception.original_date == day:
                return exception
        return None

    def _materialize(self, start: datetime) -> Optional[Occurrence]:
        day = start.date()
        end = start + self.duration
        exception = self.exception_for(day)
        if exception is None:
            return Occurrence(original_date=day, start_time=start, end_time=end)
        if exception.is_cancelled:
            return None
        return Occurrence(
            original_date=day,
            start_time=exception.new_start_time or start,
            end_time=exception.new_end_time or end,
            exception=exception,
        )

    def occurrences(self, window_start: datetime, window_end: datetime) -> List[Occurrence]:
        """
        Materialize the occurrences starting inside [window_start, window_end].

        One-off events yield themselves when they start inside the window.
        Cancelled occurrences are skipped; time overrides are applied.
        """
        if not self.is_recurring:
            if window_start <= self.start_time <= window_end:
                return [Occurrence(self.start_time.date(), self.start_time, self.end_time)]
            return []

        result = []
        for start in self.recurrence_pattern.occurrence_starts(self.start_time, window_start, window_end):
            occurrence = self._materialize(start)
            if occurrence is not None:
                result.append(occurrence)
        return result

    def occurrence_on(self, day: date) -> Optional[Occurrence]:
        """Return the (exception-adjusted) occurrence scheduled on ``day``, if any."""
        if not self.is_recurring:
            if self.start_time.date() == day:
                return Occurrence(day, self.start_time, self.end_time)
            return None

        window_start = datetime.combine(day, datetime.min.time())
        window_end = datetime.combine(day, datetime.max.time())
        for start in self.recurrence_pattern.occurrence_starts(self.start_time, window_start, window_end):
            return self._materialize(start)
        return None

"""
Abstract repository contracts for events, families and children.

Defines the persistence interface consumed by the event services. Concrete
implementations (SQLAlchemy, in-memory) provide the storage primitives;
listing, occurrence expansion and blocker-conflict detection are shared and
implemented here on top of those primitives.

Design Pattern: Repository with template methods
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from backend.src.domain.event import (
    Event,
    EventException,
    EventParticipant,
    EventType,
    ParticipantReference,
)
from backend.src.domain.family import Child, Family


@dataclass(frozen=True)
class ExceptionData:
    """
    Fields of an exception to create (or replace) for one occurrence.

    Attributes:
        original_date: Occurrence date being overridden
        new_start_time: Replacement start (None = no time override)
        new_end_time: Replacement end (None = no time override)
        is_cancelled: True suppresses the occurrence
    """
    original_date: date
    new_start_time: Optional[datetime] = None
    new_end_time: Optional[datetime] = None
    is_cancelled: bool = False


@dataclass(frozen=True)
class FindEventsOptions:
    """Filters and paging for a calendar window query."""
    family_id: str
    start_date: datetime
    end_date: datetime
    participant_ids: Optional[List[str]] = None
    event_type: Optional[EventType] = None
    include_synced: bool = True
    limit: int = 100
    offset: int = 0


@dataclass(frozen=True)
class EventWithParticipants:
    """
    List projection of one materialized occurrence.

    Attributes:
        event: Underlying event aggregate (series record for recurring events)
        occurrence_date: Date of this occurrence
        start_time, end_time: Occurrence bounds (exception-adjusted)
        has_conflict: Blocker overlapping another blocker sharing a participant
        is_exception: Occurrence carries a time override
    """
    event: Event
    occurrence_date: date
    start_time: datetime
    end_time: datetime
    has_conflict: bool = False
    is_exception: bool = False


@dataclass(frozen=True)
class ConflictingEvent:
    """Blocker occurrence that overlaps a requested time range."""
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    participants: Tuple[EventParticipant, ...] = field(default_factory=tuple)


class EventRepository(ABC):
    """
    Abstract base class for event persistence.

    Storage primitives (abstract):
        store(), delete(), find_by_id(), find_by_family_id(),
        create_exception(), get_exceptions(), delete_exceptions()

    Shared queries (concrete):
        find_by_id_with_details(), find_by_date_range(), check_conflicts()
    """

    @abstractmethod
    def store(self, event: Event) -> Event:
        """
        Insert or update an event with its participants.

        Exceptions are not written by store(); use create_exception() and
        delete_exceptions().

        Returns:
            The persisted event (with updated_at stamped for updates)
        """

    @abstractmethod
    def delete(self, event_id: str) -> None:
        """Delete an event together with its participants and exceptions."""

    @abstractmethod
    def find_by_id(self, event_id: str) -> Optional[Event]:
        """Load a full event aggregate (participants and exceptions) or None."""

    @abstractmethod
    def find_by_family_id(
        self,
        family_id: str,
        starting_before: Optional[datetime] = None,
    ) -> List[Event]:
        """
        Load the events of a family ordered by start time.

        Args:
            family_id: Family GUID
            starting_before: Only events whose first occurrence starts at or
                before this moment
        """

    @abstractmethod
    def create_exception(self, event_id: str, data: ExceptionData) -> EventException:
        """Create the exception for data.original_date, replacing any existing one."""

    @abstractmethod
    def get_exceptions(self, event_id: str) -> List[EventException]:
        """List the exceptions of an event ordered by original date."""

    @abstractmethod
    def delete_exceptions(self, event_id: str, original_date: Optional[date] = None) -> None:
        """Delete all exceptions of an event, or only the one on original_date."""

    # ------------------------------------------------------------------
    # Shared queries
    # ------------------------------------------------------------------

    def find_by_id_with_details(
        self,
        event_id: str,
        occurrence_date: Optional[date] = None,
    ) -> Optional[Event]:
        """
        Load an event; with an occurrence date, report that occurrence's times.

        The returned event keeps its series identity (id, pattern, exceptions);
        only start_time/end_time are moved to the requested occurrence when
        the date matches a scheduled, non-cancelled occurrence.
        """
        event = self.find_by_id(event_id)
        if event is None or occurrence_date is None or not event.is_recurring:
            return event

        occurrence = event.occurrence_on(occurrence_date)
        if occurrence is None:
            return event
        return replace(event, start_time=occurrence.start_time, end_time=occurrence.end_time)

    def find_by_date_range(self, options: FindEventsOptions) -> Tuple[List[EventWithParticipants], int]:
        """
        Materialize the occurrences of a family's events inside a window.

        Returns:
            Tuple of (page of occurrences, total number of occurrences)
        """
        family_events = self.find_by_family_id(options.family_id, starting_before=options.end_date)

        items = []
        for event in family_events:
            if not options.include_synced and event.is_synced:
                continue
            if options.event_type is not None and event.event_type is not EventType(options.event_type):
                continue
            if options.participant_ids:
                event_participant_ids = {p.id for p in event.participants}
                if not event_participant_ids.intersection(options.participant_ids):
                    continue

            for occurrence in event.occurrences(options.start_date, options.end_date):
                has_conflict = False
                if event.event_type is EventType.BLOCKER:
                    has_conflict = bool(self._conflicts_among(
                        family_events,
                        occurrence.start_time,
                        occurrence.end_time,
                        [p.to_reference() for p in event.participants],
                        exclude_event_id=event.id,
                    ))
                items.append(EventWithParticipants(
                    event=event,
                    occurrence_date=occurrence.original_date,
                    start_time=occurrence.start_time,
                    end_time=occurrence.end_time,
                    has_conflict=has_conflict,
                    is_exception=occurrence.is_modified,
                ))

        items.sort(key=lambda item: (item.start_time, item.event.id))
        total = len(items)
        return items[options.offset:options.offset + options.limit], total

    def check_conflicts(
        self,
        family_id: str,
        start_time: datetime,
        end_time: datetime,
        participant_refs: Sequence[ParticipantReference],
        exclude_event_id: Optional[str] = None,
    ) -> List[ConflictingEvent]:
        """
        Find blocker occurrences overlapping [start_time, end_time) that share
        at least one participant with participant_refs.
        """
        if not participant_refs:
            return []
        candidates = self.find_by_family_id(family_id, starting_before=end_time)
        return self._conflicts_among(candidates, start_time, end_time, participant_refs, exclude_event_id)

    @staticmethod
    def _conflicts_among(
        candidates: Sequence[Event],
        start_time: datetime,
        end_time: datetime,
        participant_refs: Sequence[ParticipantReference],
        exclude_event_id: Optional[str] = None,
    ) -> List[ConflictingEvent]:
        wanted = {(ref.id, ref.type) for ref in participant_refs}
        if not wanted:
            return []

        conflicts = []
        for candidate in candidates:
            if candidate.id == exclude_event_id or candidate.event_type is not EventType.BLOCKER:
                continue
            if not any((p.id, p.type) in wanted for p in candidate.participants):
                continue

            # Widen the window by the candidate's duration so occurrences that
            # start before start_time but are still running are considered
            window_start = start_time - candidate.duration - timedelta(seconds=1)
            for occurrence in candidate.occurrences(window_start, end_time):
                if occurrence.start_time < end_time and occurrence.end_time > start_time:
                    conflicts.append(ConflictingEvent(
                        id=candidate.id,
                        title=candidate.title,
                        start_time=occurrence.start_time,
                        end_time=occurrence.end_time,
                        participants=candidate.participants,
                    ))
        return conflicts


class FamilyRepository(ABC):
    """Read access to family aggregates."""

    @abstractmethod
    def find_by_id(self, family_id: str) -> Optional[Family]:
        """Load a family with its members and children, or None."""


class ChildRepository(ABC):
    """Read access to the children of families."""

    @abstractmethod
    def find_by_family_id(self, family_id: str) -> List[Child]:
        """List the children of a family ordered by name."""

    @abstractmethod
    def find_by_id(self, child_id: str) -> Optional[Child]:
        """Load a child or None."""

"""
In-memory repository implementations.

Dictionary-backed stand-ins for the SQL repositories, with the same contract
(store stamps updated_at, exceptions are upserted per date, deleting an event
drops its exceptions). Used by unit tests and local experiments.
"""

from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Optional

from backend.src.domain.event import Event, EventException, utcnow
from backend.src.domain.family import Child, Family
from backend.src.repositories.base import (
    ChildRepository,
    EventRepository,
    ExceptionData,
    FamilyRepository,
)
from backend.src.services.guid import GuidService


class InMemoryEventRepository(EventRepository):
    """Event repository holding aggregates in a dict keyed by event id."""

    def __init__(self, events: Optional[List[Event]] = None):
        self._events: Dict[str, Event] = {}
        for event in events or []:
            self._events[event.id] = event

    def store(self, event: Event) -> Event:
        existing = self._events.get(event.id)
        if existing is None:
            stored = replace(event, exceptions=())
        else:
            # Exceptions are owned by create_exception/delete_exceptions
            stored = replace(event, exceptions=existing.exceptions, updated_at=utcnow())
        self._events[event.id] = stored
        return stored

    def delete(self, event_id: str) -> None:
        self._events.pop(event_id, None)

    def find_by_id(self, event_id: str) -> Optional[Event]:
        return self._events.get(event_id)

    def find_by_family_id(
        self,
        family_id: str,
        starting_before: Optional[datetime] = None,
    ) -> List[Event]:
        events = [
            event for event in self._events.values()
            if event.family_id == family_id
            and (starting_before is None or event.start_time <= starting_before)
        ]
        return sorted(events, key=lambda event: (event.start_time, event.id))

    def create_exception(self, event_id: str, data: ExceptionData) -> EventException:
        event = self._events.get(event_id)
        if event is None:
            raise ValueError(f"Event {event_id} not found")

        previous = event.exception_for(data.original_date)
        exception = EventException(
            id=previous.id if previous else GuidService.generate_guid("exc"),
            original_date=data.original_date,
            new_start_time=data.new_start_time,
            new_end_time=data.new_end_time,
            is_cancelled=data.is_cancelled,
        )
        self._events[event_id] = event.with_exception(exception)
        return exception

    def get_exceptions(self, event_id: str) -> List[EventException]:
        event = self._events.get(event_id)
        return list(event.exceptions) if event else []

    def delete_exceptions(self, event_id: str, original_date: Optional[date] = None) -> None:
        event = self._events.get(event_id)
        if event is not None:
            self._events[event_id] = event.without_exceptions(original_date)


class InMemoryFamilyRepository(FamilyRepository):

    def __init__(self, families: Optional[List[Family]] = None):
        self._families = {family.id: family for family in families or []}

    def find_by_id(self, family_id: str) -> Optional[Family]:
        return self._families.get(family_id)


class InMemoryChildRepository(ChildRepository):
    """Children are read straight from the family aggregates."""

    def __init__(self, families: Optional[List[Family]] = None):
        self._families = list(families or [])

    def find_by_family_id(self, family_id: str) -> List[Child]:
        for family in self._families:
            if family.id == family_id:
                return sorted(family.children, key=lambda child: child.name)
        return []

    def find_by_id(self, child_id: str) -> Optional[Child]:
        for family in self._families:
            child = family.get_child(child_id)
            if child is not None:
                return child
        return None

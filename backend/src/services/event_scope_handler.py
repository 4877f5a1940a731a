"""
Scope resolution for updates and deletes of (possibly recurring) events.

Given an event, a scope (this / future / all) and an optional occurrence date,
the handler decides which persistence writes an edit or delete requires:

    scope   | update                          | delete
    --------+---------------------------------+-----------------------------
    this    | upsert exception (new times)    | upsert cancelled exception
    future  | truncate if new pattern, apply  | truncate series
    all     | apply fields, clear exceptions  | delete event

'this' and 'future' only apply to recurring events ('this' also needs an
occurrence date); anything else falls through to the 'all' branch.

Decisions are computed by the pure resolve_update_action/resolve_delete_action
functions and carried out by a single dispatch over the resulting action.

Usage:
    >>> result = EventScopeHandler.handle_delete_scope(
    ...     event, UpdateScope.THIS, date(2024, 3, 10), events_repo
    ... )
    >>> result.unwrap().exception.is_cancelled
    True
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from backend.src.domain.commands import UpdateEventCommand
from backend.src.domain.event import Event, EventException, RecurrencePattern, UpdateScope
from backend.src.domain.family import Family
from backend.src.domain.result import Ok, Result
from backend.src.repositories.base import EventRepository, ExceptionData
from backend.src.services.exceptions import ServiceError
from backend.src.services.participant_service import ParticipantService
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


# ============================================================================
# Actions
# ============================================================================


@dataclass(frozen=True)
class CreateException:
    """Override a single occurrence; the series record is left untouched."""
    event_id: str
    data: ExceptionData


@dataclass(frozen=True)
class TruncateSeries:
    """Store the (already truncated) series; exceptions are kept as they are."""
    event: Event


@dataclass(frozen=True)
class ReplaceEvent:
    """Store the redefined event, dropping exceptions when the series is redefined."""
    event: Event
    clear_exceptions: bool = False


@dataclass(frozen=True)
class DeleteEvent:
    """Remove the event with its participants and exceptions."""
    event_id: str


ScopeAction = Union[CreateException, TruncateSeries, ReplaceEvent, DeleteEvent]


@dataclass(frozen=True)
class ScopeOutcome:
    """
    What a scoped update or delete persisted.

    Attributes:
        event: Stored event (None when only an exception was written or the
            event was deleted)
        exception: Stored exception, if one was written
        exception_created: True when the change was recorded as an exception
        deleted: True when the event record was removed
        exceptions_cleared: True when all exceptions of the series were dropped
    """
    event: Optional[Event] = None
    exception: Optional[EventException] = None
    exception_created: bool = False
    deleted: bool = False
    exceptions_cleared: bool = False


# ============================================================================
# Resolution
# ============================================================================


def _targets_single_occurrence(event: Event, scope: UpdateScope, occurrence_date: Optional[date]) -> bool:
    return scope is UpdateScope.THIS and event.is_recurring and occurrence_date is not None


def _split_date(event: Event, occurrence_date: Optional[date]) -> date:
    """Boundary for a 'future' split; defaults to the first occurrence of the series."""
    return occurrence_date if occurrence_date is not None else event.start_time.date()


def _apply_fields(event: Event, command: UpdateEventCommand, family: Family) -> Event:
    if command.title:
        event = event.update_title(command.title)
    if command.start_time and command.end_time:
        event = event.update_time(command.start_time, command.end_time)
    if command.event_type:
        event = event.update_event_type(command.event_type)
    if command.participants is not None:
        event = event.update_participants(
            ParticipantService.build_participants(family, command.participants)
        )
    return event


def resolve_update_action(
    event: Event,
    command: UpdateEventCommand,
    scope: UpdateScope,
    occurrence_date: Optional[date],
    family: Family,
) -> ScopeAction:
    """
    Decide how an update is persisted.

    Args:
        event: Current event
        command: Partial update (absent fields are no-ops)
        scope: Requested scope
        occurrence_date: Targeted occurrence, also the split point for 'future'
        family: Family used to resolve participant references

    Returns:
        CreateException, TruncateSeries or ReplaceEvent
    """
    scope = UpdateScope(scope)

    if _targets_single_occurrence(event, scope, occurrence_date):
        return CreateException(
            event_id=event.id,
            data=ExceptionData(
                original_date=occurrence_date,
                new_start_time=command.start_time,
                new_end_time=command.end_time,
                is_cancelled=False,
            ),
        )

    if scope is UpdateScope.FUTURE and event.is_recurring:
        updated = event
        if isinstance(command.recurrence_pattern, RecurrencePattern):
            # The existing series ends at the split; the supplied pattern only
            # signals that the recurrence is being changed from here on. An
            # explicit null is not a new pattern and leaves the series as is.
            updated = updated.update_recurrence_pattern(
                event.recurrence_pattern.with_end_date(_split_date(event, occurrence_date))
            )
        return TruncateSeries(event=_apply_fields(updated, command, family))

    updated = event
    if command.has_recurrence_pattern:
        updated = updated.update_recurrence_pattern(command.recurrence_pattern)
    return ReplaceEvent(
        event=_apply_fields(updated, command, family),
        clear_exceptions=scope is UpdateScope.ALL and event.is_recurring,
    )


def resolve_delete_action(
    event: Event,
    scope: UpdateScope,
    occurrence_date: Optional[date],
) -> ScopeAction:
    """Decide how a delete is persisted: CreateException, TruncateSeries or DeleteEvent."""
    scope = UpdateScope(scope)

    if _targets_single_occurrence(event, scope, occurrence_date):
        return CreateException(
            event_id=event.id,
            data=ExceptionData(original_date=occurrence_date, is_cancelled=True),
        )

    if scope is UpdateScope.FUTURE and event.is_recurring:
        truncated = event.recurrence_pattern.with_end_date(_split_date(event, occurrence_date))
        return TruncateSeries(event=event.update_recurrence_pattern(truncated))

    return DeleteEvent(event_id=event.id)


# ============================================================================
# Handler
# ============================================================================


class EventScopeHandler:
    """Applies scope resolution against an EventRepository."""

    @staticmethod
    def apply(action: ScopeAction, events_repo: EventRepository) -> ScopeOutcome:
        """
        Perform the writes an action stands for.

        Repository errors propagate; the calling service turns them into an
        internal error.
        """
        match action:
            case CreateException(event_id=event_id, data=data):
                exception = events_repo.create_exception(event_id, data)
                return ScopeOutcome(exception=exception, exception_created=True)

            case TruncateSeries(event=event):
                return ScopeOutcome(event=events_repo.store(event))

            case ReplaceEvent(event=event, clear_exceptions=clear_exceptions):
                stored = events_repo.store(event)
                if clear_exceptions:
                    events_repo.delete_exceptions(event.id)
                    stored = stored.without_exceptions()
                return ScopeOutcome(event=stored, exceptions_cleared=clear_exceptions)

            case DeleteEvent(event_id=event_id):
                events_repo.delete(event_id)
                return ScopeOutcome(deleted=True)

        raise TypeError(f"Unsupported scope action: {action!r}")

    @staticmethod
    def handle_update_scope(
        event: Event,
        command: UpdateEventCommand,
        scope: UpdateScope,
        occurrence_date: Optional[date],
        family: Family,
        events_repo: EventRepository,
    ) -> Result[ScopeOutcome, ServiceError]:
        """
        Apply a partial update to an event within the requested scope.

        Returns:
            Ok(ScopeOutcome); exception_created tells whether the change was
            stored as a per-occurrence override
        """
        action = resolve_update_action(event, command, scope, occurrence_date, family)
        logger.debug(
            f"Resolved update of {event.id} (scope={UpdateScope(scope).value}) "
            f"to {type(action).__name__}"
        )
        return Ok(EventScopeHandler.apply(action, events_repo))

    @staticmethod
    def handle_delete_scope(
        event: Event,
        scope: UpdateScope,
        occurrence_date: Optional[date],
        events_repo: EventRepository,
    ) -> Result[ScopeOutcome, ServiceError]:
        """Delete an occurrence, the tail of a series, or the whole event."""
        action = resolve_delete_action(event, scope, occurrence_date)
        logger.debug(
            f"Resolved delete of {event.id} (scope={UpdateScope(scope).value}) "
            f"to {type(action).__name__}"
        )
        return Ok(EventScopeHandler.apply(action, events_repo))

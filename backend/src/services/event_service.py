"""
Event service for family calendar events.

Orchestrates listing, retrieving, creating, updating, deleting and
dry-run validating events: family access and ownership guards, participant
validation, blocker conflict detection, scope resolution and the audit trail.

Design:
- Every operation returns a Result; domain failures are Err values carrying
  a ServiceError, never raised
- Unexpected repository failures are logged and returned as InternalError
- Recurring events are one record; list views expand them into occurrences
- Successful writes emit an audit record (event.create / event.update /
  event.delete) on the services logger
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from backend.src.domain.commands import CreateEventCommand, UpdateEventCommand, ValidateEventCommand
from backend.src.domain.event import Event, EventType, ParticipantReference, UpdateScope
from backend.src.domain.result import Err, Ok, Result
from backend.src.repositories.base import (
    ConflictingEvent,
    EventRepository,
    EventWithParticipants,
    FamilyRepository,
    FindEventsOptions,
)
from backend.src.repositories.sql import SqlEventRepository, SqlFamilyRepository
from backend.src.services.event_authorization import EventAuthorization
from backend.src.services.event_scope_handler import EventScopeHandler
from backend.src.services.exceptions import InternalError, ServiceError
from backend.src.services.guid import GuidService
from backend.src.services.participant_service import ParticipantService
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

DEFAULT_LIST_LIMIT = 100


@dataclass(frozen=True)
class EventListResult:
    """A page of materialized occurrences with pagination metadata."""
    items: List[EventWithParticipants]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


@dataclass(frozen=True)
class EventUpdateResult:
    event: Event
    exception_created: bool = False


@dataclass(frozen=True)
class EventValidationResult:
    """Outcome of a dry-run validation."""
    valid: bool
    errors: List[dict] = field(default_factory=list)
    conflicts: List[ConflictingEvent] = field(default_factory=list)


class EventService:
    """
    Service for managing family calendar events.

    Usage:
        >>> service = EventService.from_session(db_session)
        >>> result = service.get_event(family_id, event_id, user_id)
        >>> if result.is_ok:
        ...     print(result.value.title)
    """

    def __init__(
        self,
        events_repo: EventRepository,
        family_repo: FamilyRepository,
        max_list_limit: int = DEFAULT_LIST_LIMIT,
    ):
        """
        Initialize event service.

        Args:
            events_repo: Event persistence
            family_repo: Family lookups for access checks and participants
            max_list_limit: Upper bound for list page sizes
        """
        self.events_repo = events_repo
        self.family_repo = family_repo
        self.max_list_limit = max_list_limit

    @classmethod
    def from_session(cls, db: Session, max_list_limit: int = DEFAULT_LIST_LIMIT) -> "EventService":
        """Build a service on the SQLAlchemy repositories for one session."""
        return cls(SqlEventRepository(db), SqlFamilyRepository(db), max_list_limit=max_list_limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _internal_error(self, operation: str, message: str) -> Err:
        logger.error(f"Error in EventService.{operation}", exc_info=True)
        return Err(InternalError(message))

    def _audit(self, action: str, family_id: str, actor_id: str, event_id: str, **details) -> None:
        """Write an audit record; failures are logged and never propagate."""
        try:
            logger.info(
                f"Audit {action}: {event_id}",
                extra={
                    "action": action,
                    "family_id": family_id,
                    "actor_id": actor_id,
                    "event_id": event_id,
                    **details,
                },
            )
        except Exception:
            logger.warning(f"Failed to log {action}", exc_info=True)

    def _check_access(self, family_id: str, user_id: str, operation: str) -> Result:
        """Load the family and check the user belongs to it."""
        try:
            family = self.family_repo.find_by_id(family_id)
        except Exception:
            return self._internal_error(operation, "Failed to retrieve family")
        return EventAuthorization.check_family_access(family, family_id, user_id)

    def _load_modifiable_event(
        self,
        family_id: str,
        event_id: str,
        scope: UpdateScope,
        occurrence_date: Optional[date],
        user_id: str,
        operation: str,
    ) -> Result:
        """
        Run the guards shared by update and delete.

        Returns:
            Ok((family, event)) or the first failing guard's Err
        """
        access = self._check_access(family_id, user_id, operation)
        if access.is_err:
            return access

        try:
            stored = self.events_repo.find_by_id(event_id)
        except Exception:
            return self._internal_error(operation, "Failed to retrieve event")

        ownership = EventAuthorization.check_event_belongs_to_family(stored, family_id, event_id)
        if ownership.is_err:
            return ownership
        event = ownership.value

        modifiable = event.can_modify(True)
        if modifiable.is_err:
            return modifiable

        scope_check = Event.validate_scope(scope, event.recurrence_pattern, occurrence_date)
        if scope_check.is_err:
            return scope_check

        return Ok((access.value, event))

    def _blocker_conflicts(
        self,
        family_id: str,
        event_type: EventType,
        start_time: datetime,
        end_time: datetime,
        participants: Sequence[ParticipantReference],
        exclude_event_id: Optional[str] = None,
    ) -> Result[None, ServiceError]:
        if EventType(event_type) is not EventType.BLOCKER:
            return Ok(None)
        conflicts = self.events_repo.check_conflicts(
            family_id, start_time, end_time, participants, exclude_event_id
        )
        return Event.check_conflicts(event_type, conflicts)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_events(
        self,
        family_id: str,
        start_date: datetime,
        end_date: datetime,
        user_id: str,
        participant_ids: Optional[List[str]] = None,
        event_type: Optional[EventType] = None,
        include_synced: bool = True,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> Result[EventListResult, ServiceError]:
        """
        List the occurrences of a family's events inside a window.

        Args:
            family_id: Family GUID
            start_date: Window start (inclusive)
            end_date: Window end (inclusive)
            user_id: Acting user GUID
            participant_ids: Only events involving one of these participants
            event_type: Only events of this type
            include_synced: Include events mirrored from external calendars
            limit: Page size, clamped to [1, max_list_limit]
            offset: Page offset, clamped to >= 0

        Returns:
            Ok(EventListResult) or Err(NotFoundError / ForbiddenError / InternalError)
        """
        access = self._check_access(family_id, user_id, "list_events")
        if access.is_err:
            return access

        limit = max(1, min(limit, self.max_list_limit))
        offset = max(offset, 0)

        try:
            items, total = self.events_repo.find_by_date_range(FindEventsOptions(
                family_id=family_id,
                start_date=start_date,
                end_date=end_date,
                participant_ids=participant_ids,
                event_type=event_type,
                include_synced=include_synced,
                limit=limit,
                offset=offset,
            ))
        except Exception:
            return self._internal_error("list_events", "Failed to retrieve events")

        return Ok(EventListResult(items=items, total=total, limit=limit, offset=offset))

    def get_event(
        self,
        family_id: str,
        event_id: str,
        user_id: str,
        occurrence_date: Optional[date] = None,
    ) -> Result[Event, ServiceError]:
        """
        Get an event; with an occurrence date, report that occurrence's times.

        Returns:
            Ok(Event) or Err(NotFoundError / ForbiddenError / InternalError)
        """
        access = self._check_access(family_id, user_id, "get_event")
        if access.is_err:
            return access

        try:
            details = self.events_repo.find_by_id_with_details(event_id, occurrence_date)
        except Exception:
            return self._internal_error("get_event", "Failed to retrieve event")

        return EventAuthorization.check_event_belongs_to_family(details, family_id, event_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_event(self, command: CreateEventCommand, user_id: str) -> Result[Event, ServiceError]:
        """
        Create an event.

        Returns:
            Ok(Event) or Err(NotFoundError / ForbiddenError / ValidationError /
            ConflictError / InternalError)
        """
        access = self._check_access(command.family_id, user_id, "create_event")
        if access.is_err:
            return access
        family = access.value

        try:
            validation = ParticipantService.validate_participants(family, command.participants)
            if validation.is_err:
                return validation

            conflicts = self._blocker_conflicts(
                command.family_id,
                command.event_type,
                command.start_time,
                command.end_time,
                command.participants,
            )
            if conflicts.is_err:
                return conflicts

            event = Event.create(
                id=GuidService.generate_guid("evt"),
                family_id=command.family_id,
                title=command.title,
                start_time=command.start_time,
                end_time=command.end_time,
                event_type=command.event_type,
                is_all_day=command.is_all_day,
                recurrence_pattern=command.recurrence_pattern,
                participants=ParticipantService.build_participants(family, command.participants),
            )
            stored = self.events_repo.store(event)
        except Exception:
            return self._internal_error("create_event", "Failed to create event")

        logger.info(f"Created event: {stored.id} - {stored.title}")
        self._audit(
            "event.create", command.family_id, user_id, stored.id,
            title=stored.title, event_type=stored.event_type.value,
        )
        return Ok(stored)

    def update_event(
        self,
        family_id: str,
        event_id: str,
        command: UpdateEventCommand,
        scope: UpdateScope,
        occurrence_date: Optional[date],
        user_id: str,
    ) -> Result[EventUpdateResult, ServiceError]:
        """
        Update an event within a scope.

        Args:
            family_id: Family GUID
            event_id: Event GUID
            command: Partial update
            scope: this / future / all
            occurrence_date: Targeted occurrence (required for 'this' on
                recurring events, split point for 'future')
            user_id: Acting user GUID

        Returns:
            Ok(EventUpdateResult) or Err(NotFoundError / ForbiddenError /
            ValidationError / ConflictError / InternalError)
        """
        scope = UpdateScope(scope)
        loaded = self._load_modifiable_event(
            family_id, event_id, scope, occurrence_date, user_id, "update_event"
        )
        if loaded.is_err:
            return loaded
        family, event = loaded.value

        try:
            if command.participants is not None:
                validation = ParticipantService.validate_participants(family, command.participants)
                if validation.is_err:
                    return validation

            start_time, end_time = self._effective_times(event, command, scope, occurrence_date)
            participants = command.participants
            if participants is None:
                participants = [p.to_reference() for p in event.participants]

            conflicts = self._blocker_conflicts(
                family_id,
                command.event_type or event.event_type,
                start_time,
                end_time,
                participants,
                exclude_event_id=event_id,
            )
            if conflicts.is_err:
                return conflicts

            outcome = EventScopeHandler.handle_update_scope(
                event, command, scope, occurrence_date, family, self.events_repo
            )
            if outcome.is_err:
                return outcome

            reread_date = occurrence_date if outcome.value.exception_created else None
            updated = self.events_repo.find_by_id_with_details(event_id, reread_date)
            if updated is None:
                return Err(InternalError("Failed to retrieve updated event"))
        except Exception:
            return self._internal_error("update_event", "Failed to update event")

        logger.info(f"Updated event: {event_id} (scope: {scope.value})")
        self._audit(
            "event.update", family_id, user_id, event_id,
            title=updated.title, event_type=updated.event_type.value, scope=scope.value,
        )
        return Ok(EventUpdateResult(event=updated, exception_created=outcome.value.exception_created))

    @staticmethod
    def _effective_times(
        event: Event,
        command: UpdateEventCommand,
        scope: UpdateScope,
        occurrence_date: Optional[date],
    ):
        """Bounds the event (or targeted occurrence) will have after the update."""
        if scope is UpdateScope.THIS and event.is_recurring and occurrence_date is not None:
            occurrence = event.occurrence_on(occurrence_date)
            if occurrence is not None:
                return (
                    command.start_time or occurrence.start_time,
                    command.end_time or occurrence.end_time,
                )
        # The series only moves when both bounds are given
        if command.start_time and command.end_time:
            return command.start_time, command.end_time
        return event.start_time, event.end_time

    def delete_event(
        self,
        family_id: str,
        event_id: str,
        scope: UpdateScope,
        occurrence_date: Optional[date],
        user_id: str,
    ) -> Result[None, ServiceError]:
        """
        Delete an occurrence, the rest of a series, or the whole event.

        Returns:
            Ok(None) or Err(NotFoundError / ForbiddenError / ValidationError /
            InternalError)
        """
        scope = UpdateScope(scope)
        loaded = self._load_modifiable_event(
            family_id, event_id, scope, occurrence_date, user_id, "delete_event"
        )
        if loaded.is_err:
            return loaded
        _family, event = loaded.value

        try:
            outcome = EventScopeHandler.handle_delete_scope(event, scope, occurrence_date, self.events_repo)
            if outcome.is_err:
                return outcome
        except Exception:
            return self._internal_error("delete_event", "Failed to delete event")

        logger.info(f"Deleted event: {event_id} (scope: {scope.value})")
        self._audit(
            "event.delete", family_id, user_id, event_id,
            title=event.title, event_type=event.event_type.value, scope=scope.value,
        )
        return Ok(None)

    def validate_event(
        self,
        command: ValidateEventCommand,
        user_id: str,
    ) -> Result[EventValidationResult, ServiceError]:
        """
        Check an event definition without saving it.

        Unknown participants fail the call; blocker conflicts are reported in
        the result rather than as an error.
        """
        access = self._check_access(command.family_id, user_id, "validate_event")
        if access.is_err:
            return access

        validation = ParticipantService.validate_participants(access.value, command.participants)
        if validation.is_err:
            return validation

        errors = []
        if command.end_time <= command.start_time:
            errors.append({"field": "end_time", "message": "End time must be after start time"})

        conflicts = []
        if EventType(command.event_type) is EventType.BLOCKER and not errors:
            try:
                conflicts = self.events_repo.check_conflicts(
                    command.family_id,
                    command.start_time,
                    command.end_time,
                    command.participants,
                    command.exclude_event_id,
                )
            except Exception:
                return self._internal_error("validate_event", "Failed to validate event")

        return Ok(EventValidationResult(
            valid=not errors and not conflicts,
            errors=errors,
            conflicts=conflicts,
        ))

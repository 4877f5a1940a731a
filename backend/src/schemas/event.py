"""
Pydantic schemas for event API request/response validation.

Provides data validation and serialization for:
- Event creation, update and dry-run validation requests
- Event API responses (list occurrences, detail, update)
- Conflict reports for blocker events

Design:
- Request datetimes may carry any offset; they are normalized to naive UTC
- Responses serialize datetimes as ISO 8601 with an explicit "Z"
- Update requests are partial: only provided fields are changed, and an
  explicit null recurrence_pattern turns a series into a one-off event
- Schemas convert to and from the domain types (to_command / from_domain)
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from backend.src.domain.commands import CreateEventCommand, UpdateEventCommand, ValidateEventCommand
from backend.src.domain.event import (
    Event,
    EventException,
    EventParticipant,
    EventType,
    ParticipantReference,
    ParticipantType,
    RecurrenceFrequency,
    RecurrencePattern,
    to_naive_utc,
)
from backend.src.repositories.base import ConflictingEvent, EventWithParticipants


def _serialize_utc(v: Optional[datetime]) -> Optional[str]:
    """Serialize a naive UTC datetime as ISO 8601 with explicit UTC timezone."""
    return v.isoformat() + "Z" if v else None


# ============================================================================
# Shared Schemas
# ============================================================================


class RecurrencePatternSchema(BaseModel):
    """
    Recurrence of a repeating event.

    Fields:
        frequency: daily, weekly or monthly
        interval: Every N days/weeks/months (default: 1)
        end_date: Exclusive end of the series (null = no end)
    """

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, le=365)
    end_date: Optional[date] = Field(default=None)

    def to_domain(self) -> RecurrencePattern:
        return RecurrencePattern(
            frequency=self.frequency,
            interval=self.interval,
            end_date=self.end_date,
        )

    @classmethod
    def from_domain(cls, pattern: Optional[RecurrencePattern]) -> Optional["RecurrencePatternSchema"]:
        if pattern is None:
            return None
        return cls(frequency=pattern.frequency, interval=pattern.interval, end_date=pattern.end_date)


class ParticipantReferenceSchema(BaseModel):
    """Reference to a family member (user GUID) or child (child GUID)."""

    id: str = Field(..., min_length=1, description="User GUID (usr_xxx) or child GUID (chd_xxx)")
    type: ParticipantType

    def to_domain(self) -> ParticipantReference:
        return ParticipantReference(id=self.id, type=self.type)


def _normalize_datetime(v: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(v) if v is not None else None


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("Title cannot be empty or whitespace")
    return v.strip() if v else None


def _check_recurrence_end(
    start_time: Optional[datetime], pattern: Optional[RecurrencePatternSchema]
) -> None:
    # end_date is exclusive, so a series ending on its first day never occurs
    if start_time and pattern and pattern.end_date and pattern.end_date <= start_time.date():
        raise ValueError("Recurrence end date must be after start time")


# ============================================================================
# Request Schemas
# ============================================================================


class EventCreate(BaseModel):
    """
    Schema for creating an event.

    Required:
        family_id: Family GUID
        title: Event title
        start_time, end_time: Bounds of the (first) occurrence

    Optional:
        event_type: elastic (default) or blocker
        is_all_day: Whether the event spans full days
        recurrence_pattern: Makes the event recurring
        participants: Family members and children taking part
    """

    family_id: str = Field(..., description="Family GUID (fam_xxx)")
    title: str = Field(..., min_length=1, max_length=200)
    start_time: datetime
    end_time: datetime
    event_type: EventType = Field(default=EventType.ELASTIC)
    is_all_day: bool = Field(default=False)
    recurrence_pattern: Optional[RecurrencePatternSchema] = Field(default=None)
    participants: List[ParticipantReferenceSchema] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title_not_whitespace(cls, v: str) -> str:
        """Ensure title is not just whitespace."""
        return _clean_title(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return _normalize_datetime(v)

    @model_validator(mode="after")
    def validate_time_range(self) -> "EventCreate":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        _check_recurrence_end(self.start_time, self.recurrence_pattern)
        return self

    def to_command(self) -> CreateEventCommand:
        return CreateEventCommand(
            family_id=self.family_id,
            title=self.title,
            start_time=self.start_time,
            end_time=self.end_time,
            event_type=self.event_type,
            is_all_day=self.is_all_day,
            recurrence_pattern=self.recurrence_pattern.to_domain() if self.recurrence_pattern else None,
            participants=[p.to_domain() for p in self.participants],
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "family_id": "fam_01hgw2bbg0000000000000001",
                "title": "Swimming lesson",
                "start_time": "2024-03-03T16:00:00Z",
                "end_time": "2024-03-03T17:00:00Z",
                "event_type": "blocker",
                "recurrence_pattern": {"frequency": "weekly", "interval": 1, "end_date": None},
                "participants": [{"id": "chd_01hgw2bbg0000000000000002", "type": "child"}],
            }
        }
    }


class EventUpdate(BaseModel):
    """
    Schema for updating an existing event.

    All fields are optional - only provided fields will be updated. The
    update scope and occurrence date are query parameters, not body fields.

    Fields:
        title: New title
        start_time, end_time: New bounds (the series moves only when both are
            given; with scope 'this' they override the targeted occurrence)
        event_type: New event type
        recurrence_pattern: New pattern; explicit null makes the event one-off
        participants: Replacement participant list
    """

    title: Optional[str] = Field(default=None, max_length=200)
    start_time: Optional[datetime] = Field(default=None)
    end_time: Optional[datetime] = Field(default=None)
    event_type: Optional[EventType] = Field(default=None)
    recurrence_pattern: Optional[RecurrencePatternSchema] = Field(default=None)
    participants: Optional[List[ParticipantReferenceSchema]] = Field(default=None)

    @field_validator("title")
    @classmethod
    def validate_title_not_whitespace(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _normalize_datetime(v)

    @model_validator(mode="after")
    def validate_time_range(self) -> "EventUpdate":
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        _check_recurrence_end(self.start_time, self.recurrence_pattern)
        return self

    def to_command(self) -> UpdateEventCommand:
        fields = {
            "title": self.title,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "event_type": self.event_type,
            "participants": (
                [p.to_domain() for p in self.participants] if self.participants is not None else None
            ),
        }
        if "recurrence_pattern" in self.model_fields_set:
            fields["recurrence_pattern"] = (
                self.recurrence_pattern.to_domain() if self.recurrence_pattern else None
            )
        return UpdateEventCommand(**fields)

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Swimming lesson (pool B)",
                "start_time": "2024-03-10T17:00:00Z",
                "end_time": "2024-03-10T18:00:00Z",
            }
        }
    }


class EventValidate(BaseModel):
    """Schema for a dry-run validation of an event before saving it."""

    family_id: str = Field(..., description="Family GUID (fam_xxx)")
    start_time: datetime
    end_time: datetime
    event_type: EventType = Field(default=EventType.ELASTIC)
    participants: List[ParticipantReferenceSchema] = Field(default_factory=list)
    exclude_event_id: Optional[str] = Field(
        default=None,
        description="Event GUID to ignore (the event being edited)",
    )

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return _normalize_datetime(v)

    def to_command(self) -> ValidateEventCommand:
        return ValidateEventCommand(
            family_id=self.family_id,
            start_time=self.start_time,
            end_time=self.end_time,
            event_type=self.event_type,
            participants=[p.to_domain() for p in self.participants],
            exclude_event_id=self.exclude_event_id,
        )


# ============================================================================
# Response Schemas
# ============================================================================


class ParticipantResponse(BaseModel):
    id: str
    name: str
    type: ParticipantType
    avatar_url: Optional[str] = None

    @classmethod
    def from_domain(cls, participant: EventParticipant) -> "ParticipantResponse":
        return cls(
            id=participant.id,
            name=participant.name,
            type=participant.type,
            avatar_url=participant.avatar_url,
        )


class EventExceptionResponse(BaseModel):
    """Override of one occurrence of a recurring event."""

    id: Optional[str]
    original_date: date
    new_start_time: Optional[datetime] = None
    new_end_time: Optional[datetime] = None
    is_cancelled: bool = False

    @field_serializer("new_start_time", "new_end_time")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        return _serialize_utc(v)

    @classmethod
    def from_domain(cls, exception: EventException) -> "EventExceptionResponse":
        return cls(
            id=exception.id,
            original_date=exception.original_date,
            new_start_time=exception.new_start_time,
            new_end_time=exception.new_end_time,
            is_cancelled=exception.is_cancelled,
        )


class EventResponse(BaseModel):
    """
    Schema for event API responses.

    Use EventDetailResponse when the per-occurrence exceptions are needed.
    """

    id: str = Field(..., description="Event GUID (evt_xxx)")
    family_id: str = Field(..., description="Family GUID (fam_xxx)")
    title: str
    start_time: datetime
    end_time: datetime
    is_all_day: bool
    event_type: EventType
    recurrence_pattern: Optional[RecurrencePatternSchema] = None
    is_synced: bool = False
    external_calendar_id: Optional[str] = None
    participants: List[ParticipantResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return _serialize_utc(v)

    @classmethod
    def _domain_fields(cls, event: Event) -> dict:
        return {
            "id": event.id,
            "family_id": event.family_id,
            "title": event.title,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "is_all_day": event.is_all_day,
            "event_type": event.event_type,
            "recurrence_pattern": RecurrencePatternSchema.from_domain(event.recurrence_pattern),
            "is_synced": event.is_synced,
            "external_calendar_id": event.external_calendar_id,
            "participants": [ParticipantResponse.from_domain(p) for p in event.participants],
            "created_at": event.created_at,
            "updated_at": event.updated_at,
        }

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(**cls._domain_fields(event))

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "evt_01hgw2bbg0000000000000001",
                "family_id": "fam_01hgw2bbg0000000000000001",
                "title": "Swimming lesson",
                "start_time": "2024-03-03T16:00:00Z",
                "end_time": "2024-03-03T17:00:00Z",
                "is_all_day": False,
                "event_type": "blocker",
                "recurrence_pattern": {"frequency": "weekly", "interval": 1, "end_date": None},
                "is_synced": False,
                "participants": [
                    {"id": "chd_01hgw2bbg0000000000000002", "name": "Lea", "type": "child"}
                ],
                "created_at": "2024-03-01T10:00:00Z",
                "updated_at": None,
            }
        }
    }


class EventDetailResponse(EventResponse):
    """Event with its per-occurrence exceptions."""

    exceptions: List[EventExceptionResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, event: Event) -> "EventDetailResponse":
        return cls(
            **cls._domain_fields(event),
            exceptions=[EventExceptionResponse.from_domain(e) for e in event.exceptions],
        )


class EventUpdateResponse(EventDetailResponse):
    """Updated event; exception_created tells whether only one occurrence changed."""

    exception_created: bool = False

    @classmethod
    def from_result(cls, event: Event, exception_created: bool) -> "EventUpdateResponse":
        return cls(
            **cls._domain_fields(event),
            exceptions=[EventExceptionResponse.from_domain(e) for e in event.exceptions],
            exception_created=exception_created,
        )


class EventListItem(EventResponse):
    """
    One materialized occurrence in a calendar window.

    start_time/end_time are the occurrence's own bounds; occurrence_date
    identifies it for scoped updates and deletes.
    """

    occurrence_date: date
    has_conflict: bool = False
    is_exception: bool = False

    @classmethod
    def from_occurrence(cls, item: EventWithParticipants) -> "EventListItem":
        fields = cls._domain_fields(item.event)
        fields.update(start_time=item.start_time, end_time=item.end_time)
        return cls(
            **fields,
            occurrence_date=item.occurrence_date,
            has_conflict=item.has_conflict,
            is_exception=item.is_exception,
        )


class PaginationResponse(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class EventListResponse(BaseModel):
    """Page of occurrences with pagination metadata."""

    events: List[EventListItem]
    pagination: PaginationResponse


class ConflictingEventResponse(BaseModel):
    """Blocker occurrence overlapping the requested time range."""

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    participants: List[ParticipantResponse] = Field(default_factory=list)

    @field_serializer("start_time", "end_time")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        return _serialize_utc(v)

    @classmethod
    def from_domain(cls, conflict: ConflictingEvent) -> "ConflictingEventResponse":
        return cls(
            id=conflict.id,
            title=conflict.title,
            start_time=conflict.start_time,
            end_time=conflict.end_time,
            participants=[ParticipantResponse.from_domain(p) for p in conflict.participants],
        )


class ValidationErrorItem(BaseModel):
    field: str
    message: str


class ValidationResultResponse(BaseModel):
    """Result of POST /events/validate."""

    valid: bool
    errors: List[ValidationErrorItem] = Field(default_factory=list)
    conflicts: List[ConflictingEventResponse] = Field(default_factory=list)

"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.event import (
    RecurrencePatternSchema,
    ParticipantReferenceSchema,
    EventCreate,
    EventUpdate,
    EventValidate,
    ParticipantResponse,
    EventExceptionResponse,
    EventResponse,
    EventDetailResponse,
    EventUpdateResponse,
    EventListItem,
    PaginationResponse,
    EventListResponse,
    ConflictingEventResponse,
    ValidationErrorItem,
    ValidationResultResponse,
)

__all__ = [
    # Shared
    "RecurrencePatternSchema",
    "ParticipantReferenceSchema",
    # Requests
    "EventCreate",
    "EventUpdate",
    "EventValidate",
    # Responses
    "ParticipantResponse",
    "EventExceptionResponse",
    "EventResponse",
    "EventDetailResponse",
    "EventUpdateResponse",
    "EventListItem",
    "PaginationResponse",
    "EventListResponse",
    "ConflictingEventResponse",
    "ValidationErrorItem",
    "ValidationResultResponse",
]

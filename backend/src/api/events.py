"""
Events API endpoints for family calendar events.

Provides endpoints for:
- Listing event occurrences in a date window, with filtering and pagination
- Getting event details (optionally for one occurrence)
- Creating events (one-off or recurring)
- Updating and deleting events with a scope (this / future / all)
- Dry-run validation with blocker conflict detection

Design:
- Uses dependency injection for services
- Service operations return Results; an Err is unwrapped into its
  ServiceError and translated to an HTTPException carrying its status code
- All endpoints use GUID format for identifiers and require X-User-Id
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.domain.event import EventType, UpdateScope, to_naive_utc
from backend.src.middleware.auth import UserContext, require_user
from backend.src.schemas.event import (
    ConflictingEventResponse,
    EventCreate,
    EventDetailResponse,
    EventListItem,
    EventListResponse,
    EventUpdate,
    EventUpdateResponse,
    EventValidate,
    PaginationResponse,
    ValidationErrorItem,
    ValidationResultResponse,
)
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import ConflictError, ServiceError, ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/events",
    tags=["Events"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_event_service(request: Request, db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService.from_session(db, max_list_limit=request.app.state.settings.list_limit_max)


def _http_error(error: ServiceError) -> HTTPException:
    """Translate a service error into an HTTPException with its status code."""
    detail = {"error": error.kind, "message": error.message}
    if isinstance(error, ValidationError) and error.fields:
        detail["fields"] = error.fields
    if isinstance(error, ConflictError):
        detail["conflicts"] = [
            ConflictingEventResponse.from_domain(c).model_dump(mode="json")
            for c in error.conflicting_events
        ]
    return HTTPException(status_code=error.status_code, detail=detail)


def _split_ids(values: Optional[List[str]]) -> Optional[List[str]]:
    """Accept both repeated and comma-separated participant_ids."""
    if not values:
        return None
    ids = [part.strip() for value in values for part in value.split(",") if part.strip()]
    return ids or None


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=EventListResponse,
    summary="List events",
    description="List event occurrences of a family within a date window",
)
async def list_events(
    family_id: str = Query(..., description="Family GUID (fam_xxx)"),
    start_date: datetime = Query(..., description="Window start (inclusive)"),
    end_date: datetime = Query(..., description="Window end (inclusive)"),
    participant_ids: Optional[List[str]] = Query(default=None, description="Participant GUIDs"),
    event_type: Optional[EventType] = Query(default=None, description="Filter by event type"),
    include_synced: bool = Query(default=True, description="Include externally synced events"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    ctx: UserContext = Depends(require_user),
    event_service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    List event occurrences in a date window.

    Recurring events are expanded into their occurrences (cancelled ones are
    skipped, moved ones reported at their new time). Each item carries
    has_conflict when it is a blocker overlapping another blocker with a
    shared participant.

    Raises:
        400: end_date before start_date
        403: User is not a member of the family
        404: Family not found

    Example:
        GET /api/events?family_id=fam_xxx&start_date=2024-03-01T00:00:00Z&end_date=2024-03-31T23:59:59Z
    """
    start_date = to_naive_utc(start_date)
    end_date = to_naive_utc(end_date)
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "validation", "message": "end_date must not be before start_date"},
        )

    try:
        page = event_service.list_events(
            family_id=family_id,
            start_date=start_date,
            end_date=end_date,
            user_id=ctx.user_id,
            participant_ids=_split_ids(participant_ids),
            event_type=event_type,
            include_synced=include_synced,
            limit=limit,
            offset=offset,
        ).unwrap()
    except ServiceError as e:
        raise _http_error(e)

    logger.info(
        "Listed events",
        extra={"family_id": family_id, "total": page.total, "returned": len(page.items)},
    )

    return EventListResponse(
        events=[EventListItem.from_occurrence(item) for item in page.items],
        pagination=PaginationResponse(
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        ),
    )


@router.post(
    "/validate",
    response_model=ValidationResultResponse,
    summary="Validate an event",
    description="Check participants and blocker conflicts without saving",
)
async def validate_event(
    event_data: EventValidate,
    ctx: UserContext = Depends(require_user),
    event_service: EventService = Depends(get_event_service),
) -> ValidationResultResponse:
    """
    Dry-run validation of an event.

    Conflicts are reported in the body (valid=false) rather than as 409.

    Raises:
        400: Unknown participant
        403: User is not a member of the family
        404: Family not found
    """
    try:
        outcome = event_service.validate_event(event_data.to_command(), ctx.user_id).unwrap()
    except ServiceError as e:
        raise _http_error(e)

    return ValidationResultResponse(
        valid=outcome.valid,
        errors=[ValidationErrorItem(**error) for error in outcome.errors],
        conflicts=[ConflictingEventResponse.from_domain(c) for c in outcome.conflicts],
    )


@router.get(
    "/{event_id}",
    response_model=EventDetailResponse,
    summary="Get event details",
    description="Get an event by GUID, optionally for one occurrence",
)
async def get_event(
    event_id: str,
    family_id: str = Query(..., description="Family GUID (fam_xxx)"),
    occurrence_date: Optional[date] = Query(
        default=None,
        alias="date",
        description="Occurrence date; start/end then reflect that occurrence",
    ),
    ctx: UserContext = Depends(require_user),
    event_service: EventService = Depends(get_event_service),
) -> EventDetailResponse:
    """
    Get event details.

    Raises:
        403: User is not a member of the family
        404: Family or event not found (or event of another family)

    Example:
        GET /api/events/evt_xxx?family_id=fam_xxx&date=2024-03-10
    """
    try:
        event = event_service.get_event(
            family_id=family_id,
            event_id=event_id,
            user_id=ctx.user_id,
            occurrence_date=occurrence_date,
        ).unwrap()
    except ServiceError as e:
        raise _http_error(e)

    return EventDetailResponse.from_domain(event)


@router.post(
    "",
    response_model=EventDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
    description="Create a one-off or recurring event",
)
async def create_event(
    event_data: EventCreate,
    ctx: UserContext = Depends(require_user),
    event_service: EventService = Depends(get_event_service),
) -> EventDetailResponse:
    """
    Create an event.

    Raises:
        400: Unknown participant
        403: User is not a member of the family
        404: Family not found
        409: Blocker overlaps an existing blocker of a shared participant

    Example:
        POST /api/events
        {
          "family_id": "fam_xxx",
          "title": "Swimming lesson",
          "start_time": "2024-03-03T16:00:00Z",
          "end_time": "2024-03-03T17:00:00Z",
          "recurrence_pattern": {"frequency": "weekly"}
        }
    """
    try:
        event = event_service.create_event(event_data.to_command(), ctx.user_id).unwrap()
    except ServiceError as e:
        raise _http_error(e)

    return EventDetailResponse.from_domain(event)


@router.patch(
    "/{event_id}",
    response_model=EventUpdateResponse,
    summary="Update an event",
    description="Update an event, one occurrence, or a series from an occurrence on",
)
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    family_id: str = Query(..., description="Family GUID (fam_xxx)"),
    scope: UpdateScope = Query(default=UpdateScope.THIS, description="this, future or all"),
    occurrence_date: Optional[date] = Query(
        default=None,
        alias="date",
        description="Targeted occurrence (required for scope=this on recurring events)",
    ),
    ctx: UserContext = Depends(require_user),
    event_service: EventService = Depends(get_event_service),
) -> EventUpdateResponse:
    """
    Update an event.

    For recurring events the `scope` query parameter selects the blast radius:
    - "this": Only the occurrence on `date` (stored as an exception)
    - "future": The series is truncated at `date`; other fields apply to it
    - "all": The whole series; existing exceptions are discarded

    Raises:
        400: Invalid scope/date combination or unknown participant
        403: Not a family member, or the event is synced
        404: Family or event not found
        409: Blocker conflict

    Example:
        PATCH /api/events/evt_xxx?family_id=fam_xxx&scope=this&date=2024-03-10
        {"start_time": "2024-03-10T17:00:00Z", "end_time": "2024-03-10T18:00:00Z"}
    """
    try:
        outcome = event_service.update_event(
            family_id=family_id,
            event_id=event_id,
            command=event_data.to_command(),
            scope=scope,
            occurrence_date=occurrence_date,
            user_id=ctx.user_id,
        ).unwrap()
    except ServiceError as e:
        raise _http_error(e)

    return EventUpdateResponse.from_result(outcome.event, outcome.exception_created)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an event",
    description="Delete an event, one occurrence, or a series from an occurrence on",
)
async def delete_event(
    event_id: str,
    family_id: str = Query(..., description="Family GUID (fam_xxx)"),
    scope: UpdateScope = Query(default=UpdateScope.THIS, description="this, future or all"),
    occurrence_date: Optional[date] = Query(
        default=None,
        alias="date",
        description="Targeted occurrence (required for scope=this on recurring events)",
    ),
    ctx: UserContext = Depends(require_user),
    event_service: EventService = Depends(get_event_service),
) -> Response:
    """
    Delete an event.

    - "this": Cancel the occurrence on `date`
    - "future": End the series before `date`
    - "all": Remove the event entirely

    Raises:
        400: Invalid scope/date combination
        403: Not a family member, or the event is synced
        404: Family or event not found

    Example:
        DELETE /api/events/evt_xxx?family_id=fam_xxx&scope=all
    """
    try:
        event_service.delete_event(
            family_id=family_id,
            event_id=event_id,
            scope=scope,
            occurrence_date=occurrence_date,
            user_id=ctx.user_id,
        ).unwrap()
    except ServiceError as e:
        raise _http_error(e)

    return Response(status_code=status.HTTP_204_NO_CONTENT)

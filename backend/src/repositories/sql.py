"""
SQLAlchemy implementations of the repository contracts.

Rows are mapped to immutable domain aggregates on the way out and written
back from them on the way in; callers never see ORM objects. Every write
commits its own unit of work.

External identifiers are GUIDs; a malformed GUID is treated like an unknown
one (lookups return None).
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from backend.src.domain.event import (
    Event,
    EventException,
    EventParticipant,
    ParticipantType,
    RecurrencePattern,
    utcnow,
)
from backend.src.domain.family import Child, Family, FamilyMember
from backend.src.models import (
    Child as ChildModel,
    Event as EventModel,
    EventException as EventExceptionModel,
    EventParticipant as EventParticipantModel,
    Family as FamilyModel,
    FamilyMember as FamilyMemberModel,
    User as UserModel,
)
from backend.src.repositories.base import (
    ChildRepository,
    EventRepository,
    ExceptionData,
    FamilyRepository,
)
from backend.src.services.guid import GuidService
from backend.src.utils.logging_config import get_logger


logger = get_logger("db")


def _parse(guid: str, prefix: str):
    """UUID behind a GUID, or None when the GUID is malformed."""
    try:
        return GuidService.parse_guid(guid, prefix)
    except ValueError:
        return None


# ============================================================================
# Row -> domain mapping
# ============================================================================


def _exception_to_domain(row: EventExceptionModel) -> EventException:
    return EventException(
        id=row.guid,
        original_date=row.original_date,
        new_start_time=row.new_start_time,
        new_end_time=row.new_end_time,
        is_cancelled=row.is_cancelled,
    )


def _participant_to_domain(row: EventParticipantModel) -> EventParticipant:
    if row.participant_type == ParticipantType.USER.value:
        return EventParticipant(
            id=row.user.guid,
            name=row.user.full_name,
            type=ParticipantType.USER,
            avatar_url=row.user.avatar_url,
        )
    return EventParticipant(
        id=row.child.guid,
        name=row.child.name,
        type=ParticipantType.CHILD,
    )


def _event_to_domain(row: EventModel) -> Event:
    pattern = None
    if row.recurrence_pattern:
        pattern = RecurrencePattern.from_dict(row.recurrence_pattern)

    return Event(
        id=row.guid,
        family_id=row.family.guid,
        title=row.title,
        start_time=row.start_time,
        end_time=row.end_time,
        event_type=row.event_type,
        is_all_day=row.is_all_day,
        created_at=row.created_at,
        recurrence_pattern=pattern,
        is_synced=row.is_synced,
        external_calendar_id=row.external_calendar_id,
        updated_at=row.updated_at,
        participants=[_participant_to_domain(p) for p in row.participants],
        exceptions=[_exception_to_domain(e) for e in row.exceptions],
    )


def _family_to_domain(row: FamilyModel) -> Family:
    return Family(
        id=row.guid,
        name=row.name,
        created_at=row.created_at,
        members=[
            FamilyMember(
                id=member.guid,
                name=member.user.full_name,
                role=member.role,
                user_id=member.user.guid,
                joined_at=member.joined_at,
                avatar_url=member.user.avatar_url,
            )
            for member in row.members
        ],
        children=[_child_to_domain(child) for child in row.children],
    )


def _child_to_domain(row: ChildModel) -> Child:
    return Child(id=row.guid, name=row.name, created_at=row.created_at)


# ============================================================================
# Events
# ============================================================================


class SqlEventRepository(EventRepository):
    """
    Event repository backed by a SQLAlchemy session.

    Usage:
        >>> repo = SqlEventRepository(db_session)
        >>> event = repo.find_by_id("evt_01hgw2bbg...")
    """

    def __init__(self, db: Session):
        """
        Initialize the repository.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _query(self):
        return self.db.query(EventModel).options(
            selectinload(EventModel.family),
            selectinload(EventModel.participants).selectinload(EventParticipantModel.user),
            selectinload(EventModel.participants).selectinload(EventParticipantModel.child),
            selectinload(EventModel.exceptions),
        )

    def _get_row(self, event_id: str) -> Optional[EventModel]:
        uuid_value = _parse(event_id, "evt")
        if uuid_value is None:
            return None
        return self._query().filter(EventModel.uuid == uuid_value).first()

    def _participant_rows(self, event: Event) -> List[EventParticipantModel]:
        rows = []
        for position, participant in enumerate(event.participants):
            if participant.type is ParticipantType.USER:
                target = self.db.query(UserModel).filter(
                    UserModel.uuid == _parse(participant.id, "usr")
                ).first()
                if target is None:
                    raise ValueError(f"User {participant.id} not found")
                rows.append(EventParticipantModel(
                    participant_type=ParticipantType.USER.value,
                    user_id=target.id,
                    position=position,
                ))
            else:
                target = self.db.query(ChildModel).filter(
                    ChildModel.uuid == _parse(participant.id, "chd")
                ).first()
                if target is None:
                    raise ValueError(f"Child {participant.id} not found")
                rows.append(EventParticipantModel(
                    participant_type=ParticipantType.CHILD.value,
                    child_id=target.id,
                    position=position,
                ))
        return rows

    def store(self, event: Event) -> Event:
        # Resolve participants before touching the row; lookups may autoflush
        participants = self._participant_rows(event)

        row = self._get_row(event.id)
        is_new = row is None
        if is_new:
            family = self.db.query(FamilyModel).filter(
                FamilyModel.uuid == _parse(event.family_id, "fam")
            ).first()
            if family is None:
                raise ValueError(f"Family {event.family_id} not found")
            row = EventModel(
                uuid=GuidService.parse_guid(event.id, "evt"),
                family_id=family.id,
                created_at=event.created_at or utcnow(),
            )
        else:
            row.updated_at = utcnow()

        row.title = event.title
        row.start_time = event.start_time
        row.end_time = event.end_time
        row.is_all_day = event.is_all_day
        row.event_type = event.event_type.value
        row.recurrence_pattern = event.recurrence_pattern.to_dict() if event.recurrence_pattern else None
        row.is_synced = event.is_synced
        row.external_calendar_id = event.external_calendar_id
        row.participants = participants

        if is_new:
            self.db.add(row)
        self.db.commit()
        logger.debug(f"Stored event {event.id}")

        return self.find_by_id(event.id)

    def delete(self, event_id: str) -> None:
        row = self._get_row(event_id)
        if row is None:
            return
        self.db.delete(row)
        self.db.commit()
        logger.debug(f"Deleted event {event_id}")

    def find_by_id(self, event_id: str) -> Optional[Event]:
        row = self._get_row(event_id)
        return _event_to_domain(row) if row else None

    def find_by_family_id(
        self,
        family_id: str,
        starting_before: Optional[datetime] = None,
    ) -> List[Event]:
        uuid_value = _parse(family_id, "fam")
        if uuid_value is None:
            return []

        query = self._query().join(FamilyModel, EventModel.family_id == FamilyModel.id).filter(
            FamilyModel.uuid == uuid_value
        )
        if starting_before is not None:
            query = query.filter(EventModel.start_time <= starting_before)

        rows = query.order_by(EventModel.start_time, EventModel.id).all()
        return [_event_to_domain(row) for row in rows]

    def create_exception(self, event_id: str, data: ExceptionData) -> EventException:
        event_row = self._get_row(event_id)
        if event_row is None:
            raise ValueError(f"Event {event_id} not found")

        row = self.db.query(EventExceptionModel).filter(
            EventExceptionModel.event_id == event_row.id,
            EventExceptionModel.original_date == data.original_date,
        ).first()
        if row is None:
            row = EventExceptionModel(event_id=event_row.id, original_date=data.original_date)
            self.db.add(row)

        row.new_start_time = data.new_start_time
        row.new_end_time = data.new_end_time
        row.is_cancelled = data.is_cancelled

        self.db.commit()
        self.db.refresh(row)
        logger.debug(f"Stored exception for event {event_id} on {data.original_date}")

        return _exception_to_domain(row)

    def get_exceptions(self, event_id: str) -> List[EventException]:
        event_row = self._get_row(event_id)
        if event_row is None:
            return []
        rows = (
            self.db.query(EventExceptionModel)
            .filter(EventExceptionModel.event_id == event_row.id)
            .order_by(EventExceptionModel.original_date)
            .all()
        )
        return [_exception_to_domain(row) for row in rows]

    def delete_exceptions(self, event_id: str, original_date: Optional[date] = None) -> None:
        event_row = self._get_row(event_id)
        if event_row is None:
            return

        query = self.db.query(EventExceptionModel).filter(EventExceptionModel.event_id == event_row.id)
        if original_date is not None:
            query = query.filter(EventExceptionModel.original_date == original_date)

        for row in query.all():
            self.db.delete(row)
        self.db.commit()
        logger.debug(f"Deleted exceptions for event {event_id}")


# ============================================================================
# Families and children
# ============================================================================


class SqlFamilyRepository(FamilyRepository):
    """Family repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, family_id: str) -> Optional[Family]:
        uuid_value = _parse(family_id, "fam")
        if uuid_value is None:
            return None

        row = (
            self.db.query(FamilyModel)
            .options(
                selectinload(FamilyModel.members).selectinload(FamilyMemberModel.user),
                selectinload(FamilyModel.children),
            )
            .filter(FamilyModel.uuid == uuid_value)
            .first()
        )
        return _family_to_domain(row) if row else None


class SqlChildRepository(ChildRepository):
    """Child repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_family_id(self, family_id: str) -> List[Child]:
        uuid_value = _parse(family_id, "fam")
        if uuid_value is None:
            return []
        rows = (
            self.db.query(ChildModel)
            .join(FamilyModel, ChildModel.family_id == FamilyModel.id)
            .filter(FamilyModel.uuid == uuid_value)
            .order_by(ChildModel.name)
            .all()
        )
        return [_child_to_domain(row) for row in rows]

    def find_by_id(self, child_id: str) -> Optional[Child]:
        uuid_value = _parse(child_id, "chd")
        if uuid_value is None:
            return None
        row = self.db.query(ChildModel).filter(ChildModel.uuid == uuid_value).first()
        return _child_to_domain(row) if row else None

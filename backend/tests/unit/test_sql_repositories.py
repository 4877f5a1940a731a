"""
Unit tests for the SQLAlchemy repositories.

Tests cover:
- Event store/find round trips (participants, pattern, timestamps)
- Exception upsert and deletion
- Cascading event deletion
- Window queries with occurrence expansion, filters and conflict flags
- Family and child lookups
- Malformed GUID handling
"""

from datetime import date, datetime

import pytest

from backend.src.domain.event import (
    Event,
    EventParticipant,
    EventType,
    ParticipantReference,
    ParticipantType,
    RecurrencePattern,
)
from backend.src.models import EventException as EventExceptionModel
from backend.src.models import EventParticipant as EventParticipantModel
from backend.src.repositories.base import ExceptionData, FindEventsOptions
from backend.src.repositories.sql import SqlChildRepository, SqlEventRepository, SqlFamilyRepository
from backend.src.services.guid import GuidService


MARCH_START = datetime(2024, 3, 1)
MARCH_END = datetime(2024, 3, 31, 23, 59, 59)


@pytest.fixture
def repo(test_db_session):
    return SqlEventRepository(test_db_session)


def _participants(calendar_family, *rows):
    participants = []
    for row in rows:
        if row is calendar_family.lea:
            participants.append(EventParticipant(id=row.guid, name=row.name, type="child"))
        else:
            participants.append(EventParticipant(id=row.guid, name=row.full_name, type="user"))
    return participants


def _new_event(calendar_family, *participant_rows, **overrides):
    fields = dict(
        id=GuidService.generate_guid("evt"),
        family_id=calendar_family.family.guid,
        title="Swimming lesson",
        start_time=datetime(2024, 3, 3, 16, 0),
        end_time=datetime(2024, 3, 3, 17, 0),
        participants=_participants(calendar_family, *participant_rows),
    )
    fields.update(overrides)
    return Event.create(**fields)


class TestStore:
    """Tests for store/find_by_id."""

    def test_round_trip(self, repo, calendar_family):
        event = _new_event(
            calendar_family,
            calendar_family.lea,
            calendar_family.alex,
            event_type=EventType.BLOCKER,
            recurrence_pattern=RecurrencePattern(frequency="weekly", end_date=date(2024, 6, 1)),
        )

        stored = repo.store(event)

        assert stored.id == event.id
        assert stored.family_id == calendar_family.family.guid
        assert stored.event_type is EventType.BLOCKER
        assert stored.recurrence_pattern == RecurrencePattern(frequency="weekly", end_date=date(2024, 6, 1))
        assert [(p.id, p.type) for p in stored.participants] == [
            (calendar_family.lea.guid, ParticipantType.CHILD),
            (calendar_family.alex.guid, ParticipantType.USER),
        ]
        assert stored.participants[1].avatar_url == "https://example.com/alex.png"
        assert stored.created_at is not None
        assert stored.updated_at is None

    def test_update_replaces_participants_and_stamps_updated_at(self, repo, calendar_family, test_db_session):
        stored = repo.store(_new_event(calendar_family, calendar_family.lea, calendar_family.alex))

        changed = stored.update_title("Swimming (pool B)").update_participants(
            _participants(calendar_family, calendar_family.sam)
        )
        updated = repo.store(changed)

        assert updated.title == "Swimming (pool B)"
        assert [p.name for p in updated.participants] == ["Sam Martin"]
        assert updated.updated_at is not None
        assert test_db_session.query(EventParticipantModel).count() == 1

    def test_unknown_participant_rejected(self, repo, calendar_family):
        ghost = EventParticipant(id=GuidService.generate_guid("chd"), name="Ghost", type="child")
        event = _new_event(calendar_family).update_participants([ghost])

        with pytest.raises(ValueError):
            repo.store(event)

    @pytest.mark.parametrize("event_id", ["", "evt_123", "fam_01hgw2bbg0000000000000000"])
    def test_malformed_ids_are_not_found(self, repo, event_id):
        assert repo.find_by_id(event_id) is None

    def test_find_by_family_id(self, repo, calendar_family):
        early = repo.store(_new_event(calendar_family, title="Early"))
        repo.store(_new_event(
            calendar_family,
            title="Late",
            start_time=datetime(2024, 4, 1, 9, 0),
            end_time=datetime(2024, 4, 1, 10, 0),
        ))

        all_events = repo.find_by_family_id(calendar_family.family.guid)
        march = repo.find_by_family_id(calendar_family.family.guid, starting_before=MARCH_END)

        assert [e.title for e in all_events] == ["Early", "Late"]
        assert [e.id for e in march] == [early.id]
        assert repo.find_by_family_id("not-a-guid") == []


class TestExceptions:
    """Tests for exception persistence."""

    def test_create_exception_upserts_per_date(self, repo, calendar_family, test_db_session):
        event = repo.store(_new_event(calendar_family, recurrence_pattern=RecurrencePattern(frequency="weekly")))

        first = repo.create_exception(event.id, ExceptionData(original_date=date(2024, 3, 10), is_cancelled=True))
        second = repo.create_exception(event.id, ExceptionData(
            original_date=date(2024, 3, 10),
            new_start_time=datetime(2024, 3, 10, 18, 0),
            new_end_time=datetime(2024, 3, 10, 19, 0),
        ))

        assert first.id.startswith("exc_")
        assert second.id == first.id
        assert second.is_cancelled is False
        assert test_db_session.query(EventExceptionModel).count() == 1

        reloaded = repo.find_by_id(event.id)
        assert reloaded.occurrence_on(date(2024, 3, 10)).start_time == datetime(2024, 3, 10, 18, 0)

    def test_exception_for_unknown_event(self, repo):
        with pytest.raises(ValueError):
            repo.create_exception(GuidService.generate_guid("evt"), ExceptionData(original_date=date(2024, 3, 10)))

    def test_delete_exceptions(self, repo, calendar_family):
        event = repo.store(_new_event(calendar_family, recurrence_pattern=RecurrencePattern(frequency="weekly")))
        for day in (24, 10, 17):
            repo.create_exception(event.id, ExceptionData(original_date=date(2024, 3, day), is_cancelled=True))

        assert [e.original_date.day for e in repo.get_exceptions(event.id)] == [10, 17, 24]

        repo.delete_exceptions(event.id, date(2024, 3, 17))
        assert [e.original_date.day for e in repo.get_exceptions(event.id)] == [10, 24]

        repo.delete_exceptions(event.id)
        assert repo.get_exceptions(event.id) == []

    def test_store_leaves_exceptions_alone(self, repo, calendar_family):
        event = repo.store(_new_event(calendar_family, recurrence_pattern=RecurrencePattern(frequency="weekly")))
        repo.create_exception(event.id, ExceptionData(original_date=date(2024, 3, 10), is_cancelled=True))

        repo.store(repo.find_by_id(event.id).update_title("Renamed"))

        assert len(repo.get_exceptions(event.id)) == 1

    def test_delete_cascades(self, repo, calendar_family, test_db_session):
        event = repo.store(_new_event(
            calendar_family,
            calendar_family.lea,
            recurrence_pattern=RecurrencePattern(frequency="weekly"),
        ))
        repo.create_exception(event.id, ExceptionData(original_date=date(2024, 3, 10), is_cancelled=True))

        repo.delete(event.id)

        assert repo.find_by_id(event.id) is None
        assert test_db_session.query(EventExceptionModel).count() == 0
        assert test_db_session.query(EventParticipantModel).count() == 0


class TestWindowQueries:
    """Tests for find_by_date_range and check_conflicts on SQL storage."""

    def test_find_by_date_range(self, repo, calendar_family, sample_event):
        family_id = calendar_family.family.guid
        swim = repo.store(_new_event(
            calendar_family,
            calendar_family.lea,
            event_type=EventType.BLOCKER,
            recurrence_pattern=RecurrencePattern(frequency="weekly"),
        ))
        repo.create_exception(swim.id, ExceptionData(original_date=date(2024, 3, 10), is_cancelled=True))
        repo.store(_new_event(
            calendar_family,
            calendar_family.alex,
            title="Dentist",
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 0),
        ))
        sample_event(
            calendar_family.family,
            title="School trip",
            start_time=datetime(2024, 3, 8, 8, 0),
            end_time=datetime(2024, 3, 8, 15, 0),
            is_synced=True,
            external_calendar_id="google:school",
        )

        items, total = repo.find_by_date_range(FindEventsOptions(
            family_id=family_id, start_date=MARCH_START, end_date=MARCH_END,
        ))
        assert total == 6
        assert [i.event.title for i in items[:3]] == ["Swimming lesson", "Dentist", "School trip"]

        unsynced, total = repo.find_by_date_range(FindEventsOptions(
            family_id=family_id, start_date=MARCH_START, end_date=MARCH_END, include_synced=False,
        ))
        assert total == 5

        lea_only, total = repo.find_by_date_range(FindEventsOptions(
            family_id=family_id, start_date=MARCH_START, end_date=MARCH_END,
            participant_ids=[calendar_family.lea.guid], limit=2, offset=1,
        ))
        assert total == 4
        assert [i.occurrence_date.day for i in lea_only] == [17, 24]

    def test_has_conflict_flag(self, repo, calendar_family):
        repo.store(_new_event(
            calendar_family,
            calendar_family.lea,
            event_type=EventType.BLOCKER,
            recurrence_pattern=RecurrencePattern(frequency="weekly"),
        ))
        repo.store(_new_event(
            calendar_family,
            calendar_family.lea,
            title="Birthday party",
            event_type=EventType.BLOCKER,
            start_time=datetime(2024, 3, 17, 16, 30),
            end_time=datetime(2024, 3, 17, 18, 0),
        ))

        items, _ = repo.find_by_date_range(FindEventsOptions(
            family_id=calendar_family.family.guid, start_date=MARCH_START, end_date=MARCH_END,
        ))

        flagged = {(i.event.title, i.occurrence_date.day) for i in items if i.has_conflict}
        assert flagged == {("Swimming lesson", 17), ("Birthday party", 17)}

    def test_check_conflicts(self, repo, calendar_family):
        swim = repo.store(_new_event(
            calendar_family,
            calendar_family.lea,
            event_type=EventType.BLOCKER,
            recurrence_pattern=RecurrencePattern(frequency="weekly"),
        ))
        lea = ParticipantReference(id=calendar_family.lea.guid, type="child")
        alex = ParticipantReference(id=calendar_family.alex.guid, type="user")

        conflicts = repo.check_conflicts(
            calendar_family.family.guid,
            datetime(2024, 3, 24, 16, 45),
            datetime(2024, 3, 24, 18, 0),
            [alex, lea],
        )

        assert [(c.id, c.start_time) for c in conflicts] == [(swim.id, datetime(2024, 3, 24, 16, 0))]
        assert repo.check_conflicts(
            calendar_family.family.guid, datetime(2024, 3, 24, 16, 45), datetime(2024, 3, 24, 18, 0), [alex]
        ) == []
        assert repo.check_conflicts(
            calendar_family.family.guid, datetime(2024, 3, 24, 16, 45), datetime(2024, 3, 24, 18, 0),
            [lea], exclude_event_id=swim.id,
        ) == []


class TestFamilyRepositories:
    """Tests for SqlFamilyRepository and SqlChildRepository."""

    def test_find_family(self, test_db_session, calendar_family):
        family = SqlFamilyRepository(test_db_session).find_by_id(calendar_family.family.guid)

        assert family.name == "Martin"
        assert family.is_member(calendar_family.alex.guid)
        assert family.is_admin(calendar_family.alex.guid)
        assert not family.is_admin(calendar_family.sam.guid)
        assert not family.is_member(calendar_family.zoe.guid)
        assert family.get_member(calendar_family.sam.guid).id.startswith("mem_")
        assert [c.id for c in family.children] == [calendar_family.lea.guid]

    def test_find_family_missing_or_malformed(self, test_db_session):
        repo = SqlFamilyRepository(test_db_session)
        assert repo.find_by_id(GuidService.generate_guid("fam")) is None
        assert repo.find_by_id("fam_nope") is None

    def test_children(self, test_db_session, calendar_family, sample_child):
        sample_child(calendar_family.family, name="Ava")
        repo = SqlChildRepository(test_db_session)

        assert [c.name for c in repo.find_by_family_id(calendar_family.family.guid)] == ["Ava", "Lea"]
        assert repo.find_by_id(calendar_family.lea.guid).name == "Lea"
        assert repo.find_by_id(calendar_family.alex.guid) is None

"""
Unit tests for EventScopeHandler and scope resolution.

Tests cover:
- Pure resolution of update/delete requests into actions
- 'this': per-occurrence exceptions (moved or cancelled)
- 'future': truncation of the series at the split date
- 'all': whole-series updates clearing exceptions, and deletes
"""

from datetime import date, datetime

import pytest

from backend.src.domain.commands import UpdateEventCommand
from backend.src.domain.event import (
    Event,
    EventType,
    ParticipantReference,
    RecurrenceFrequency,
    RecurrencePattern,
    UpdateScope,
)
from backend.src.domain.family import Child, Family, FamilyMember
from backend.src.repositories.base import ExceptionData
from backend.src.repositories.memory import InMemoryEventRepository
from backend.src.services.event_scope_handler import (
    CreateException,
    DeleteEvent,
    EventScopeHandler,
    ReplaceEvent,
    TruncateSeries,
    resolve_delete_action,
    resolve_update_action,
)


MARCH_START = datetime(2024, 3, 1)
MARCH_END = datetime(2024, 3, 31, 23, 59, 59)


@pytest.fixture
def family():
    return Family(
        id="f1",
        name="Martin",
        members=[FamilyMember(id="m1", name="Alex Martin", role="admin", user_id="u1")],
        children=[Child(id="c1", name="Lea")],
    )


@pytest.fixture
def weekly_event():
    """Weekly series every Sunday 16:00-17:00 starting 2024-03-03."""
    return Event.create(
        id="e1",
        family_id="f1",
        title="Swimming lesson",
        start_time=datetime(2024, 3, 3, 16, 0),
        end_time=datetime(2024, 3, 3, 17, 0),
        recurrence_pattern=RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY),
    )


@pytest.fixture
def one_off_event():
    return Event.create(
        id="e2",
        family_id="f1",
        title="Dentist",
        start_time=datetime(2024, 3, 4, 9, 0),
        end_time=datetime(2024, 3, 4, 10, 0),
    )


@pytest.fixture
def repo(weekly_event, one_off_event):
    return InMemoryEventRepository([weekly_event, one_off_event])


def march_days(repo, event_id):
    event = repo.find_by_id(event_id)
    return [o.original_date.day for o in event.occurrences(MARCH_START, MARCH_END)]


class TestResolution:
    """Tests for the pure resolve_* functions."""

    def test_update_this_resolves_to_exception(self, weekly_event, family):
        command = UpdateEventCommand(
            start_time=datetime(2024, 3, 10, 17, 0),
            end_time=datetime(2024, 3, 10, 18, 0),
        )

        action = resolve_update_action(weekly_event, command, UpdateScope.THIS, date(2024, 3, 10), family)

        assert action == CreateException(
            event_id="e1",
            data=ExceptionData(
                original_date=date(2024, 3, 10),
                new_start_time=datetime(2024, 3, 10, 17, 0),
                new_end_time=datetime(2024, 3, 10, 18, 0),
            ),
        )

    def test_update_future_resolves_to_truncation(self, weekly_event, family):
        action = resolve_update_action(
            weekly_event, UpdateEventCommand(title="Renamed"), UpdateScope.FUTURE, date(2024, 3, 17), family
        )
        assert isinstance(action, TruncateSeries)

    def test_update_all_on_series_clears_exceptions(self, weekly_event, family):
        action = resolve_update_action(
            weekly_event, UpdateEventCommand(title="Renamed"), UpdateScope.ALL, None, family
        )

        assert isinstance(action, ReplaceEvent)
        assert action.clear_exceptions is True

    @pytest.mark.parametrize("scope", [UpdateScope.THIS, UpdateScope.FUTURE, UpdateScope.ALL])
    def test_update_one_off_replaces_event(self, one_off_event, family, scope):
        action = resolve_update_action(
            one_off_event, UpdateEventCommand(title="Renamed"), scope, date(2024, 3, 4), family
        )

        assert isinstance(action, ReplaceEvent)
        assert action.clear_exceptions is False
        assert action.event.title == "Renamed"

    def test_delete_resolution(self, weekly_event, one_off_event):
        this = resolve_delete_action(weekly_event, UpdateScope.THIS, date(2024, 3, 10))
        assert this == CreateException(
            event_id="e1",
            data=ExceptionData(original_date=date(2024, 3, 10), is_cancelled=True),
        )

        future = resolve_delete_action(weekly_event, UpdateScope.FUTURE, date(2024, 3, 17))
        assert future.event.recurrence_pattern.end_date == date(2024, 3, 17)

        assert resolve_delete_action(weekly_event, UpdateScope.ALL, None) == DeleteEvent("e1")
        assert resolve_delete_action(one_off_event, UpdateScope.FUTURE, None) == DeleteEvent("e2")

    def test_apply_rejects_unknown_action(self, repo):
        with pytest.raises(TypeError):
            EventScopeHandler.apply(object(), repo)


class TestDeleteScope:
    """Tests for handle_delete_scope against the in-memory repository."""

    def test_delete_this_cancels_one_occurrence(self, weekly_event, repo):
        result = EventScopeHandler.handle_delete_scope(
            weekly_event, UpdateScope.THIS, date(2024, 3, 10), repo
        )

        outcome = result.unwrap()
        assert outcome.exception_created is True
        assert outcome.exception.is_cancelled is True
        assert outcome.exception.original_date == date(2024, 3, 10)
        assert outcome.exception.new_start_time is None
        assert outcome.exception.new_end_time is None
        assert outcome.exception.id.startswith("exc_")
        assert march_days(repo, "e1") == [3, 17, 24, 31]
        assert repo.find_by_id("e1").without_exceptions() == weekly_event

    def test_delete_future_truncates_series(self, weekly_event, repo):
        outcome = EventScopeHandler.handle_delete_scope(
            weekly_event, UpdateScope.FUTURE, date(2024, 3, 17), repo
        ).unwrap()

        assert outcome.event.recurrence_pattern.end_date == date(2024, 3, 17)
        assert march_days(repo, "e1") == [3, 10]

    def test_delete_future_without_date_splits_at_series_start(self, weekly_event, repo):
        EventScopeHandler.handle_delete_scope(weekly_event, UpdateScope.FUTURE, None, repo)

        stored = repo.find_by_id("e1")
        assert stored is not None
        assert stored.recurrence_pattern.end_date == date(2024, 3, 3)
        assert march_days(repo, "e1") == []

    def test_delete_all_removes_event(self, weekly_event, repo):
        outcome = EventScopeHandler.handle_delete_scope(weekly_event, UpdateScope.ALL, None, repo).unwrap()

        assert outcome.deleted is True
        assert repo.find_by_id("e1") is None
        assert repo.find_by_id("e2") is not None


class TestUpdateScope:
    """Tests for handle_update_scope against the in-memory repository."""

    def test_update_this_moves_one_occurrence(self, weekly_event, family, repo):
        command = UpdateEventCommand(
            start_time=datetime(2024, 3, 10, 17, 0),
            end_time=datetime(2024, 3, 10, 18, 0),
        )

        outcome = EventScopeHandler.handle_update_scope(
            weekly_event, command, UpdateScope.THIS, date(2024, 3, 10), family, repo
        ).unwrap()

        assert outcome.exception_created is True
        stored = repo.find_by_id("e1")
        assert stored.start_time == datetime(2024, 3, 3, 16, 0)
        assert stored.occurrence_on(date(2024, 3, 10)).start_time == datetime(2024, 3, 10, 17, 0)
        assert stored.occurrence_on(date(2024, 3, 17)).start_time == datetime(2024, 3, 17, 16, 0)
        assert [e.original_date for e in stored.exceptions] == [date(2024, 3, 10)]
        assert stored.without_exceptions() == weekly_event

    def test_update_this_twice_keeps_one_exception(self, weekly_event, family, repo):
        for hour in (17, 18):
            command = UpdateEventCommand(
                start_time=datetime(2024, 3, 10, hour, 0),
                end_time=datetime(2024, 3, 10, hour + 1, 0),
            )
            EventScopeHandler.handle_update_scope(
                weekly_event, command, UpdateScope.THIS, date(2024, 3, 10), family, repo
            )

        exceptions = repo.get_exceptions("e1")
        assert len(exceptions) == 1
        assert exceptions[0].new_start_time == datetime(2024, 3, 10, 18, 0)

    def test_update_future_with_pattern_truncates_existing_series(self, weekly_event, family, repo):
        command = UpdateEventCommand(
            title="Swimming (new pool)",
            recurrence_pattern=RecurrencePattern(frequency=RecurrenceFrequency.DAILY),
        )

        outcome = EventScopeHandler.handle_update_scope(
            weekly_event, command, UpdateScope.FUTURE, date(2024, 3, 17), family, repo
        ).unwrap()

        assert outcome.exception_created is False
        assert outcome.event.title == "Swimming (new pool)"
        assert outcome.event.recurrence_pattern.frequency is RecurrenceFrequency.WEEKLY
        assert outcome.event.recurrence_pattern.end_date == date(2024, 3, 17)
        assert march_days(repo, "e1") == [3, 10]

    def test_update_future_without_pattern_keeps_series(self, weekly_event, family, repo):
        outcome = EventScopeHandler.handle_update_scope(
            weekly_event,
            UpdateEventCommand(event_type=EventType.BLOCKER),
            UpdateScope.FUTURE,
            date(2024, 3, 17),
            family,
            repo,
        ).unwrap()

        assert outcome.event.event_type is EventType.BLOCKER
        assert outcome.event.recurrence_pattern.end_date is None

    def test_update_future_with_null_pattern_keeps_series(self, weekly_event, family, repo):
        outcome = EventScopeHandler.handle_update_scope(
            weekly_event,
            UpdateEventCommand(title="Renamed", recurrence_pattern=None),
            UpdateScope.FUTURE,
            date(2024, 3, 17),
            family,
            repo,
        ).unwrap()

        assert outcome.event.title == "Renamed"
        assert outcome.event.recurrence_pattern == weekly_event.recurrence_pattern
        assert outcome.event.recurrence_pattern.end_date is None
        assert march_days(repo, "e1") == [3, 10, 17, 24, 31]

    def test_update_future_keeps_exceptions(self, weekly_event, family, repo):
        EventScopeHandler.handle_delete_scope(weekly_event, UpdateScope.THIS, date(2024, 3, 24), repo)

        EventScopeHandler.handle_update_scope(
            repo.find_by_id("e1"),
            UpdateEventCommand(title="Renamed"),
            UpdateScope.FUTURE,
            date(2024, 3, 17),
            family,
            repo,
        )

        assert [e.original_date for e in repo.get_exceptions("e1")] == [date(2024, 3, 24)]

    def test_update_all_clears_exceptions(self, weekly_event, family, repo):
        EventScopeHandler.handle_delete_scope(weekly_event, UpdateScope.THIS, date(2024, 3, 10), repo)
        assert len(repo.get_exceptions("e1")) == 1

        outcome = EventScopeHandler.handle_update_scope(
            repo.find_by_id("e1"),
            UpdateEventCommand(title="Renamed"),
            UpdateScope.ALL,
            None,
            family,
            repo,
        ).unwrap()

        assert outcome.exceptions_cleared is True
        assert outcome.event.exceptions == ()
        assert repo.get_exceptions("e1") == []
        assert repo.find_by_id("e1").title == "Renamed"
        assert march_days(repo, "e1") == [3, 10, 17, 24, 31]

    def test_update_all_with_null_pattern_makes_one_off(self, weekly_event, family, repo):
        outcome = EventScopeHandler.handle_update_scope(
            weekly_event,
            UpdateEventCommand(recurrence_pattern=None),
            UpdateScope.ALL,
            None,
            family,
            repo,
        ).unwrap()

        assert outcome.event.recurrence_pattern is None
        assert march_days(repo, "e1") == [3]

    def test_update_moves_series_only_with_both_times(self, weekly_event, family, repo):
        outcome = EventScopeHandler.handle_update_scope(
            weekly_event,
            UpdateEventCommand(start_time=datetime(2024, 3, 3, 15, 0)),
            UpdateScope.ALL,
            None,
            family,
            repo,
        ).unwrap()

        assert outcome.event.start_time == datetime(2024, 3, 3, 16, 0)

    def test_update_participants_resolved_against_family(self, one_off_event, family, repo):
        command = UpdateEventCommand(participants=[
            ParticipantReference(id="c1", type="child"),
            ParticipantReference(id="u1", type="user"),
        ])

        outcome = EventScopeHandler.handle_update_scope(
            one_off_event, command, UpdateScope.ALL, None, family, repo
        ).unwrap()

        assert [p.name for p in outcome.event.participants] == ["Lea", "Alex Martin"]
        assert outcome.event.updated_at is not None

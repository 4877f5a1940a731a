"""
Unit tests for ParticipantService and EventAuthorization.
"""

from datetime import datetime

import pytest

from backend.src.domain.event import Event, ParticipantReference, ParticipantType
from backend.src.domain.family import Child, Family, FamilyMember
from backend.src.services.event_authorization import EventAuthorization
from backend.src.services.exceptions import ForbiddenError, NotFoundError, ValidationError
from backend.src.services.participant_service import ParticipantService


@pytest.fixture
def family():
    return Family(
        id="fam_1",
        name="Martin",
        members=[
            FamilyMember(id="mem_1", name="Alex Martin", role="admin", user_id="usr_alex",
                         avatar_url="https://example.com/alex.png"),
            FamilyMember(id="mem_2", name="Sam Martin", role="member", user_id="usr_sam"),
        ],
        children=[Child(id="chd_lea", name="Lea")],
    )


class TestBuildParticipants:
    """Tests for participant resolution."""

    def test_resolves_names_and_keeps_order(self, family):
        refs = [
            ParticipantReference(id="chd_lea", type="child"),
            ParticipantReference(id="usr_alex", type="user"),
        ]

        participants = ParticipantService.build_participants(family, refs)

        assert [(p.id, p.name, p.type) for p in participants] == [
            ("chd_lea", "Lea", ParticipantType.CHILD),
            ("usr_alex", "Alex Martin", ParticipantType.USER),
        ]
        assert participants[1].avatar_url == "https://example.com/alex.png"
        assert participants[0].avatar_url is None

    def test_unknown_references_dropped(self, family):
        refs = [
            ParticipantReference(id="usr_ghost", type="user"),
            ParticipantReference(id="usr_sam", type="user"),
        ]
        assert [p.id for p in ParticipantService.build_participants(family, refs)] == ["usr_sam"]

    def test_type_must_match(self, family):
        """A child id sent as a user does not resolve."""
        refs = [ParticipantReference(id="chd_lea", type="user")]
        assert ParticipantService.build_participants(family, refs) == []


class TestValidateParticipants:
    """Tests for participant validation."""

    def test_all_known(self, family):
        refs = [
            ParticipantReference(id="usr_sam", type="user"),
            ParticipantReference(id="chd_lea", type="child"),
        ]
        assert ParticipantService.validate_participants(family, refs).is_ok

    def test_empty_list_is_valid(self, family):
        assert ParticipantService.validate_participants(family, []).is_ok

    @pytest.mark.parametrize("ref", [
        ParticipantReference(id="usr_ghost", type="user"),
        ParticipantReference(id="chd_ghost", type="child"),
        ParticipantReference(id="usr_alex", type="child"),
    ])
    def test_unknown_participant(self, family, ref):
        result = ParticipantService.validate_participants(family, [ref])

        assert result.is_err
        assert isinstance(result.error, ValidationError)
        assert ref.id in result.error.message
        assert result.error.fields == {"participants": "invalid"}


class TestEventAuthorization:
    """Tests for family access and event ownership guards."""

    def test_family_access_granted(self, family):
        result = EventAuthorization.check_family_access(family, "fam_1", "usr_sam")
        assert result.is_ok
        assert result.value is family

    def test_missing_family(self):
        result = EventAuthorization.check_family_access(None, "fam_x", "usr_alex")

        assert isinstance(result.error, NotFoundError)
        assert result.error.resource == "Family"
        assert result.error.status_code == 404

    def test_non_member(self, family):
        result = EventAuthorization.check_family_access(family, "fam_1", "usr_zoe")
        assert isinstance(result.error, ForbiddenError)

    def test_event_belongs_to_family(self):
        event = Event.create(
            id="evt_1",
            family_id="fam_1",
            title="Dentist",
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 0),
        )

        assert EventAuthorization.check_event_belongs_to_family(event, "fam_1", "evt_1").value is event

        foreign = EventAuthorization.check_event_belongs_to_family(event, "fam_2", "evt_1")
        missing = EventAuthorization.check_event_belongs_to_family(None, "fam_2", "evt_1")

        # Same error either way, so other families' events cannot be probed
        assert isinstance(foreign.error, NotFoundError)
        assert foreign.error.message == missing.error.message

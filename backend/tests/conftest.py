"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions (in-memory SQLite)
- Sample data factories (users, families, children, events)
- A populated calendar family
- FastAPI test client
"""

import itertools
import os
from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['FAMCAL_DB_URL'] = 'sqlite://'
os.environ['FAMCAL_ENV'] = 'test'

from backend.src.models import (
    Base,
    Child,
    Event,
    EventParticipant,
    Family,
    FamilyMember,
    User,
)


_email_counter = itertools.count(1)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    from sqlalchemy import event

    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    # This must be set for each connection
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_user(test_db_session):
    """Factory for creating sample User models in the database."""
    def _create(full_name='Alex Martin', email=None, avatar_url=None):
        user = User(
            email=email or f'user{next(_email_counter)}@example.com',
            full_name=full_name,
            avatar_url=avatar_url,
        )
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def sample_family(test_db_session):
    """
    Factory for creating sample Family models in the database.

    members is a list of (User, role) pairs.
    """
    def _create(name='Martin', members=None):
        family = Family(name=name)
        test_db_session.add(family)
        test_db_session.flush()

        for user, role in members or []:
            test_db_session.add(FamilyMember(family_id=family.id, user_id=user.id, role=role))

        test_db_session.commit()
        test_db_session.refresh(family)
        return family
    return _create


@pytest.fixture
def sample_child(test_db_session):
    """Factory for creating sample Child models in the database."""
    def _create(family, name='Lea'):
        child = Child(family_id=family.id, name=name)
        test_db_session.add(child)
        test_db_session.commit()
        test_db_session.refresh(child)
        return child
    return _create


@pytest.fixture
def sample_event(test_db_session):
    """
    Factory for creating sample Event models in the database.

    participants is a list of User and Child models, kept in order.
    """
    def _create(
        family,
        title='Swimming lesson',
        start_time=datetime(2024, 3, 3, 16, 0),
        end_time=datetime(2024, 3, 3, 17, 0),
        event_type='elastic',
        recurrence_pattern=None,
        participants=None,
        is_synced=False,
        external_calendar_id=None,
    ):
        event = Event(
            family_id=family.id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            event_type=event_type,
            recurrence_pattern=recurrence_pattern,
            is_synced=is_synced,
            external_calendar_id=external_calendar_id,
        )
        for position, participant in enumerate(participants or []):
            if isinstance(participant, User):
                event.participants.append(EventParticipant(
                    participant_type='user', user_id=participant.id, position=position
                ))
            else:
                event.participants.append(EventParticipant(
                    participant_type='child', child_id=participant.id, position=position
                ))
        test_db_session.add(event)
        test_db_session.commit()
        test_db_session.refresh(event)
        return event
    return _create


@pytest.fixture
def calendar_family(sample_user, sample_family, sample_child):
    """
    A family with two adults and a child, plus an outsider.

    Returns a namespace of ORM rows: family, alex (admin), sam (member),
    lea (child) and zoe (user outside the family).
    """
    alex = sample_user(full_name='Alex Martin', avatar_url='https://example.com/alex.png')
    sam = sample_user(full_name='Sam Martin')
    zoe = sample_user(full_name='Zoe Outsider')
    family = sample_family(name='Martin', members=[(alex, 'admin'), (sam, 'member')])
    lea = sample_child(family, name='Lea')
    return SimpleNamespace(family=family, alex=alex, sam=sam, lea=lea, zoe=zoe)


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_client(test_db_session):
    """Create a test client for FastAPI application."""
    from fastapi.testclient import TestClient
    from backend.src.config.settings import AppSettings
    from backend.src.db.database import get_db
    from backend.src.main import create_app

    app = create_app(
        AppSettings(FAMCAL_DB_URL='sqlite://', FAMCAL_ENV='test'),
        create_tables=False,
    )

    # Override dependencies
    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()

"""
Database connection and session management.

The engine and session factory are built explicitly by the application
factory (create_app) and kept on app.state; request handlers obtain a
session through the get_db dependency, which reads the factory from the
application serving the request.
"""

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from backend.src.config.settings import AppSettings
from backend.src.utils.logging_config import get_logger


logger = get_logger("db")


def create_db_engine(settings: AppSettings) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database.

    SQLite (tests, local development) shares one connection across threads
    and enforces foreign keys; PostgreSQL gets a connection pool.

    Args:
        settings: Application settings (db_url, db_echo)

    Returns:
        Configured engine
    """
    if settings.is_sqlite:
        # SQLite doesn't support pool_size, max_overflow, or pool_recycle
        engine = create_engine(
            settings.db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.db_echo,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_engine(
            settings.db_url,
            pool_size=20,          # Maximum connections in pool
            max_overflow=10,       # Additional connections beyond pool_size
            pool_pre_ping=True,    # Verify connections before checkout
            pool_recycle=3600,     # Recycle connections after 1 hour
            echo=settings.db_echo,
        )

    logger.info(f"Database engine created ({engine.dialect.name})")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Yields:
        Session: SQLAlchemy session from the application's session factory

    Usage:
        @router.get("/events")
        def list_events(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """
    Create all tables.

    Used for SQLite development databases and tests. For production, use
    Alembic migrations instead.
    """
    from backend.src.models import Base
    Base.metadata.create_all(bind=engine)

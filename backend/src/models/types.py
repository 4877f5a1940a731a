"""
Custom SQLAlchemy types for cross-database compatibility.

Recurrence patterns are stored as JSON documents; this type keeps them in
JSONB on PostgreSQL and in plain JSON on SQLite (tests, local development).
"""

from sqlalchemy import TypeDecorator, JSON
from sqlalchemy.dialects.postgresql import JSONB


class JSONBType(TypeDecorator):
    """JSONB on PostgreSQL, JSON on every other dialect."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

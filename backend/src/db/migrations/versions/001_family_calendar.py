"""Family calendar schema

Revision ID: 001_family_calendar
Revises:
Create Date: 2024-02-20

Creates the family calendar tables:
- users, families, family_members, children
- events (one row per one-off event or recurring series)
- event_participants (user or child per row, ordered)
- event_exceptions (per-occurrence overrides, one per event and date)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_family_calendar'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column() -> sa.Column:
    return sa.Column(
        'uuid',
        postgresql.UUID(as_uuid=True).with_variant(sa.LargeBinary(16), 'sqlite'),
        nullable=False
    )


def upgrade() -> None:
    """
    Create the family calendar tables.

    Every externally addressed table carries a uuid column (UUIDv7, exposed
    as a prefixed GUID: usr, fam, mem, chd, evt, exc).
    """
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_users_uuid', 'users', ['uuid'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'families',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_families_uuid', 'families', ['uuid'], unique=True)

    op.create_table(
        'family_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('family_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['family_id'], ['families.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('family_id', 'user_id', name='uq_family_members_family_user'),
    )
    op.create_index('ix_family_members_uuid', 'family_members', ['uuid'], unique=True)
    op.create_index('ix_family_members_family_id', 'family_members', ['family_id'])
    op.create_index('ix_family_members_user_id', 'family_members', ['user_id'])

    op.create_table(
        'children',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('family_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['family_id'], ['families.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_children_uuid', 'children', ['uuid'], unique=True)
    op.create_index('ix_children_family_id', 'children', ['family_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('family_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('is_all_day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('event_type', sa.String(length=20), nullable=False, server_default='elastic'),
        sa.Column(
            'recurrence_pattern',
            postgresql.JSONB().with_variant(sa.JSON(), 'sqlite'),
            nullable=True
        ),
        sa.Column('is_synced', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('external_calendar_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['family_id'], ['families.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_events_uuid', 'events', ['uuid'], unique=True)
    op.create_index('ix_events_family_id', 'events', ['family_id'])
    op.create_index('idx_events_family_start', 'events', ['family_id', 'start_time'])

    op.create_table(
        'event_participants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('participant_type', sa.String(length=20), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('child_id', sa.Integer(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "(user_id IS NOT NULL AND child_id IS NULL) OR "
            "(user_id IS NULL AND child_id IS NOT NULL)",
            name='ck_event_participants_one_target'
        ),
    )
    op.create_index('ix_event_participants_event_id', 'event_participants', ['event_id'])
    op.create_index('ix_event_participants_user_id', 'event_participants', ['user_id'])
    op.create_index('ix_event_participants_child_id', 'event_participants', ['child_id'])

    op.create_table(
        'event_exceptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('original_date', sa.Date(), nullable=False),
        sa.Column('new_start_time', sa.DateTime(), nullable=True),
        sa.Column('new_end_time', sa.DateTime(), nullable=True),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('event_id', 'original_date', name='uq_event_exceptions_event_date'),
    )
    op.create_index('ix_event_exceptions_uuid', 'event_exceptions', ['uuid'], unique=True)
    op.create_index('ix_event_exceptions_event_id', 'event_exceptions', ['event_id'])


def downgrade() -> None:
    """Drop the family calendar tables in reverse dependency order."""
    op.drop_table('event_exceptions')
    op.drop_table('event_participants')
    op.drop_table('events')
    op.drop_table('children')
    op.drop_table('family_members')
    op.drop_table('families')
    op.drop_table('users')

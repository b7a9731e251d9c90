"""Create training events schema

Revision ID: 3f7a1c9e2b40
Revises:
Create Date: 2026-10-18

Creates the locally owned tables. Users, lesson plans and addresses live in
external directories and are referenced by ID only:
- events: Scheduled training events and their lifecycle state
- event_participants: Registration, RSVP and check-in per (event, user)
- votes: Lesson plan votes per (event, user)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from src.models.base import GUID, UTCDateTime


# revision identifiers, used by Alembic.
revision: str = '3f7a1c9e2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('events',
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('start_time', UTCDateTime(), nullable=False),
        sa.Column('started', sa.Boolean(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_time', UTCDateTime(), nullable=True),
        sa.Column('private', sa.Boolean(), nullable=False),
        sa.Column('event_type', sa.Enum('ground_school', 'seminar', 'flight_training', 'fly_in', 'meeting', 'other', name='eventtype', native_enum=False, length=50), nullable=False),
        sa.Column('lead_id', GUID(), nullable=False),
        sa.Column('lesson_plan_id', GUID(), nullable=True),
        sa.Column('address_id', GUID(), nullable=True),
        sa.Column('calendar_url', sa.String(length=255), nullable=True),
        sa.Column('checkin_code', sa.String(length=4), nullable=True),
        sa.Column('checkin_code_required', sa.Boolean(), nullable=False),
        sa.Column('id', GUID(), nullable=False),
        sa.Column('created_at', UTCDateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=True),
        sa.CheckConstraint('NOT completed OR started', name='ck_event_completed_started'),
        sa.CheckConstraint('checkin_code IS NULL OR length(checkin_code) = 4', name='ck_event_checkin_code_length'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('events', schema=None) as batch_op:
        batch_op.create_index('idx_event_start_time', ['start_time'], unique=False)
        batch_op.create_index('idx_event_lesson_plan', ['lesson_plan_id'], unique=False)
        batch_op.create_index('idx_event_type_private_start', ['event_type', 'private', 'start_time'], unique=False)

    op.create_table('event_participants',
        sa.Column('event_id', GUID(), nullable=False),
        sa.Column('user_id', GUID(), nullable=False),
        sa.Column('confirmed', sa.Boolean(), nullable=True),
        sa.Column('declined', sa.Boolean(), nullable=True),
        sa.Column('confirmation_time', UTCDateTime(), nullable=True),
        sa.Column('checked_in', sa.Boolean(), nullable=True),
        sa.Column('checkin_time', UTCDateTime(), nullable=True),
        sa.Column('member', sa.Boolean(), nullable=True),
        sa.Column('id', GUID(), nullable=False),
        sa.Column('created_at', UTCDateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=True),
        sa.CheckConstraint('NOT (confirmed AND declined)', name='ck_participant_rsvp'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_participant')
    )
    with op.batch_alter_table('event_participants', schema=None) as batch_op:
        batch_op.create_index('idx_participant_event', ['event_id'], unique=False)
        batch_op.create_index('idx_participant_user', ['user_id'], unique=False)

    op.create_table('votes',
        sa.Column('event_id', GUID(), nullable=False),
        sa.Column('user_id', GUID(), nullable=False),
        sa.Column('lesson_plan_id', GUID(), nullable=False),
        sa.Column('id', GUID(), nullable=False),
        sa.Column('created_at', UTCDateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_vote_event_user')
    )
    with op.batch_alter_table('votes', schema=None) as batch_op:
        batch_op.create_index('idx_vote_event', ['event_id'], unique=False)


def downgrade() -> None:
    with op.batch_alter_table('votes', schema=None) as batch_op:
        batch_op.drop_index('idx_vote_event')
    op.drop_table('votes')

    with op.batch_alter_table('event_participants', schema=None) as batch_op:
        batch_op.drop_index('idx_participant_user')
        batch_op.drop_index('idx_participant_event')
    op.drop_table('event_participants')

    with op.batch_alter_table('events', schema=None) as batch_op:
        batch_op.drop_index('idx_event_type_private_start')
        batch_op.drop_index('idx_event_lesson_plan')
        batch_op.drop_index('idx_event_start_time')
    op.drop_table('events')

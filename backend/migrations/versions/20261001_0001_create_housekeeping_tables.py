"""Create housekeeping tables

Revision ID: 5f1c2a9d0b01
Revises:
Create Date: 2026-10-01 00:01:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5f1c2a9d0b01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('staff_member',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('hotel', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table('room',
        sa.Column('room_id', sa.UUID(), nullable=False),
        sa.Column('hotel', sa.String(length=255), nullable=False),
        sa.Column('room_number', sa.String(length=20), nullable=False),
        sa.Column('floor_number', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('is_dnd', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('dnd_marked_at', sa.DateTime(), nullable=True),
        sa.Column('dnd_marked_by', sa.UUID(), nullable=True),
        sa.Column('last_cleaned_at', sa.DateTime(), nullable=True),
        sa.Column('last_cleaned_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('room_id'),
    )

    op.create_table('staff_attendance',
        sa.Column('attendance_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('check_in_time', sa.DateTime(), nullable=False),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('break_started_at', sa.DateTime(), nullable=True),
        sa.Column('break_ended_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['staff_member.user_id'], ),
        sa.PrimaryKeyConstraint('attendance_id'),
    )
    op.create_index('ix_staff_attendance_user_day', 'staff_attendance', ['user_id', 'work_date'])

    op.create_table('room_assignment',
        sa.Column('assignment_id', sa.UUID(), nullable=False),
        sa.Column('room_id', sa.UUID(), nullable=False),
        sa.Column('assigned_to', sa.UUID(), nullable=False),
        sa.Column('assigned_by', sa.UUID(), nullable=True),
        sa.Column('assignment_date', sa.Date(), nullable=False),
        sa.Column('assignment_type', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('ready_to_clean', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completion_photos', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('dnd_photos', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('is_dnd', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('dnd_marked_at', sa.DateTime(), nullable=True),
        sa.Column('dnd_marked_by', sa.UUID(), nullable=True),
        sa.Column('supervisor_approved', sa.Boolean(), nullable=True),
        sa.Column('supervisor_approved_by', sa.UUID(), nullable=True),
        sa.Column('supervisor_approved_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['room.room_id'], ),
        sa.ForeignKeyConstraint(['assigned_to'], ['staff_member.user_id'], ),
        sa.PrimaryKeyConstraint('assignment_id'),
        sa.CheckConstraint(
            "status IN ('assigned', 'in_progress', 'completed', 'cancelled')",
            name='ck_room_assignment_status',
        ),
        sa.CheckConstraint("priority BETWEEN 1 AND 3", name='ck_room_assignment_priority'),
        sa.CheckConstraint("NOT is_dnd OR status = 'completed'", name='ck_room_assignment_dnd_completed'),
    )
    # Serves the single-active-task check and the work queue read
    op.create_index('ix_room_assignment_worker_day_status', 'room_assignment',
                    ['assigned_to', 'assignment_date', 'status'])

    op.create_table('event_log',
        sa.Column('event_id', sa.UUID(), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('assignment_id', sa.UUID(), nullable=True),
        sa.Column('room_id', sa.UUID(), nullable=True),
        sa.Column('actor_user_id', sa.UUID(), nullable=True),
        sa.Column('payload_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('event_id'),
    )
    op.create_index('idx_event_log_assignment', 'event_log', ['assignment_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_event_log_assignment', table_name='event_log')
    op.drop_table('event_log')
    op.drop_index('ix_room_assignment_worker_day_status', table_name='room_assignment')
    op.drop_table('room_assignment')
    op.drop_index('ix_staff_attendance_user_day', table_name='staff_attendance')
    op.drop_table('staff_attendance')
    op.drop_table('room')
    op.drop_table('staff_member')

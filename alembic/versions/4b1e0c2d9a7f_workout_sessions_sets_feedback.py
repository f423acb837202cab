"""users, workout sessions (with flow anchors), sets, feedback

Revision ID: 4b1e0c2d9a7f
Revises:
Create Date: 2026-10-19 10:12:41.118204

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# define the enum types once so we can create/drop them explicitly
session_status = postgresql.ENUM('in_progress', 'completed', name='session_status', create_type=False)
session_phase = postgresql.ENUM('ready', 'executing', 'logging', 'resting', name='session_phase', create_type=False)


# revision identifiers, used by Alembic.
revision: str = '4b1e0c2d9a7f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1) enum types
    session_status.create(op.get_bind(), checkfirst=True)
    session_phase.create(op.get_bind(), checkfirst=True)

    # 2) users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 3) workout_sessions
    op.create_table(
        'workout_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(length=120), nullable=True),
        sa.Column('status', session_status, nullable=False, server_default='in_progress'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('phase', session_phase, nullable=False, server_default='ready'),
        sa.Column('phase_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resting_set_id', sa.Integer(), nullable=True),
        sa.Column('rest_target_seconds', sa.Integer(), nullable=True),
        sa.Column('draft', sa.JSON(), nullable=True),
    )

    # 4) workout_sets
    op.create_table(
        'workout_sets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('workout_sessions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('exercise_name', sa.String(length=120), nullable=False),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('weight', sa.Numeric(10, 2), nullable=False),
        sa.Column('reps', sa.Integer(), nullable=False),
        sa.Column('rpe', sa.Numeric(3, 1), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rest_time', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    # 5) workout_feedback
    op.create_table(
        'workout_feedback',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('workout_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('feedback_text', sa.Text(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_workout_feedback_session_id', 'workout_feedback', ['session_id'], unique=True)


def downgrade() -> None:
    # drop child tables in reverse order
    op.drop_index('ix_workout_feedback_session_id', table_name='workout_feedback')
    op.drop_table('workout_feedback')
    op.drop_table('workout_sets')
    op.drop_table('workout_sessions')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')

    # finally drop enum types
    session_phase.drop(op.get_bind(), checkfirst=True)
    session_status.drop(op.get_bind(), checkfirst=True)

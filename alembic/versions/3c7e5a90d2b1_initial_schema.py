"""Initial schema: gyms, clients, programs, schedules, workouts

Revision ID: 3c7e5a90d2b1
Revises:
Create Date: 2026-03-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c7e5a90d2b1'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('role', _enum('role', 'ADMIN', 'TRAINER', 'USER'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('jti', sa.String(), nullable=False),
        sa.Column('token_hash', sa.String(), nullable=False),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('replaced_by_jti', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_refresh_tokens_expires_at'), 'refresh_tokens', ['expires_at'], unique=False)
    op.create_index(op.f('ix_refresh_tokens_jti'), 'refresh_tokens', ['jti'], unique=True)
    op.create_index(op.f('ix_refresh_tokens_user_id'), 'refresh_tokens', ['user_id'], unique=False)

    op.create_table(
        'gyms',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('owner_id', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'gym_memberships',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('gym_id', sa.Uuid(), nullable=False),
        sa.Column('role', _enum('gymrole', 'OWNER', 'TRAINER', 'CLIENT'), nullable=False),
        sa.Column('status', _enum('membershipstatus', 'ACTIVE', 'INACTIVE'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'gym_id', name='uq_gym_membership_user_gym')
    )
    op.create_index(op.f('ix_gym_memberships_gym_id'), 'gym_memberships', ['gym_id'], unique=False)
    op.create_index(op.f('ix_gym_memberships_user_id'), 'gym_memberships', ['user_id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('gym_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('target_id', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_gym_id'), 'audit_logs', ['gym_id'], unique=False)
    op.create_index(op.f('ix_audit_logs_timestamp'), 'audit_logs', ['timestamp'], unique=False)

    op.create_table(
        'locations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gym_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_locations_gym_id'), 'locations', ['gym_id'], unique=False)

    op.create_table(
        'benchmark_templates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('benchmark_type', _enum('benchmarktype', 'LIFT', 'OTHER'), nullable=False),
        sa.Column('tags', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'activity_groups',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'activity_templates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('group_id', sa.Uuid(), nullable=False),
        sa.Column('benchmark_template_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['benchmark_template_id'], ['benchmark_templates.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['group_id'], ['activity_groups.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_activity_templates_group_id'), 'activity_templates', ['group_id'], unique=False)

    # clients <-> programs reference each other; the cross keys are added once both exist
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gym_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('membership_status', _enum('clientstatus', 'ACTIVE', 'INACTIVE', 'SUSPENDED'), nullable=False),
        sa.Column('program_id', sa.Uuid(), nullable=True),
        sa.Column('current_block', sa.Integer(), nullable=False),
        sa.Column('current_week', sa.Integer(), nullable=False),
        sa.Column('program_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_progression_update', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_clients_email'), 'clients', ['email'], unique=False)
    op.create_index(op.f('ix_clients_gym_id'), 'clients', ['gym_id'], unique=False)
    op.create_index(op.f('ix_clients_user_id'), 'clients', ['user_id'], unique=False)

    op.create_table(
        'programs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gym_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('blocks', sa.JSON(), nullable=False),
        sa.Column('is_template', sa.Boolean(), nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=True),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.ForeignKeyConstraint(['template_id'], ['programs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_programs_gym_id'), 'programs', ['gym_id'], unique=False)
    op.create_index(op.f('ix_programs_is_template'), 'programs', ['is_template'], unique=False)
    op.create_index(op.f('ix_programs_template_id'), 'programs', ['template_id'], unique=False)
    op.create_foreign_key(
        'fk_clients_program_id_programs', 'clients', 'programs', ['program_id'], ['id'], ondelete='SET NULL'
    )
    op.create_foreign_key(
        'fk_programs_client_id_clients', 'programs', 'clients', ['client_id'], ['id'], ondelete='SET NULL'
    )

    op.create_table(
        'client_benchmarks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('benchmark_type', _enum('benchmarktype', 'LIFT', 'OTHER'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('value', sa.Float(), nullable=True),
        sa.Column('unit', sa.String(), nullable=True),
        sa.Column('measurement_notes', sa.Text(), nullable=True),
        sa.Column('recorded_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_current', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['template_id'], ['benchmark_templates.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_client_benchmarks_client_id'), 'client_benchmarks', ['client_id'], unique=False)
    op.create_index(op.f('ix_client_benchmarks_is_current'), 'client_benchmarks', ['is_current'], unique=False)
    op.create_index(op.f('ix_client_benchmarks_template_id'), 'client_benchmarks', ['template_id'], unique=False)

    op.create_table(
        'weekly_schedules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gym_id', sa.Uuid(), nullable=False),
        sa.Column('coach_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_template', sa.Boolean(), nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=True),
        sa.Column('week_start_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['users.id']),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.ForeignKeyConstraint(['template_id'], ['weekly_schedules.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_weekly_schedules_coach_id'), 'weekly_schedules', ['coach_id'], unique=False)
    op.create_index(op.f('ix_weekly_schedules_gym_id'), 'weekly_schedules', ['gym_id'], unique=False)
    op.create_index(op.f('ix_weekly_schedules_is_template'), 'weekly_schedules', ['is_template'], unique=False)
    op.create_index(op.f('ix_weekly_schedules_template_id'), 'weekly_schedules', ['template_id'], unique=False)

    op.create_table(
        'schedule_time_slots',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('schedule_id', sa.Uuid(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('enrolled_count', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('activity_type', sa.String(), nullable=True),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_time_slot_day_of_week'),
        sa.CheckConstraint('enrolled_count <= max_capacity', name='ck_time_slot_capacity'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['schedule_id'], ['weekly_schedules.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_schedule_time_slots_location_id'), 'schedule_time_slots', ['location_id'], unique=False)
    op.create_index(op.f('ix_schedule_time_slots_schedule_id'), 'schedule_time_slots', ['schedule_id'], unique=False)

    op.create_table(
        'time_slot_enrollments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('time_slot_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['time_slot_id'], ['schedule_time_slots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('time_slot_id', 'client_id', name='uq_time_slot_enrollment')
    )
    op.create_index(op.f('ix_time_slot_enrollments_client_id'), 'time_slot_enrollments', ['client_id'], unique=False)
    op.create_index(op.f('ix_time_slot_enrollments_time_slot_id'), 'time_slot_enrollments', ['time_slot_id'], unique=False)

    op.create_table(
        'workout_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gym_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('program_id', sa.Uuid(), nullable=False),
        sa.Column('block', sa.Integer(), nullable=False),
        sa.Column('week', sa.Integer(), nullable=False),
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['gym_id'], ['gyms.id']),
        sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_workout_sessions_client_id'), 'workout_sessions', ['client_id'], unique=False)
    op.create_index(op.f('ix_workout_sessions_gym_id'), 'workout_sessions', ['gym_id'], unique=False)
    op.create_index(op.f('ix_workout_sessions_is_active'), 'workout_sessions', ['is_active'], unique=False)

    op.create_table(
        'completed_sets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('activity_id', sa.String(), nullable=False),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['workout_sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'activity_id', 'set_number', name='uq_completed_set')
    )
    op.create_index(op.f('ix_completed_sets_session_id'), 'completed_sets', ['session_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('completed_sets')
    op.drop_table('workout_sessions')
    op.drop_table('time_slot_enrollments')
    op.drop_table('schedule_time_slots')
    op.drop_table('weekly_schedules')
    op.drop_table('client_benchmarks')
    op.drop_constraint('fk_programs_client_id_clients', 'programs', type_='foreignkey')
    op.drop_constraint('fk_clients_program_id_programs', 'clients', type_='foreignkey')
    op.drop_table('programs')
    op.drop_table('clients')
    op.drop_table('activity_templates')
    op.drop_table('activity_groups')
    op.drop_table('benchmark_templates')
    op.drop_table('locations')
    op.drop_table('audit_logs')
    op.drop_table('gym_memberships')
    op.drop_table('gyms')
    op.drop_table('refresh_tokens')
    op.drop_table('users')

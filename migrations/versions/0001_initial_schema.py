"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2024-03-04 08:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('document_number', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=True),
        sa.Column('sensor_id', sa.Integer(), nullable=True),
        sa.Column('has_restricted_area_access', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_workers_document_number'), 'workers', ['document_number'], unique=True)
    op.create_index(op.f('ix_workers_sensor_id'), 'workers', ['sensor_id'], unique=True)

    op.create_table(
        'badges',
        sa.Column('uid', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=True),
        sa.Column('last_seen', sa.DateTime(), nullable=True),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['workers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('uid'),
    )
    op.create_index(op.f('ix_badges_owner_id'), 'badges', ['owner_id'], unique=False)

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=True),
        sa.Column('worker_snapshot_name', sa.String(length=200), nullable=True),
        sa.Column('badge_uid', sa.String(length=32), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('check_in_time', sa.DateTime(), nullable=False),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('worked_duration_seconds', sa.BigInteger(), nullable=True),
        sa.Column('is_late', sa.Boolean(), nullable=False),
        sa.Column('lateness_duration_seconds', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('CHECKED_IN', 'CHECKED_OUT')", name='chk_attendance_status'),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_attendance_worker_date', 'attendance_records', ['worker_id', 'attendance_date'],
                    unique=False)
    op.create_index(op.f('ix_attendance_records_attendance_date'), 'attendance_records', ['attendance_date'],
                    unique=False)
    op.create_index(op.f('ix_attendance_records_status'), 'attendance_records', ['status'], unique=False)
    op.create_index(
        'uq_attendance_open_session', 'attendance_records', ['worker_id'], unique=True,
        sqlite_where=sa.text("status = 'CHECKED_IN'"),
        postgresql_where=sa.text("status = 'CHECKED_IN'"),
    )

    op.create_table(
        'access_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=True),
        sa.Column('worker_snapshot_name', sa.String(length=200), nullable=True),
        sa.Column('sensor_id', sa.Integer(), nullable=True),
        sa.Column('access_granted', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('access_time', sa.DateTime(), nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('GRANTED', 'DENIED')", name='chk_access_status'),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_access_logs_access_time'), 'access_logs', ['access_time'], unique=False)
    op.create_index(op.f('ix_access_logs_worker_id'), 'access_logs', ['worker_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_access_logs_worker_id'), table_name='access_logs')
    op.drop_index(op.f('ix_access_logs_access_time'), table_name='access_logs')
    op.drop_table('access_logs')
    op.drop_index('uq_attendance_open_session', table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_status'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_attendance_date'), table_name='attendance_records')
    op.drop_index('idx_attendance_worker_date', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index(op.f('ix_badges_owner_id'), table_name='badges')
    op.drop_table('badges')
    op.drop_index(op.f('ix_workers_sensor_id'), table_name='workers')
    op.drop_index(op.f('ix_workers_document_number'), table_name='workers')
    op.drop_table('workers')

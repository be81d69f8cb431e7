"""create_attendance_tables

Revision ID: a3f1c9d2e7b4
Revises:
Create Date: 2025-11-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a3f1c9d2e7b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'trainings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('location_name', sa.String(length=200), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('geofence_radius', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('qr_token', sa.String(length=100), nullable=True),
        sa.Column('qr_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('qr_generated_date', sa.Date(), nullable=True),
        sa.Column('qr_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('geofence_radius > 0', name='ck_trainings_radius_positive'),
        sa.CheckConstraint('end_date >= start_date', name='ck_trainings_date_range'),
    )

    op.create_table(
        'trainees',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('phone', sa.String(length=100), nullable=True),
        sa.Column('posting_location', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_trainees_user_id', 'trainees', ['user_id'], unique=True)

    op.create_table(
        'training_enrollments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('trainee_id', sa.Integer(), sa.ForeignKey('trainees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('training_id', sa.Integer(), sa.ForeignKey('trainings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('trainee_id', 'training_id', name='uq_enrollment_trainee_training'),
    )
    op.create_index('idx_enrollments_training', 'training_enrollments', ['training_id'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('trainee_id', sa.Integer(), sa.ForeignKey('trainees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('training_id', sa.Integer(), sa.ForeignKey('trainings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('check_in_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('accuracy_meters', sa.Float(), nullable=True),
        sa.Column('distance_meters', sa.Float(), nullable=True),
        sa.Column('is_within_geofence', sa.Boolean(), nullable=True),
        sa.Column('qr_token', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='present'),
        # The store-level guard against double check-in on concurrent scans
        sa.UniqueConstraint('trainee_id', 'training_id', 'date', name='uq_attendance_trainee_training_date'),
    )
    op.create_index('idx_attendance_training_date', 'attendance', ['training_id', 'date'])


def downgrade():
    op.drop_index('idx_attendance_training_date', table_name='attendance')
    op.drop_table('attendance')
    op.drop_index('idx_enrollments_training', table_name='training_enrollments')
    op.drop_table('training_enrollments')
    op.drop_index('ix_trainees_user_id', table_name='trainees')
    op.drop_table('trainees')
    op.drop_table('trainings')

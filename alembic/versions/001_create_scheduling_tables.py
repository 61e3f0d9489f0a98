"""create doctors, slots and appointments tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CHANNEL_ENUM = sa.Enum('ONLINE', 'CLINIC', name='channel')
STATUS_ENUM = sa.Enum('PENDING', 'ACCEPTED', 'RESCHEDULED', 'COMPLETED', 'CANCELLED', name='appointmentstatus')
PAYMENT_ENUM = sa.Enum('CASH', 'ONLINE', name='paymentmethod')
# Reuses the type created with the slots table
APPOINTMENT_CHANNEL_ENUM = postgresql.ENUM('ONLINE', 'CLINIC', name='channel', create_type=False)


def upgrade() -> None:
    op.create_table(
        'doctors',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('avatar', sa.String(), nullable=True),
        sa.Column('specialization', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('online_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('clinic_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('auto_accept', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'slots',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('doctor_id', sa.String(), sa.ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('channel', CHANNEL_ENUM, nullable=False),
        sa.Column('slot_date', sa.Date(), nullable=False, index=True),
        sa.Column('slot_time', sa.String(5), nullable=False),
        sa.Column('available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint('doctor_id', 'channel', 'slot_date', 'slot_time', name='uq_slot_key'),
    )

    op.create_table(
        'appointments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('doctor_id', sa.String(), sa.ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('doctor_name', sa.String(), nullable=False),
        sa.Column('doctor_avatar', sa.String(), nullable=True),
        sa.Column('doctor_specialization', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('patient_id', sa.String(), nullable=False, index=True),
        sa.Column('patient_name', sa.String(), nullable=False),
        sa.Column('patient_age', sa.Integer(), nullable=False),
        sa.Column('appointment_date', sa.Date(), nullable=False, index=True),
        sa.Column('appointment_time', sa.String(5), nullable=False),
        sa.Column('channel', APPOINTMENT_CHANNEL_ENUM, nullable=False),
        sa.Column('token', sa.String(5), nullable=False),
        sa.Column('payment_method', PAYMENT_ENUM, nullable=False),
        sa.Column('consultation_fee', sa.Float(), nullable=False),
        sa.Column('status', STATUS_ENUM, nullable=False, index=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('doctor_notes', sa.Text(), nullable=True),
        sa.Column('original_date', sa.Date(), nullable=True),
        sa.Column('original_time', sa.String(5), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.UniqueConstraint('doctor_id', 'token', name='uq_appointment_doctor_token'),
    )


def downgrade() -> None:
    op.drop_table('appointments')
    op.drop_table('slots')
    op.drop_table('doctors')
    op.execute('DROP TYPE IF EXISTS appointmentstatus')
    op.execute('DROP TYPE IF EXISTS paymentmethod')
    op.execute('DROP TYPE IF EXISTS channel')

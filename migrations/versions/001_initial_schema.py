"""Initial schema: doctor_schedules, holidays, booking_intake, follow_up_plans.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

intake_status = sa.Enum("PENDING", "CONFIRMED", "CANCELLED", "FAILED", name="bookingintakestatus")
follow_up_status = sa.Enum("PENDING", "BOOKED", "DONE", "OVERDUE", "CANCELLED", name="followupstatus")


def upgrade() -> None:
    op.create_table(
        "doctor_schedules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.String(), nullable=False),
        sa.Column("clinic_id", sa.String(), nullable=False),
        sa.Column("calendar_id", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("schedule", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("doctor_id", "clinic_id", name="uq_doctor_schedules_pair"),
    )
    op.create_index(op.f("ix_doctor_schedules_doctor_id"), "doctor_schedules", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_doctor_schedules_clinic_id"), "doctor_schedules", ["clinic_id"], unique=False)
    op.create_index(op.f("ix_doctor_schedules_is_active"), "doctor_schedules", ["is_active"], unique=False)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.String(), nullable=True),
        sa.Column("clinic_id", sa.String(), nullable=True),
        sa.Column("holiday_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(), nullable=True),
        sa.Column("end_time", sa.String(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_holidays_doctor_id"), "holidays", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_holidays_clinic_id"), "holidays", ["clinic_id"], unique=False)
    op.create_index(op.f("ix_holidays_holiday_date"), "holidays", ["holiday_date"], unique=False)

    op.create_table(
        "booking_intake",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("status", intake_status, nullable=False),
        sa.Column("patient_user_id", sa.String(), nullable=True),
        sa.Column("doctor_id", sa.String(), nullable=False),
        sa.Column("doctor_name_zh", sa.String(), nullable=False),
        sa.Column("clinic_id", sa.String(), nullable=False),
        sa.Column("clinic_name_zh", sa.String(), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.String(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("patient_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("google_event_id", sa.String(), nullable=True),
        sa.Column("calendar_id", sa.String(), nullable=True),
        sa.Column("failure_reason", sa.String(), nullable=True),
        sa.Column("reschedule_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("last_rescheduled_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_booking_intake_status"), "booking_intake", ["status"], unique=False)
    op.create_index(op.f("ix_booking_intake_patient_user_id"), "booking_intake", ["patient_user_id"], unique=False)
    op.create_index(op.f("ix_booking_intake_google_event_id"), "booking_intake", ["google_event_id"], unique=False)
    op.create_index(op.f("ix_booking_intake_calendar_id"), "booking_intake", ["calendar_id"], unique=False)

    op.create_table(
        "follow_up_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("patient_user_id", sa.String(), nullable=False),
        sa.Column("suggested_date", sa.Date(), nullable=False),
        sa.Column("status", follow_up_status, nullable=False),
        sa.Column("linked_booking_id", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_follow_up_plans_patient_user_id"), "follow_up_plans", ["patient_user_id"], unique=False)
    op.create_index(op.f("ix_follow_up_plans_suggested_date"), "follow_up_plans", ["suggested_date"], unique=False)
    op.create_index(op.f("ix_follow_up_plans_status"), "follow_up_plans", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_follow_up_plans_status"), table_name="follow_up_plans")
    op.drop_index(op.f("ix_follow_up_plans_suggested_date"), table_name="follow_up_plans")
    op.drop_index(op.f("ix_follow_up_plans_patient_user_id"), table_name="follow_up_plans")
    op.drop_table("follow_up_plans")
    op.drop_index(op.f("ix_booking_intake_calendar_id"), table_name="booking_intake")
    op.drop_index(op.f("ix_booking_intake_google_event_id"), table_name="booking_intake")
    op.drop_index(op.f("ix_booking_intake_patient_user_id"), table_name="booking_intake")
    op.drop_index(op.f("ix_booking_intake_status"), table_name="booking_intake")
    op.drop_table("booking_intake")
    op.drop_index(op.f("ix_holidays_holiday_date"), table_name="holidays")
    op.drop_index(op.f("ix_holidays_clinic_id"), table_name="holidays")
    op.drop_index(op.f("ix_holidays_doctor_id"), table_name="holidays")
    op.drop_table("holidays")
    op.drop_index(op.f("ix_doctor_schedules_is_active"), table_name="doctor_schedules")
    op.drop_index(op.f("ix_doctor_schedules_clinic_id"), table_name="doctor_schedules")
    op.drop_index(op.f("ix_doctor_schedules_doctor_id"), table_name="doctor_schedules")
    op.drop_table("doctor_schedules")
    follow_up_status.drop(op.get_bind(), checkfirst=True)
    intake_status.drop(op.get_bind(), checkfirst=True)

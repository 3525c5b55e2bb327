from datetime import UTC, date, datetime
from enum import Enum

from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class BookingIntakeStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_INTAKE_STATUSES = frozenset({BookingIntakeStatus.CANCELLED, BookingIntakeStatus.FAILED})


class BookingIntake(SQLModel, table=True):
    """Shadow record of a booking attempt. The calendar event is the source of truth."""

    __tablename__ = "booking_intake"
    id: int | None = Field(default=None, primary_key=True)
    source: str = "api"
    status: BookingIntakeStatus = Field(default=BookingIntakeStatus.PENDING, index=True)
    patient_user_id: str | None = Field(default=None, index=True)
    doctor_id: str
    doctor_name_zh: str = ""
    clinic_id: str
    clinic_name_zh: str = ""
    appointment_date: date
    appointment_time: str  # HH:MM clinic-local
    duration_minutes: int
    patient_name: str
    phone: str
    email: str
    notes: str | None = None
    google_event_id: str | None = Field(default=None, index=True)
    calendar_id: str | None = Field(default=None, index=True)
    failure_reason: str | None = None
    reschedule_count: int = 0
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    last_rescheduled_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INTAKE_STATUSES


class BookingIntakeCreate(SQLModel):
    source: str = "api"
    patient_user_id: str | None = None
    doctor_id: str
    doctor_name_zh: str = ""
    clinic_id: str
    clinic_name_zh: str = ""
    appointment_date: date
    appointment_time: str
    duration_minutes: int
    patient_name: str
    phone: str
    email: str
    notes: str | None = None

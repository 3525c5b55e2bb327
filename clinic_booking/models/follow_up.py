from datetime import UTC, date, datetime
from enum import Enum

from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class FollowUpStatus(str, Enum):
    PENDING = "pending"
    BOOKED = "booked"
    DONE = "done"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class FollowUpPlan(SQLModel, table=True):
    """Doctor-suggested return visit. Owned by the care-plan tooling; the booking
    engine only links a new booking to a pending plan."""

    __tablename__ = "follow_up_plans"
    id: int | None = Field(default=None, primary_key=True)
    patient_user_id: str = Field(index=True)
    suggested_date: date = Field(index=True)
    status: FollowUpStatus = Field(default=FollowUpStatus.PENDING, index=True)
    linked_booking_id: str | None = None
    notes: str | None = None
    updated_at: datetime = Field(default_factory=_utc_naive_now)

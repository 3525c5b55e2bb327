from datetime import date

from sqlmodel import Field, SQLModel

from clinic_booking.models.schedule import hhmm_to_minutes


class Holiday(SQLModel, table=True):
    """A full- or partial-day exclusion, independent of the weekly schedule.

    ``doctor_id``/``clinic_id`` of None widen the scope (both None = everyone).
    No ``start_time``/``end_time`` means the whole day is blocked.
    """

    __tablename__ = "holidays"

    id: int | None = Field(default=None, primary_key=True)
    doctor_id: str | None = Field(default=None, index=True)
    clinic_id: str | None = Field(default=None, index=True)
    holiday_date: date = Field(index=True)
    start_time: str | None = None  # HH:MM clinic-local
    end_time: str | None = None
    reason: str | None = None

    @property
    def is_full_day(self) -> bool:
        return not self.start_time or not self.end_time

    def applies_to(self, doctor_id: str, clinic_id: str) -> bool:
        if self.doctor_id and self.doctor_id != doctor_id:
            return False
        if self.clinic_id and self.clinic_id != clinic_id:
            return False
        return True

    def blocked_minutes(self) -> tuple[int, int] | None:
        """Blocked [start, end) in minutes after local midnight, or None for a full day."""
        if self.is_full_day:
            return None
        return hhmm_to_minutes(self.start_time), hhmm_to_minutes(self.end_time)

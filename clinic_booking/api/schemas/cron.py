from pydantic import BaseModel

from clinic_booking.services.reminder_service import ReminderSweepSummary


class ReminderSweepResponse(BaseModel):
    success: bool = True
    summary: ReminderSweepSummary


class OverdueFollowUpsResponse(BaseModel):
    ok: bool = True
    today: str  # YYYY-MM-DD, clinic-local
    updated_count: int

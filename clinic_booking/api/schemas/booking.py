from pydantic import BaseModel, EmailStr, Field


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD, clinic-local
    slots: list[str]  # HH:MM, clinic-local, chronological
    is_closed: bool = False
    is_holiday: bool = False


class CreateBookingRequest(BaseModel):
    doctor_id: str
    clinic_id: str
    date: str
    time: str
    duration_minutes: int = 15
    patient_name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=50)
    email: EmailStr
    notes: str | None = Field(default=None, max_length=2000)
    patient_user_id: str | None = None


class CreateBookingResponse(BaseModel):
    success: bool = True
    booking_id: str
    calendar_id: str


class RescheduleBookingRequest(BaseModel):
    calendar_id: str
    date: str
    time: str
    duration_minutes: int = 15


class BookingPatient(BaseModel):
    name: str
    phone: str
    email: str


class BookingDetailsResponse(BaseModel):
    booking_id: str
    calendar_id: str
    status: str
    date: str | None = None
    time: str | None = None
    duration_minutes: int | None = None
    doctor_id: str | None = None
    doctor_name: str | None = None
    doctor_name_zh: str | None = None
    clinic_id: str | None = None
    clinic_name: str | None = None
    clinic_name_zh: str | None = None
    clinic_address: str | None = None
    patient: BookingPatient | None = None


class SuccessResponse(BaseModel):
    success: bool = True

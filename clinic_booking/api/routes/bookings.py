import logging

from fastapi import APIRouter, Depends, Query, status

from clinic_booking.api.deps import get_booking_coordinator
from clinic_booking.api.schemas.booking import (
    BookingDetailsResponse,
    BookingPatient,
    CreateBookingRequest,
    CreateBookingResponse,
    RescheduleBookingRequest,
    SuccessResponse,
)
from clinic_booking.services.booking_service import BookingCoordinator, BookingRequest, PatientDetails

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=CreateBookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: CreateBookingRequest,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> CreateBookingResponse:
    confirmation = await coordinator.commit_booking(
        BookingRequest(
            doctor_id=body.doctor_id,
            clinic_id=body.clinic_id,
            date=body.date,
            time=body.time,
            duration_minutes=body.duration_minutes,
            patient=PatientDetails(
                name=body.patient_name,
                phone=body.phone,
                email=str(body.email),
                notes=body.notes,
                user_id=body.patient_user_id,
            ),
        )
    )
    return CreateBookingResponse(booking_id=confirmation.event_id, calendar_id=confirmation.calendar_id)


@router.get("/{event_id}", response_model=BookingDetailsResponse)
async def get_booking(
    event_id: str,
    calendar_id: str = Query(...),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> BookingDetailsResponse:
    details = await coordinator.get_booking(event_id, calendar_id)
    response = BookingDetailsResponse(
        booking_id=details.event_id,
        calendar_id=details.calendar_id,
        status=details.status,
        date=details.date,
        time=details.time,
        duration_minutes=details.duration_minutes,
    )
    data = details.data
    if data is not None:
        response.doctor_id = data.doctor_id
        response.doctor_name = data.doctor_name
        response.doctor_name_zh = data.doctor_name_zh
        response.clinic_id = data.clinic_id
        response.clinic_name = data.clinic_name
        response.clinic_name_zh = data.clinic_name_zh
        response.clinic_address = data.clinic_address
        response.patient = BookingPatient(name=data.patient_name, phone=data.phone, email=data.email)
    return response


@router.patch("/{event_id}", response_model=SuccessResponse)
async def reschedule_booking(
    event_id: str,
    body: RescheduleBookingRequest,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> SuccessResponse:
    await coordinator.reschedule_booking(
        event_id, body.calendar_id, body.date, body.time, body.duration_minutes
    )
    return SuccessResponse()


@router.delete("/{event_id}", response_model=SuccessResponse)
async def cancel_booking(
    event_id: str,
    calendar_id: str = Query(...),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
) -> SuccessResponse:
    await coordinator.cancel_booking(event_id, calendar_id)
    return SuccessResponse()

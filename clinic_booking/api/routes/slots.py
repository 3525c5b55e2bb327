from fastapi import APIRouter, Depends, Query

from clinic_booking.api.deps import get_slot_service
from clinic_booking.api.schemas.booking import AvailableSlotsResponse
from clinic_booking.services.slot_service import DEFAULT_DURATION_MINUTES, SlotService

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    date_param: str = Query(..., alias="date"),
    doctor_id: str = Query(...),
    clinic_id: str = Query(...),
    duration_minutes: int = Query(DEFAULT_DURATION_MINUTES),
    slot_service: SlotService = Depends(get_slot_service),
) -> AvailableSlotsResponse:
    """Bookable start times (clinic-local HH:MM) for one doctor at one clinic on one date."""
    listing = await slot_service.list_slots(date_param, doctor_id, clinic_id, duration_minutes)
    return AvailableSlotsResponse(
        date=listing.date,
        slots=listing.slots,
        is_closed=listing.is_closed,
        is_holiday=listing.is_holiday,
    )

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_booking.core.config import settings
from clinic_booking.core.db import get_session
from clinic_booking.services.booking_service import BookingCoordinator
from clinic_booking.services.reminder_service import ReminderSweeper
from clinic_booking.services.slot_service import SlotService

__all__ = [
    "get_booking_coordinator",
    "get_reminder_sweeper",
    "get_session",
    "get_slot_service",
    "require_cron_secret",
]

cron_bearer = HTTPBearer(auto_error=False)


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking services are not initialised",
        )
    return service


def get_slot_service(request: Request) -> SlotService:
    return _service(request, "slot_service")


def get_booking_coordinator(request: Request) -> BookingCoordinator:
    return _service(request, "booking_coordinator")


def get_reminder_sweeper(request: Request) -> ReminderSweeper:
    return _service(request, "reminder_sweeper")


async def require_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(cron_bearer),
) -> None:
    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRON_SECRET is not configured",
        )
    if (
        not credentials
        or credentials.scheme.lower() != "bearer"
        or not secrets.compare_digest(credentials.credentials, settings.cron_secret)
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.deps import get_reminder_sweeper, get_session, require_cron_secret
from clinic_booking.api.schemas.cron import OverdueFollowUpsResponse, ReminderSweepResponse
from clinic_booking.core.clinic_time import local_today
from clinic_booking.services.follow_up_service import mark_overdue_follow_ups
from clinic_booking.services.reminder_service import (
    DEFAULT_TOLERANCE_HOURS,
    DEFAULT_WINDOW_HOURS_AHEAD,
    ReminderSweeper,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.api_route("/booking-reminders", methods=["GET", "POST"], response_model=ReminderSweepResponse)
async def booking_reminders(
    dry_run: bool = Query(False),
    window_hours_ahead: float = Query(DEFAULT_WINDOW_HOURS_AHEAD),
    tolerance_hours: float = Query(DEFAULT_TOLERANCE_HOURS),
    sweeper: ReminderSweeper = Depends(get_reminder_sweeper),
) -> ReminderSweepResponse:
    summary = await sweeper.sweep(
        window_hours_ahead=window_hours_ahead,
        tolerance_hours=tolerance_hours,
        dry_run=dry_run,
    )
    return ReminderSweepResponse(summary=summary)


@router.api_route("/follow-ups-overdue", methods=["GET", "POST"], response_model=OverdueFollowUpsResponse)
async def follow_ups_overdue(
    session: AsyncSession = Depends(get_session),
) -> OverdueFollowUpsResponse:
    today = local_today()
    updated = await mark_overdue_follow_ups(session, today)
    if updated:
        logger.info("Marked %d follow-up plan(s) overdue", updated)
    return OverdueFollowUpsResponse(today=today.isoformat(), updated_count=updated)

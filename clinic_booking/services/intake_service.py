import logging
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.models.booking_intake import BookingIntake, BookingIntakeCreate, BookingIntakeStatus

logger = logging.getLogger(__name__)


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


async def create_pending_intake(session: AsyncSession, data: BookingIntakeCreate) -> BookingIntake:
    intake = BookingIntake(
        **data.model_dump(exclude={"email"}),
        email=data.email.strip().lower(),
        status=BookingIntakeStatus.PENDING,
    )
    session.add(intake)
    await session.flush()
    await session.refresh(intake)
    return intake


async def get_intake(session: AsyncSession, intake_id: int) -> BookingIntake | None:
    result = await session.execute(select(BookingIntake).where(BookingIntake.id == intake_id))
    return result.scalar_one_or_none()


async def mark_intake_confirmed(
    session: AsyncSession, intake_id: int, event_id: str, calendar_id: str
) -> bool:
    intake = await get_intake(session, intake_id)
    if not intake:
        return False
    if intake.status != BookingIntakeStatus.PENDING:
        logger.warning("Intake %s is %s; not confirming", intake_id, intake.status.value)
        return False
    now = _utc_naive_now()
    intake.status = BookingIntakeStatus.CONFIRMED
    intake.google_event_id = event_id
    intake.calendar_id = calendar_id
    intake.confirmed_at = now
    intake.updated_at = now
    session.add(intake)
    await session.flush()
    return True


async def mark_intake_failed(session: AsyncSession, intake_id: int, reason: str) -> bool:
    intake = await get_intake(session, intake_id)
    if not intake:
        return False
    if intake.status != BookingIntakeStatus.PENDING:
        logger.warning("Intake %s is %s; not marking failed", intake_id, intake.status.value)
        return False
    intake.status = BookingIntakeStatus.FAILED
    intake.failure_reason = reason[:500]
    intake.updated_at = _utc_naive_now()
    session.add(intake)
    await session.flush()
    return True


async def _open_intakes_for_event(
    session: AsyncSession, event_id: str, calendar_id: str | None
) -> list[BookingIntake]:
    q = select(BookingIntake).where(BookingIntake.google_event_id == event_id)
    if calendar_id:
        q = q.where(BookingIntake.calendar_id == calendar_id)
    result = await session.execute(q)
    return [row for row in result.scalars().all() if not row.is_terminal]


async def mark_intake_cancelled_by_event(
    session: AsyncSession, event_id: str, calendar_id: str | None = None
) -> int:
    """Cancel the non-terminal intake rows for an event. Returns rows changed."""
    rows = await _open_intakes_for_event(session, event_id, calendar_id)
    now = _utc_naive_now()
    for intake in rows:
        intake.status = BookingIntakeStatus.CANCELLED
        intake.cancelled_at = now
        intake.updated_at = now
        session.add(intake)
    await session.flush()
    return len(rows)


async def mark_intake_rescheduled_by_event(
    session: AsyncSession,
    event_id: str,
    calendar_id: str | None,
    appointment_date: date,
    appointment_time: str,
    duration_minutes: int,
) -> int:
    rows = await _open_intakes_for_event(session, event_id, calendar_id)
    now = _utc_naive_now()
    for intake in rows:
        intake.status = BookingIntakeStatus.CONFIRMED
        intake.appointment_date = appointment_date
        intake.appointment_time = appointment_time
        intake.duration_minutes = duration_minutes
        intake.reschedule_count = (intake.reschedule_count or 0) + 1
        intake.last_rescheduled_at = now
        intake.updated_at = now
        session.add(intake)
    await session.flush()
    return len(rows)

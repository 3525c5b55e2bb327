from datetime import UTC, date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.models.follow_up import FollowUpPlan, FollowUpStatus

# a booking within this many days of a suggested return visit fulfils it
FOLLOW_UP_LINK_WINDOW_DAYS = 3


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


async def link_follow_up_plan(
    session: AsyncSession, patient_user_id: str, booked_date: date, event_id: str
) -> FollowUpPlan | None:
    """Mark the earliest pending plan near ``booked_date`` as booked by ``event_id``."""
    window = timedelta(days=FOLLOW_UP_LINK_WINDOW_DAYS)
    result = await session.execute(
        select(FollowUpPlan)
        .where(
            FollowUpPlan.patient_user_id == patient_user_id,
            FollowUpPlan.status == FollowUpStatus.PENDING,
            FollowUpPlan.suggested_date >= booked_date - window,
            FollowUpPlan.suggested_date <= booked_date + window,
        )
        .order_by(FollowUpPlan.suggested_date, FollowUpPlan.id)
        .limit(1)
    )
    plan = result.scalar_one_or_none()
    if not plan:
        return None
    plan.status = FollowUpStatus.BOOKED
    plan.linked_booking_id = event_id
    plan.updated_at = _utc_naive_now()
    session.add(plan)
    await session.flush()
    return plan


async def mark_overdue_follow_ups(session: AsyncSession, today: date) -> int:
    """Pending plans whose suggested date is before ``today`` become overdue. Returns count."""
    result = await session.execute(
        select(FollowUpPlan).where(
            FollowUpPlan.status == FollowUpStatus.PENDING,
            FollowUpPlan.suggested_date < today,
        )
    )
    plans = list(result.scalars().all())
    now = _utc_naive_now()
    for plan in plans:
        plan.status = FollowUpStatus.OVERDUE
        plan.updated_at = now
        session.add(plan)
    await session.flush()
    return len(plans)

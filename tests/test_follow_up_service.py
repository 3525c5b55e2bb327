from datetime import date

import pytest

from clinic_booking.models.follow_up import FollowUpPlan, FollowUpStatus
from clinic_booking.services.follow_up_service import link_follow_up_plan, mark_overdue_follow_ups


@pytest.mark.asyncio
async def test_mark_overdue_only_touches_past_pending_plans(db_session):
    past = FollowUpPlan(patient_user_id="u1", suggested_date=date(2026, 3, 1))
    today = FollowUpPlan(patient_user_id="u1", suggested_date=date(2026, 3, 16))
    booked = FollowUpPlan(patient_user_id="u2", suggested_date=date(2026, 3, 1), status=FollowUpStatus.BOOKED)
    db_session.add_all([past, today, booked])
    await db_session.flush()

    updated = await mark_overdue_follow_ups(db_session, date(2026, 3, 16))

    assert updated == 1
    assert past.status == FollowUpStatus.OVERDUE
    assert today.status == FollowUpStatus.PENDING
    assert booked.status == FollowUpStatus.BOOKED


@pytest.mark.asyncio
async def test_link_ignores_plans_outside_window(db_session):
    db_session.add(FollowUpPlan(patient_user_id="u1", suggested_date=date(2026, 3, 20)))
    await db_session.flush()

    assert await link_follow_up_plan(db_session, "u1", date(2026, 3, 16), "evt1") is None
    assert (await link_follow_up_plan(db_session, "u1", date(2026, 3, 17), "evt1")).linked_booking_id == "evt1"

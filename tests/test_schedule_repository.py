import asyncio

import pytest

from clinic_booking.core.config import Settings
from clinic_booking.models.schedule import DoctorSchedule, ScheduleMapping, TimeRange, parse_weekly_schedule
from clinic_booking.services.schedule_repository import MappingCache, ScheduleRepository
from tests.conftest import monday_mapping

MONDAY_JSON = {"1": [{"start": "09:00", "end": "12:00"}]}


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestParseWeeklySchedule:
    def test_missing_and_null_days_are_closed(self):
        schedule = parse_weekly_schedule({"1": [{"start": "09:00", "end": "12:00"}], "2": None})

        assert schedule[0] == ()
        assert schedule[2] == ()
        assert schedule[1][0].start == "09:00"

    def test_ranges_are_sorted(self):
        schedule = parse_weekly_schedule(
            {"3": [{"start": "14:00", "end": "18:00"}, {"start": "09:00", "end": "12:00"}]}
        )

        assert [r.start for r in schedule[3]] == ["09:00", "14:00"]

    @pytest.mark.parametrize(
        "raw",
        [
            {"1": [{"start": "09:00", "end": "12:00"}, {"start": "11:00", "end": "13:00"}]},
            {"1": [{"start": "12:00", "end": "09:00"}]},
            {"1": [{"start": "9:00", "end": "12:00"}]},
            {"1": "09:00-12:00"},
            ["not", "a", "dict"],
        ],
    )
    def test_invalid_schedules_are_rejected(self, raw):
        assert parse_weekly_schedule(raw) is None


class TestScheduleMapping:
    def test_usable_needs_active_and_calendar(self):
        assert monday_mapping().is_usable
        assert not ScheduleMapping("chan", "central", "  ", True).is_usable
        assert not ScheduleMapping("chan", "central", "cal", False).is_usable

    def test_ranges_for_closed_day(self):
        mapping = monday_mapping()

        assert mapping.ranges_for(1) == (TimeRange("09:00", "12:00"),)
        assert mapping.ranges_for(2) == ()

    def test_copy_does_not_share_schedule(self):
        mapping = monday_mapping()
        copied = mapping.copy()
        copied.schedule[2] = (TimeRange("14:00", "18:00"),)

        assert copied == ScheduleMapping("chan", "central", mapping.calendar_id, True, copied.schedule)
        assert mapping.ranges_for(2) == ()


class TestScheduleRepository:
    @pytest.mark.asyncio
    async def test_unknown_ids_return_none(self, schedules):
        assert await schedules.get_schedule_mapping("nobody", "central") is None
        assert await schedules.get_schedule_mapping("chan", "mars") is None

    @pytest.mark.asyncio
    async def test_storage_rows_take_precedence_over_fallback(self, session_maker, db_session):
        db_session.add(DoctorSchedule(doctor_id="lee", clinic_id="jordan", calendar_id=" lee-cal ", schedule=MONDAY_JSON))
        await db_session.commit()
        repo = ScheduleRepository(session_maker, fallback=lambda: [monday_mapping()])

        mapping = await repo.get_schedule_mapping("lee", "jordan")

        assert mapping.calendar_id == "lee-cal"
        assert mapping.ranges_for(1)[0].end == "12:00"
        assert await repo.get_schedule_mapping("chan", "central") is None

    @pytest.mark.asyncio
    async def test_invalid_and_inactive_rows_are_dropped(self, session_maker, db_session):
        db_session.add(DoctorSchedule(doctor_id="lee", clinic_id="jordan", calendar_id="lee-cal", schedule={"1": "bad"}))
        db_session.add(DoctorSchedule(doctor_id="hon", clinic_id="central", calendar_id="hon-cal", is_active=False, schedule=MONDAY_JSON))
        db_session.add(DoctorSchedule(doctor_id="chau", clinic_id="online", calendar_id="chau-cal", schedule=MONDAY_JSON))
        await db_session.commit()
        repo = ScheduleRepository(session_maker)

        assert await repo.get_schedule_mapping("lee", "jordan") is None
        assert await repo.get_schedule_mapping("hon", "central") is None
        assert (await repo.get_schedule_mapping("chau", "online")).calendar_id == "chau-cal"

    @pytest.mark.asyncio
    async def test_empty_storage_uses_static_fallback(self, session_maker):
        repo = ScheduleRepository(session_maker)

        mappings = await repo.get_active_mappings()

        assert mappings
        assert all(m.is_active for m in mappings)

    @pytest.mark.asyncio
    async def test_storage_error_uses_fallback(self):
        def broken_session_maker():
            raise RuntimeError("database unreachable")

        repo = ScheduleRepository(broken_session_maker, fallback=lambda: [monday_mapping()])

        mapping = await repo.get_schedule_mapping("chan", "central")

        assert mapping is not None and mapping.is_usable

    @pytest.mark.asyncio
    async def test_returned_mappings_are_copies(self, schedules):
        mapping = await schedules.get_schedule_mapping("chan", "central")
        mapping.schedule.clear()

        again = await schedules.get_schedule_mapping("chan", "central")

        assert again.ranges_for(1)

    @pytest.mark.asyncio
    async def test_active_calendar_ids_are_unique(self, session_maker, db_session):
        db_session.add(DoctorSchedule(doctor_id="chau", clinic_id="central", calendar_id="shared", schedule=MONDAY_JSON))
        db_session.add(DoctorSchedule(doctor_id="chau", clinic_id="online", calendar_id="shared", schedule=MONDAY_JSON))
        db_session.add(DoctorSchedule(doctor_id="lee", clinic_id="jordan", calendar_id="lee-cal", schedule=MONDAY_JSON))
        await db_session.commit()
        repo = ScheduleRepository(session_maker)

        assert await repo.get_active_calendar_ids() == ["shared", "lee-cal"]


class TestMappingCache:
    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_load(self):
        calls = 0
        release = asyncio.Event()

        async def loader():
            nonlocal calls
            calls += 1
            await release.wait()
            return [monday_mapping()]

        cache = MappingCache(loader, ttl_seconds=60)
        waiters = [asyncio.create_task(cache.get()) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(r == results[0] for r in results)

    @pytest.mark.asyncio
    async def test_ttl_expiry_reloads(self):
        clock = FakeClock()
        calls = 0

        async def loader():
            nonlocal calls
            calls += 1
            return [monday_mapping(f"cal-{calls}")]

        cache = MappingCache(loader, ttl_seconds=120, clock=clock)
        await cache.get()
        clock.now += 119
        assert (await cache.get())[0].calendar_id == "cal-1"

        clock.now += 2
        assert (await cache.get())[0].calendar_id == "cal-2"
        assert calls == 2

    @pytest.mark.asyncio
    async def test_clear_discards_load_from_previous_generation(self):
        release = asyncio.Event()
        calls = 0

        async def loader():
            nonlocal calls
            calls += 1
            if calls == 1:
                await release.wait()
            return [monday_mapping(f"cal-{calls}")]

        cache = MappingCache(loader, ttl_seconds=60)
        stale = asyncio.create_task(cache.get())
        await asyncio.sleep(0)
        cache.clear()
        fresh = await cache.get()
        release.set()
        await stale

        assert cache.generation == 1
        assert fresh[0].calendar_id == "cal-2"
        assert (await cache.get())[0].calendar_id == "cal-2"


@pytest.mark.parametrize(
    "raw,expected",
    [("120", 120), ("1", 5), ("99999", 1800), ("abc", 120), ("nan", 120), ("300.7", 300)],
)
def test_cache_ttl_is_clamped(raw, expected):
    assert Settings(schedule_cache_ttl_seconds=raw).schedule_cache_ttl == expected

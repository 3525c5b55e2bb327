import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_booking.core.clinics import is_clinic_id, is_doctor_id
from clinic_booking.core.config import settings
from clinic_booking.core.errors import FailureClass, resolve_failure
from clinic_booking.core.schedule_config import static_fallback_mappings
from clinic_booking.models.schedule import DoctorSchedule, ScheduleMapping, parse_weekly_schedule

logger = logging.getLogger(__name__)

MappingLoader = Callable[[], Awaitable[list[ScheduleMapping]]]


class MappingCache:
    """TTL cache of all active schedule mappings with single-flight loading.

    Concurrent misses share one in-flight load. ``clear()`` starts a new
    generation; a load that started in an older generation does not populate
    the cache when it finishes.
    """

    def __init__(
        self,
        loader: MappingLoader,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._mappings: list[ScheduleMapping] | None = None
        self._expires_at = 0.0
        self._generation = 0
        self._in_flight: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def get(self) -> list[ScheduleMapping]:
        if self._mappings is not None and self._expires_at > self._clock():
            return self._mappings
        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._load(self._generation))
        # shield: one cancelled caller must not cancel the load the others await
        return await asyncio.shield(self._in_flight)

    async def _load(self, generation: int) -> list[ScheduleMapping]:
        try:
            mappings = await self._loader()
            if generation == self._generation:
                self._mappings = mappings
                self._expires_at = self._clock() + self._ttl
            return mappings
        finally:
            if generation == self._generation:
                self._in_flight = None

    def clear(self) -> None:
        self._generation += 1
        self._mappings = None
        self._expires_at = 0.0
        self._in_flight = None


def normalize_rows(rows: Iterable[DoctorSchedule]) -> list[ScheduleMapping]:
    """Storage rows -> mappings. Drops unknown ids, blank calendars, bad schedules
    and duplicate pairs (first row wins)."""
    deduped: dict[tuple[str, str], ScheduleMapping] = {}
    for row in rows:
        doctor_id = (row.doctor_id or "").strip()
        clinic_id = (row.clinic_id or "").strip()
        calendar_id = (row.calendar_id or "").strip()
        if not doctor_id or not clinic_id or not calendar_id:
            continue
        if not is_doctor_id(doctor_id) or not is_clinic_id(clinic_id):
            continue
        schedule = parse_weekly_schedule(row.schedule)
        if schedule is None:
            logger.warning("Ignoring doctor_schedules row %s: invalid weekly schedule", row.id)
            continue
        key = (doctor_id, clinic_id)
        if key in deduped:
            continue
        deduped[key] = ScheduleMapping(
            doctor_id=doctor_id,
            clinic_id=clinic_id,
            calendar_id=calendar_id,
            is_active=row.is_active is not False,
            schedule=schedule,
        )
    return list(deduped.values())


class ScheduleRepository:
    """Resolves (doctor, clinic) to its calendar and weekly schedule."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        fallback: Callable[[], list[ScheduleMapping]] = static_fallback_mappings,
    ) -> None:
        self._session_maker = session_maker
        self._fallback = fallback
        self.cache = MappingCache(
            self._load_with_fallback,
            ttl_seconds if ttl_seconds is not None else settings.schedule_cache_ttl,
            clock,
        )

    async def _fetch_from_storage(self) -> list[ScheduleMapping]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(DoctorSchedule)
                .where(DoctorSchedule.is_active == True)  # noqa: E712
                .order_by(DoctorSchedule.id)
            )
            rows = result.scalars().all()
        return normalize_rows(rows)

    async def _load_with_fallback(self) -> list[ScheduleMapping]:
        try:
            mappings = await self._fetch_from_storage()
        except Exception as e:
            resolve_failure(FailureClass.SCHEDULE_READ, e, "doctor_schedules; using static fallback")
            return self._fallback()
        if mappings:
            return mappings
        logger.warning("No active doctor_schedules in storage; using static schedule fallback")
        return self._fallback()

    async def get_active_mappings(self) -> list[ScheduleMapping]:
        mappings = await self.cache.get()
        return [m.copy() for m in mappings]

    async def get_schedule_mapping(self, doctor_id: str, clinic_id: str) -> ScheduleMapping | None:
        if not is_doctor_id(doctor_id) or not is_clinic_id(clinic_id):
            return None
        for mapping in await self.cache.get():
            if mapping.doctor_id == doctor_id and mapping.clinic_id == clinic_id:
                return mapping.copy()
        return None

    async def get_active_calendar_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for mapping in await self.cache.get():
            calendar_id = mapping.calendar_id.strip()
            if mapping.is_usable and calendar_id:
                seen.setdefault(calendar_id, None)
        return list(seen)

    def clear(self) -> None:
        self.cache.clear()

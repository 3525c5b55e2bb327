from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta

from clinic_booking.core.clinic_time import clinic_tz, format_local_time, local_today, local_weekday, parse_local_date
from clinic_booking.core.errors import FailureClass, InvalidInputError, NotBookableError, resolve_failure
from clinic_booking.models.calendar_event import BusyInterval
from clinic_booking.models.holiday import Holiday
from clinic_booking.models.schedule import TimeRange
from clinic_booking.services.holiday_service import HolidayResolver, is_fully_closed
from clinic_booking.services.schedule_repository import ScheduleRepository

SLOT_INCREMENT_MINUTES = 15
SAME_DAY_BUFFER_MINUTES = 60
DEFAULT_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 24 * 60


@dataclass
class SlotListing:
    date: str
    slots: list[str] = field(default_factory=list)
    is_closed: bool = False
    is_holiday: bool = False


def validate_duration(duration_minutes: int) -> int:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidInputError("duration_minutes must be an integer")
    if not 1 <= duration_minutes <= MAX_DURATION_MINUTES:
        raise InvalidInputError(f"duration_minutes must be between 1 and {MAX_DURATION_MINUTES}")
    return duration_minutes


def local_minutes_to_utc(d: date, minutes: int) -> datetime:
    """Clinic wall-clock ``minutes`` after local midnight of ``d``; 1440 is next midnight."""
    midnight = datetime.combine(d, time(0, 0), tzinfo=clinic_tz())
    return (midnight + timedelta(minutes=minutes)).astimezone(UTC)


def window_is_free(start: datetime, end: datetime, busy: list[BusyInterval]) -> bool:
    return not any(b.overlaps(start, end) for b in busy)


def subtract_interval(busy: list[BusyInterval], start: datetime, end: datetime) -> list[BusyInterval]:
    """Remove [start, end) from every busy interval, keeping the parts outside it."""
    out: list[BusyInterval] = []
    for b in busy:
        if not b.overlaps(start, end):
            out.append(b)
            continue
        if b.start < start:
            out.append(BusyInterval(b.start, start))
        if b.end > end:
            out.append(BusyInterval(end, b.end))
    return out


def generate_slots(
    d: date,
    ranges: tuple[TimeRange, ...],
    duration_minutes: int,
    busy: list[BusyInterval],
    blocks: list[Holiday],
    now: datetime,
) -> list[str]:
    """Bookable start times (clinic-local HH:MM) for one day. Pure: same input, same output.

    Candidates start at each range's opening and advance in fixed increments;
    a candidate is kept only if the whole ``[start, start + duration)`` fits the
    range, clears the same-day buffer, and overlaps no busy interval or
    partial holiday block.
    """
    is_today = local_today(now) == d
    cutoff = now + timedelta(minutes=SAME_DAY_BUFFER_MINUTES)
    blocked = [
        BusyInterval(local_minutes_to_utc(d, lo), local_minutes_to_utc(d, hi))
        for lo, hi in (b.blocked_minutes() for b in blocks if not b.is_full_day)
    ]
    step = timedelta(minutes=SLOT_INCREMENT_MINUTES)
    duration = timedelta(minutes=duration_minutes)

    slots: list[str] = []
    for rng in ranges:
        current = local_minutes_to_utc(d, rng.start_minutes)
        range_end = local_minutes_to_utc(d, rng.end_minutes)
        while current < range_end:
            slot_end = current + duration
            if slot_end > range_end:
                break
            if is_today and current < cutoff:
                current += step
                continue
            if window_is_free(current, slot_end, busy) and window_is_free(current, slot_end, blocked):
                slots.append(format_local_time(current))
            current += step
    return slots


class SlotService:
    def __init__(self, schedules: ScheduleRepository, holidays: HolidayResolver, gateway) -> None:
        self._schedules = schedules
        self._holidays = holidays
        self._gateway = gateway

    async def list_slots(
        self,
        date_str: str,
        doctor_id: str,
        clinic_id: str,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        now: datetime | None = None,
    ) -> SlotListing:
        d = parse_local_date(date_str)
        validate_duration(duration_minutes)

        mapping = await self._schedules.get_schedule_mapping(doctor_id, clinic_id)
        if mapping is None or not mapping.is_usable:
            raise NotBookableError("This doctor is not available at the selected clinic")

        blocks = await self._holidays.get_applicable_blocks(d, doctor_id, clinic_id)
        if is_fully_closed(blocks):
            return SlotListing(date=date_str, is_closed=True, is_holiday=True)

        ranges = mapping.ranges_for(local_weekday(d))
        if not ranges:
            return SlotListing(date=date_str, is_closed=True)

        try:
            busy = await self._gateway.get_free_busy(mapping.calendar_id, d)
        except Exception as e:
            resolve_failure(FailureClass.FREEBUSY_READ, e, f"calendar {mapping.calendar_id} on {date_str}")
            raise

        now = now or datetime.now(UTC)
        return SlotListing(
            date=date_str,
            slots=generate_slots(d, ranges, duration_minutes, busy, blocks, now),
        )

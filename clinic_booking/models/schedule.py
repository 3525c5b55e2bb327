import re
from dataclasses import dataclass, field, replace
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

_HHMM_RE = re.compile(r"^\d{2}:\d{2}$")


def hhmm_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class DoctorSchedule(SQLModel, table=True):
    """Storage row: one (doctor, clinic) pair -> calendar + weekly schedule JSON."""

    __tablename__ = "doctor_schedules"
    __table_args__ = (UniqueConstraint("doctor_id", "clinic_id", name="uq_doctor_schedules_pair"),)

    id: int | None = Field(default=None, primary_key=True)
    doctor_id: str = Field(index=True)
    clinic_id: str = Field(index=True)
    calendar_id: str
    is_active: bool = Field(default=True, index=True)
    # {"0": null, "1": [{"start": "09:00", "end": "12:00"}], ...}
    schedule: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))


@dataclass(frozen=True)
class TimeRange:
    start: str  # HH:MM, clinic-local
    end: str

    @property
    def start_minutes(self) -> int:
        return hhmm_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return hhmm_to_minutes(self.end)


# weekday (0=Sunday .. 6=Saturday) -> ordered open ranges; empty tuple means closed
WeeklySchedule = dict[int, tuple[TimeRange, ...]]


def _parse_range(raw: Any) -> TimeRange | None:
    if not isinstance(raw, dict):
        return None
    start, end = raw.get("start"), raw.get("end")
    if not isinstance(start, str) or not isinstance(end, str):
        return None
    if not _HHMM_RE.match(start) or not _HHMM_RE.match(end):
        return None
    rng = TimeRange(start, end)
    if not (0 <= rng.start_minutes < rng.end_minutes <= 24 * 60):
        return None
    return rng


def parse_weekly_schedule(raw: Any) -> WeeklySchedule | None:
    """Validate a stored schedule. Returns None when any day is malformed.

    Ranges are sorted by start; overlapping ranges within a day are rejected.
    """
    if not isinstance(raw, dict):
        return None
    parsed: WeeklySchedule = {}
    for day in range(7):
        day_raw = raw.get(str(day), raw.get(day))
        if day_raw is None:
            parsed[day] = ()
            continue
        if not isinstance(day_raw, list):
            return None
        ranges = []
        for item in day_raw:
            rng = _parse_range(item)
            if rng is None:
                return None
            ranges.append(rng)
        ranges.sort(key=lambda r: r.start_minutes)
        for prev, cur in zip(ranges, ranges[1:]):
            if cur.start_minutes < prev.end_minutes:
                return None
        parsed[day] = tuple(ranges)
    return parsed


@dataclass(frozen=True)
class ScheduleMapping:
    doctor_id: str
    clinic_id: str
    calendar_id: str
    is_active: bool
    schedule: WeeklySchedule = field(default_factory=dict)

    @property
    def is_usable(self) -> bool:
        return self.is_active and bool(self.calendar_id.strip())

    def ranges_for(self, weekday: int) -> tuple[TimeRange, ...]:
        return self.schedule.get(weekday, ())

    def copy(self) -> "ScheduleMapping":
        # ranges are immutable tuples; a fresh dict is enough
        return replace(self, schedule=dict(self.schedule))

"""Clinic-local civil time <-> UTC.

Every public date/time is a clinic-local ``YYYY-MM-DD`` / ``HH:MM`` string.
This module is the single place where those strings become aware UTC
datetimes; nothing else compares wall-clock strings.
"""
import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from clinic_booking.core.config import settings
from clinic_booking.core.errors import InvalidInputError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def clinic_tz() -> ZoneInfo:
    return ZoneInfo(settings.clinic_timezone)


def parse_local_date(value: str) -> date:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidInputError("Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidInputError(f"Invalid date: {value}") from e


def parse_local_time(value: str) -> time:
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise InvalidInputError("Invalid time format. Use HH:MM")
    hours, minutes = (int(p) for p in value.split(":"))
    if hours > 23 or minutes > 59:
        raise InvalidInputError(f"Invalid time: {value}")
    return time(hours, minutes)


def local_to_utc(d: date, t: time) -> datetime:
    """Interpret ``d`` + ``t`` as clinic wall-clock time and return aware UTC."""
    return datetime.combine(d, t, tzinfo=clinic_tz()).astimezone(UTC)


def local_day_bounds_utc(d: date) -> tuple[datetime, datetime]:
    """UTC [start, end) of the clinic-local civil day ``d``."""
    tz = clinic_tz()
    start = datetime.combine(d, time(0, 0), tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def local_weekday(d: date) -> int:
    """Weekday of a clinic-local civil date, 0=Sunday .. 6=Saturday."""
    # date.weekday() is Monday=0; the schedule format counts from Sunday.
    return (d.weekday() + 1) % 7


def local_today(now_utc: datetime | None = None) -> date:
    now_utc = now_utc or datetime.now(UTC)
    return now_utc.astimezone(clinic_tz()).date()


def to_local(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(clinic_tz())


def format_local_time(dt: datetime) -> str:
    return to_local(dt).strftime("%H:%M")


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as returned by Google Calendar into aware UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

def to_rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")

def local_date_and_time(dt: datetime) -> tuple[date, str]:
    """Aware instant -> (clinic-local date, HH:MM)."""
    local = to_local(dt)
    return local.date(), local.strftime("%H:%M")

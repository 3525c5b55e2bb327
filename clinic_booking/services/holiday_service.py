import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_booking.core.errors import FailureClass, resolve_failure
from clinic_booking.models.holiday import Holiday

logger = logging.getLogger(__name__)


def is_fully_closed(blocks: list[Holiday]) -> bool:
    """Any block without time bounds closes the whole day, whatever partial blocks exist."""
    return any(b.is_full_day for b in blocks)


def _has_valid_bounds(block: Holiday) -> bool:
    if block.is_full_day:
        return True
    try:
        start, end = block.blocked_minutes()
    except ValueError:
        return False
    return start < end


class HolidayResolver:
    """Looks up holiday blocks for a date. Fails open when storage is unreachable."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get_applicable_blocks(self, d: date, doctor_id: str, clinic_id: str) -> list[Holiday]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(select(Holiday).where(Holiday.holiday_date == d))
                rows = list(result.scalars().all())
        except Exception as e:
            resolve_failure(FailureClass.HOLIDAY_READ, e, f"holidays for {d.isoformat()}; assuming open")
            return []

        blocks = []
        for row in rows:
            if not row.applies_to(doctor_id, clinic_id):
                continue
            if not _has_valid_bounds(row):
                logger.warning("Ignoring holiday %s: malformed time range %s-%s", row.id, row.start_time, row.end_time)
                continue
            blocks.append(row)
        return blocks

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel

from clinic_booking.core.clinic_time import local_date_and_time, to_rfc3339
from clinic_booking.core.errors import FailureClass, InvalidInputError, resolve_failure
from clinic_booking.services.calendar_gateway import CalendarGateway
from clinic_booking.services.email_service import EmailNotifier
from clinic_booking.services.event_description import decode_description
from clinic_booking.services.schedule_repository import ScheduleRepository

logger = logging.getLogger(__name__)

REMINDER_SENT_KEY = "clinic_reminder_24h_sent_at"
DEFAULT_WINDOW_HOURS_AHEAD = 24.0
DEFAULT_TOLERANCE_HOURS = 1.0


class ReminderSweepSummary(BaseModel):
    dry_run: bool
    window_start: str
    window_end: str
    calendars_scanned: int = 0
    events_scanned: int = 0
    eligible: int = 0
    sent: int = 0
    would_send: int = 0
    skipped_already_sent: int = 0
    skipped_cancelled: int = 0
    skipped_invalid: int = 0
    send_failed: int = 0
    marked: int = 0
    mark_failed: int = 0
    calendar_errors: int = 0


class ReminderSweeper:
    """Sends one reminder per upcoming booking; the event itself carries the sent flag."""

    def __init__(
        self,
        schedules: ScheduleRepository,
        gateway: CalendarGateway,
        notifier: EmailNotifier,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._schedules = schedules
        self._gateway = gateway
        self._notifier = notifier
        self._clock = clock

    async def sweep(
        self,
        window_hours_ahead: float = DEFAULT_WINDOW_HOURS_AHEAD,
        tolerance_hours: float = DEFAULT_TOLERANCE_HOURS,
        dry_run: bool = False,
    ) -> ReminderSweepSummary:
        if window_hours_ahead <= 0 or tolerance_hours < 0 or tolerance_hours > window_hours_ahead:
            raise InvalidInputError("window_hours_ahead must be positive and tolerance_hours within it")

        now = self._clock()
        target = now + timedelta(hours=window_hours_ahead)
        window_start = target - timedelta(hours=tolerance_hours)
        window_end = target + timedelta(hours=tolerance_hours)
        summary = ReminderSweepSummary(
            dry_run=dry_run,
            window_start=to_rfc3339(window_start),
            window_end=to_rfc3339(window_end),
        )

        for calendar_id in await self._schedules.get_active_calendar_ids():
            summary.calendars_scanned += 1
            try:
                events = await self._gateway.list_events_in_range(calendar_id, window_start, window_end)
            except Exception as e:
                logger.warning("Reminder sweep: listing %s failed: %s", calendar_id, e)
                summary.calendar_errors += 1
                continue

            for event in events:
                summary.events_scanned += 1
                if event.start is None or not event.id:
                    summary.skipped_invalid += 1
                    continue
                # list queries overlap; only bookings that start inside the window count
                if not window_start <= event.start <= window_end:
                    continue
                if event.is_cancelled:
                    summary.skipped_cancelled += 1
                    continue
                if event.private_metadata.get(REMINDER_SENT_KEY):
                    summary.skipped_already_sent += 1
                    continue
                data = decode_description(event.description)
                if data is None:
                    summary.skipped_invalid += 1
                    continue
                summary.eligible += 1
                if dry_run:
                    summary.would_send += 1
                    continue

                d, time_str = local_date_and_time(event.start)
                try:
                    sent = await self._notifier.send_reminder(data, d, time_str, event.id, calendar_id)
                except Exception as e:
                    resolve_failure(FailureClass.NOTIFICATION, e, f"reminder for {event.id}")
                    sent = False
                if not sent:
                    summary.send_failed += 1
                    continue
                summary.sent += 1
                try:
                    await self._gateway.patch_private_metadata(
                        calendar_id, event.id, {REMINDER_SENT_KEY: to_rfc3339(self._clock())}
                    )
                    summary.marked += 1
                except Exception as e:
                    resolve_failure(FailureClass.REMINDER_FLAG, e, f"flag {event.id}")
                    summary.mark_failed += 1

        logger.info("Reminder sweep finished: %s", summary.model_dump())
        return summary

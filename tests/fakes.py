"""In-memory stand-ins for the external calendar and the SMTP notifier."""

import asyncio
from collections import defaultdict
from datetime import date, datetime

from clinic_booking.core.clinic_time import local_day_bounds_utc
from clinic_booking.core.errors import CalendarNotFoundError
from clinic_booking.models.calendar_event import BusyInterval, CalendarEvent, EventDetails


class FakeCalendarGateway:
    def __init__(self) -> None:
        self.events: dict[str, dict[str, CalendarEvent]] = defaultdict(dict)
        self.extra_busy: dict[str, list[BusyInterval]] = defaultdict(list)
        self.failures: dict[str, Exception] = {}
        self.freebusy_delay = 0.0
        self.calls: list[str] = []
        self._next_id = 0

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def add_event(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        description: str = "",
        status: str = "confirmed",
        private_metadata: dict[str, str] | None = None,
    ) -> CalendarEvent:
        self._next_id += 1
        event = CalendarEvent(
            id=f"evt{self._next_id}",
            status=status,
            summary="",
            description=description,
            start=start,
            end=end,
            private_metadata=dict(private_metadata or {}),
        )
        self.events[calendar_id][event.id] = event
        return event

    async def get_free_busy(self, calendar_id: str, d: date) -> list[BusyInterval]:
        self._call("get_free_busy")
        await asyncio.sleep(self.freebusy_delay)
        day_start, day_end = local_day_bounds_utc(d)
        busy = [
            BusyInterval(e.start, e.end)
            for e in self.events[calendar_id].values()
            if not e.is_cancelled and e.start < day_end and e.end > day_start
        ]
        busy += [b for b in self.extra_busy[calendar_id] if b.start < day_end and b.end > day_start]
        return sorted(busy, key=lambda b: b.start)

    async def create_event(self, calendar_id: str, details: EventDetails) -> str:
        self._call("create_event")
        await asyncio.sleep(0)
        event = self.add_event(
            calendar_id,
            details.start,
            details.end,
            description=details.description,
            private_metadata=details.private_metadata,
        )
        event.summary = details.summary
        return event.id

    async def get_event(self, calendar_id: str, event_id: str) -> CalendarEvent:
        self._call("get_event")
        event = self.events[calendar_id].get(event_id)
        if event is None:
            raise CalendarNotFoundError("Calendar resource not found")
        return event

    async def update_event(self, calendar_id: str, event_id: str, start: datetime, end: datetime) -> None:
        self._call("update_event")
        event = self.events[calendar_id].get(event_id)
        if event is None:
            raise CalendarNotFoundError("Calendar resource not found")
        event.start, event.end = start, end

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        self._call("delete_event")
        if self.events[calendar_id].pop(event_id, None) is None:
            raise CalendarNotFoundError("Calendar resource not found")

    async def list_events_in_range(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> list[CalendarEvent]:
        self._call("list_events_in_range")
        return sorted(
            (e for e in self.events[calendar_id].values() if e.start < time_max and e.end > time_min),
            key=lambda e: e.start,
        )

    async def patch_private_metadata(self, calendar_id: str, event_id: str, values: dict[str, str]) -> None:
        self._call("patch_private_metadata")
        self.events[calendar_id][event_id].private_metadata.update(values)


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple] = []
        self.result = True
        self.error: Exception | None = None

    async def _send(self, kind: str, *args) -> bool:
        if self.error is not None:
            raise self.error
        if self.result:
            self.sent.append((kind, *args))
        return self.result

    async def send_confirmation(self, data, d, time_str, duration_minutes, event_id, calendar_id, rescheduled=False):
        return await self._send("reschedule" if rescheduled else "confirmation", data.email, d, time_str, event_id)

    async def send_cancellation(self, data, d, time_str):
        return await self._send("cancellation", data.email, d, time_str)

    async def send_reminder(self, data, d, time_str, event_id, calendar_id):
        return await self._send("reminder", data.email, d, time_str, event_id)

    def kinds(self) -> list[str]:
        return [s[0] for s in self.sent]

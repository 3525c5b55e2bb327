"""External calendar access.

The booking engine depends only on :class:`CalendarGateway`; the Google
implementation talks to the Calendar v3 REST API over httpx. Every call is
bounded by ``settings.calendar_timeout_seconds`` and every failure surfaces
as :class:`CalendarError` (404/410 as :class:`CalendarNotFoundError`).
"""
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from clinic_booking.core.clinic_time import local_day_bounds_utc, local_to_utc, parse_rfc3339, to_rfc3339
from clinic_booking.core.config import settings
from clinic_booking.core.errors import CalendarError, CalendarNotFoundError
from clinic_booking.models.calendar_event import BusyInterval, CalendarEvent, EventDetails
from clinic_booking.services.google_auth_service import GoogleAccessTokenProvider

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
EVENT_COLOR_ID = "2"
LIST_PAGE_SIZE = 250


class CalendarGateway(Protocol):
    async def get_free_busy(self, calendar_id: str, d: date) -> list[BusyInterval]: ...

    async def create_event(self, calendar_id: str, details: EventDetails) -> str: ...

    async def get_event(self, calendar_id: str, event_id: str) -> CalendarEvent: ...

    async def update_event(
        self, calendar_id: str, event_id: str, start: datetime, end: datetime
    ) -> None: ...

    async def delete_event(self, calendar_id: str, event_id: str) -> None: ...

    async def list_events_in_range(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> list[CalendarEvent]: ...

    async def patch_private_metadata(
        self, calendar_id: str, event_id: str, values: dict[str, str]
    ) -> None: ...


def _parse_event_time(raw: dict[str, Any] | None) -> datetime | None:
    if not raw:
        return None
    if raw.get("dateTime"):
        return parse_rfc3339(raw["dateTime"])
    if raw.get("date"):
        # all-day event: local midnight
        return local_to_utc(date.fromisoformat(raw["date"]), datetime.min.time())
    return None


def parse_event(data: dict[str, Any]) -> CalendarEvent:
    private = (data.get("extendedProperties") or {}).get("private") or {}
    return CalendarEvent(
        id=data.get("id", ""),
        status=data.get("status", "confirmed"),
        summary=data.get("summary") or "",
        description=data.get("description") or "",
        start=_parse_event_time(data.get("start")),
        end=_parse_event_time(data.get("end")),
        private_metadata={str(k): str(v) for k, v in private.items()},
        raw=data,
    )


class GoogleCalendarGateway:
    def __init__(
        self,
        tokens: GoogleAccessTokenProvider,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        timezone: str | None = None,
    ) -> None:
        self._tokens = tokens
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=settings.calendar_timeout_seconds)
        )
        self._timezone = timezone or settings.clinic_timezone

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token = await self._tokens.get_access_token()
        try:
            async with self._client_factory() as client:
                resp = await client.request(
                    method,
                    f"{GOOGLE_CALENDAR_API}{path}",
                    params=params,
                    json=json,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.TimeoutException as e:
            raise CalendarError("Calendar request timed out", detail=f"{method} {path}") from e
        except httpx.HTTPError as e:
            raise CalendarError("Calendar request failed", detail=str(e)) from e
        if resp.status_code in (404, 410):
            raise CalendarNotFoundError("Calendar resource not found", detail=f"{method} {path}")
        if resp.status_code >= 400:
            logger.warning(
                "Google Calendar %s %s failed: status=%s body=%s",
                method,
                path,
                resp.status_code,
                resp.text[:500],
            )
            raise CalendarError("Calendar request failed", detail=f"status={resp.status_code}")
        return resp

    @staticmethod
    def _events_path(calendar_id: str, event_id: str | None = None) -> str:
        path = f"/calendars/{quote(calendar_id, safe='')}/events"
        if event_id is not None:
            path += f"/{quote(event_id, safe='')}"
        return path

    async def get_free_busy(self, calendar_id: str, d: date) -> list[BusyInterval]:
        time_min, time_max = local_day_bounds_utc(d)
        resp = await self._request(
            "POST",
            "/freeBusy",
            json={
                "timeMin": to_rfc3339(time_min),
                "timeMax": to_rfc3339(time_max),
                "timeZone": self._timezone,
                "items": [{"id": calendar_id}],
            },
        )
        calendar = (resp.json().get("calendars") or {}).get(calendar_id) or {}
        errors = calendar.get("errors") or []
        if errors:
            reasons = ",".join(str(e.get("reason")) for e in errors)
            if "notFound" in reasons:
                raise CalendarNotFoundError("Calendar not found", detail=calendar_id)
            raise CalendarError("Free/busy query failed", detail=reasons)
        busy = []
        for item in calendar.get("busy") or []:
            start, end = parse_rfc3339(item["start"]), parse_rfc3339(item["end"])
            if start < end:
                busy.append(BusyInterval(start, end))
        return busy

    async def create_event(self, calendar_id: str, details: EventDetails) -> str:
        body: dict[str, Any] = {
            "summary": details.summary,
            "description": details.description,
            "start": {"dateTime": to_rfc3339(details.start), "timeZone": self._timezone},
            "end": {"dateTime": to_rfc3339(details.end), "timeZone": self._timezone},
            "colorId": EVENT_COLOR_ID,
        }
        if details.private_metadata:
            body["extendedProperties"] = {"private": dict(details.private_metadata)}
        resp = await self._request("POST", self._events_path(calendar_id), json=body)
        event_id = resp.json().get("id")
        if not event_id:
            raise CalendarError("Calendar did not return an event id")
        return event_id

    async def get_event(self, calendar_id: str, event_id: str) -> CalendarEvent:
        resp = await self._request("GET", self._events_path(calendar_id, event_id))
        return parse_event(resp.json())

    async def update_event(
        self, calendar_id: str, event_id: str, start: datetime, end: datetime
    ) -> None:
        await self._request(
            "PATCH",
            self._events_path(calendar_id, event_id),
            json={
                "start": {"dateTime": to_rfc3339(start), "timeZone": self._timezone},
                "end": {"dateTime": to_rfc3339(end), "timeZone": self._timezone},
            },
        )

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        await self._request("DELETE", self._events_path(calendar_id, event_id))

    async def list_events_in_range(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> list[CalendarEvent]:
        events: list[CalendarEvent] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "timeMin": to_rfc3339(time_min),
                "timeMax": to_rfc3339(time_max),
                "singleEvents": "true",
                "orderBy": "startTime",
                "showDeleted": "false",
                "maxResults": LIST_PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            resp = await self._request("GET", self._events_path(calendar_id), params=params)
            payload = resp.json()
            events.extend(parse_event(item) for item in payload.get("items") or [])
            page_token = payload.get("nextPageToken")
            if not page_token:
                return events

    async def patch_private_metadata(
        self, calendar_id: str, event_id: str, values: dict[str, str]
    ) -> None:
        await self._request(
            "PATCH",
            self._events_path(calendar_id, event_id),
            json={"extendedProperties": {"private": dict(values)}},
        )

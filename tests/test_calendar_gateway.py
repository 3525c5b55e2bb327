import json
from datetime import UTC, date, datetime

import httpx
import pytest

from clinic_booking.core.errors import CalendarError, CalendarNotFoundError
from clinic_booking.models.calendar_event import EventDetails
from clinic_booking.services.calendar_gateway import GoogleCalendarGateway, parse_event
from clinic_booking.services.google_auth_service import GOOGLE_TOKEN_URL, GoogleAccessTokenProvider

CALENDAR = "chan@group.calendar.google.com"


class StaticTokens:
    async def get_access_token(self) -> str:
        return "test-token"


def _gateway(handler) -> tuple[GoogleCalendarGateway, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    transport = httpx.MockTransport(record)
    gateway = GoogleCalendarGateway(
        StaticTokens(),
        client_factory=lambda: httpx.AsyncClient(transport=transport),
        timezone="Asia/Hong_Kong",
    )
    return gateway, seen


@pytest.mark.asyncio
async def test_free_busy_queries_clinic_day():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "calendars": {
                    CALENDAR: {
                        "busy": [
                            {"start": "2026-03-16T02:00:00Z", "end": "2026-03-16T02:30:00Z"},
                            {"start": "2026-03-16T03:00:00Z", "end": "2026-03-16T03:00:00Z"},
                        ]
                    }
                }
            },
        )

    gateway, seen = _gateway(handler)

    busy = await gateway.get_free_busy(CALENDAR, date(2026, 3, 16))

    body = json.loads(seen[0].content)
    assert seen[0].headers["Authorization"] == "Bearer test-token"
    assert body["timeMin"] == "2026-03-15T16:00:00Z"
    assert body["timeMax"] == "2026-03-16T16:00:00Z"
    assert body["items"] == [{"id": CALENDAR}]
    assert len(busy) == 1
    assert busy[0].start == datetime(2026, 3, 16, 2, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_free_busy_calendar_not_found():
    gateway, _ = _gateway(
        lambda r: httpx.Response(200, json={"calendars": {CALENDAR: {"errors": [{"reason": "notFound"}]}}})
    )

    with pytest.raises(CalendarNotFoundError):
        await gateway.get_free_busy(CALENDAR, date(2026, 3, 16))


@pytest.mark.asyncio
async def test_create_event_sends_metadata_and_returns_id():
    gateway, seen = _gateway(lambda r: httpx.Response(200, json={"id": "abc123"}))
    details = EventDetails(
        summary="中環 - 陳大文",
        description="body",
        start=datetime(2026, 3, 16, 2, 0, tzinfo=UTC),
        end=datetime(2026, 3, 16, 2, 30, tzinfo=UTC),
        private_metadata={"doctor_id": "chan"},
    )

    event_id = await gateway.create_event(CALENDAR, details)

    body = json.loads(seen[0].content)
    assert event_id == "abc123"
    assert seen[0].url.raw_path == b"/calendar/v3/calendars/chan%40group.calendar.google.com/events"
    assert body["start"] == {"dateTime": "2026-03-16T02:00:00Z", "timeZone": "Asia/Hong_Kong"}
    assert body["extendedProperties"] == {"private": {"doctor_id": "chan"}}


@pytest.mark.asyncio
@pytest.mark.parametrize("status,error", [(404, CalendarNotFoundError), (410, CalendarNotFoundError), (500, CalendarError)])
async def test_http_errors_are_mapped(status, error):
    gateway, _ = _gateway(lambda r: httpx.Response(status, text="nope"))

    with pytest.raises(error):
        await gateway.get_event(CALENDAR, "abc123")


@pytest.mark.asyncio
async def test_timeout_is_calendar_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    gateway, _ = _gateway(handler)

    with pytest.raises(CalendarError):
        await gateway.delete_event(CALENDAR, "abc123")


@pytest.mark.asyncio
async def test_list_events_follows_pages():
    pages = {
        None: {"items": [{"id": "a", "start": {"dateTime": "2026-03-16T02:00:00Z"}}], "nextPageToken": "p2"},
        "p2": {"items": [{"id": "b", "status": "cancelled"}]},
    }
    gateway, seen = _gateway(lambda r: httpx.Response(200, json=pages[r.url.params.get("pageToken")]))

    events = await gateway.list_events_in_range(
        CALENDAR, datetime(2026, 3, 16, tzinfo=UTC), datetime(2026, 3, 17, tzinfo=UTC)
    )

    assert [e.id for e in events] == ["a", "b"]
    assert events[1].is_cancelled
    assert seen[0].url.params["singleEvents"] == "true"
    assert len(seen) == 2


def test_parse_event_all_day_and_private_metadata():
    event = parse_event(
        {
            "id": "x",
            "start": {"date": "2026-03-16"},
            "end": {"date": "2026-03-17"},
            "extendedProperties": {"private": {"clinic_reminder_24h_sent_at": "2026-03-15T00:00:00Z"}},
        }
    )

    assert event.start == datetime(2026, 3, 15, 16, 0, tzinfo=UTC)
    assert event.private_metadata["clinic_reminder_24h_sent_at"] == "2026-03-15T00:00:00Z"


class TestAccessTokenProvider:
    @pytest.mark.asyncio
    async def test_token_is_cached_until_expiry(self):
        calls = []
        now = [0.0]

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"access_token": f"tok{len(calls)}", "expires_in": 3600})

        transport = httpx.MockTransport(handler)
        provider = GoogleAccessTokenProvider(
            "id", "secret", "refresh",
            client_factory=lambda: httpx.AsyncClient(transport=transport),
            clock=lambda: now[0],
        )

        assert await provider.get_access_token() == "tok1"
        assert await provider.get_access_token() == "tok1"
        now[0] = 3600
        assert await provider.get_access_token() == "tok2"
        assert str(calls[0].url) == GOOGLE_TOKEN_URL
        assert b"grant_type=refresh_token" in calls[0].content

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(CalendarError):
            await GoogleAccessTokenProvider("", "", "").get_access_token()

    @pytest.mark.asyncio
    async def test_rejected_refresh_token(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))
        provider = GoogleAccessTokenProvider(
            "id", "secret", "refresh", client_factory=lambda: httpx.AsyncClient(transport=transport)
        )

        with pytest.raises(CalendarError):
            await provider.get_access_token()

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from clinic_booking.core.config import settings
from clinic_booking.core.errors import CalendarError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
# refresh a little before Google says the token expires
EXPIRY_MARGIN_SECONDS = 60


class GoogleAccessTokenProvider:
    """Exchanges the clinic's long-lived OAuth refresh token for access tokens."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_id = client_id if client_id is not None else settings.google_client_id
        self._client_secret = client_secret if client_secret is not None else settings.google_client_secret
        self._refresh_token = refresh_token if refresh_token is not None else settings.google_refresh_token
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=settings.calendar_timeout_seconds)
        )
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def get_access_token(self) -> str:
        if self._access_token and self._clock() < self._expires_at:
            return self._access_token
        async with self._lock:
            if self._access_token and self._clock() < self._expires_at:
                return self._access_token
            return await self._refresh()

    async def _refresh(self) -> str:
        if not self._client_id or not self._client_secret or not self._refresh_token:
            raise CalendarError("Google Calendar credentials are not configured")
        try:
            async with self._client_factory() as client:
                resp = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "refresh_token": self._refresh_token,
                        "grant_type": "refresh_token",
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            raise CalendarError("Google token refresh failed", detail=str(e)) from e
        if resp.status_code != 200:
            logger.warning(
                "Google token refresh failed: status=%s body=%s",
                resp.status_code,
                resp.text[:500],
            )
            raise CalendarError("Google token refresh failed", detail=f"status={resp.status_code}")
        payload = resp.json()
        token = payload.get("access_token")
        if not token:
            raise CalendarError("Google token refresh returned no access_token")
        expires_in = float(payload.get("expires_in") or 3600)
        self._access_token = token
        self._expires_at = self._clock() + max(expires_in - EXPIRY_MARGIN_SECONDS, 0)
        return token

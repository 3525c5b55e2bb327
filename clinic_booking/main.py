import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_booking.api.routes import bookings, cron, slots
from clinic_booking.core.config import settings, _ENV_FILE
from clinic_booking.core.db import async_session_maker
from clinic_booking.core.errors import BookingError, ErrorCode
from clinic_booking.services.booking_service import BookingCoordinator
from clinic_booking.services.calendar_gateway import GoogleCalendarGateway
from clinic_booking.services.email_service import EmailNotifier
from clinic_booking.services.google_auth_service import GoogleAccessTokenProvider
from clinic_booking.services.holiday_service import HolidayResolver
from clinic_booking.services.reminder_service import ReminderSweeper
from clinic_booking.services.schedule_repository import ScheduleRepository
from clinic_booking.services.slot_service import SlotService

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


def build_services(app: FastAPI) -> None:
    """Wire the booking engine onto app.state; routes reach it through api.deps."""
    schedules = ScheduleRepository(async_session_maker)
    gateway = GoogleCalendarGateway(GoogleAccessTokenProvider())
    notifier = EmailNotifier()
    app.state.schedule_repository = schedules
    app.state.slot_service = SlotService(schedules, HolidayResolver(async_session_maker), gateway)
    app.state.booking_coordinator = BookingCoordinator(schedules, gateway, notifier, async_session_maker)
    app.state.reminder_sweeper = ReminderSweeper(schedules, gateway, notifier)


async def _run_reminder_sweep(sweeper: ReminderSweeper) -> None:
    try:
        summary = await sweeper.sweep()
        if summary.sent or summary.send_failed:
            logger.info("Reminder sweep: sent %d, failed %d", summary.sent, summary.send_failed)
    except Exception as e:
        logger.exception("Reminder sweep failed: %s", e)


async def _reminder_loop(sweeper: ReminderSweeper, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await _run_reminder_sweep(sweeper)


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_log()
    build_services(app)
    task = None
    if settings.reminder_sweep_interval_minutes > 0:
        # Background: sweep reminders every N minutes
        task = asyncio.create_task(
            _reminder_loop(app.state.reminder_sweeper, settings.reminder_sweep_interval_minutes * 60)
        )
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Clinic Booking API",
    description="Availability and booking engine: slots, bookings, reminders",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(slots.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(cron.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s (%s)", exc.code.value, request.method, request.url.path, exc.message, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.code.value},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"detail": message, "error_code": ErrorCode.INVALID_INPUT.value},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    detail = f"{type(exc).__name__}: {str(exc)}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers=headers,
    )


def startup_log() -> None:
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info("Clinic timezone: %s, schedule cache TTL: %ds", settings.clinic_timezone, settings.schedule_cache_ttl)
    if settings.google_calendar_configured:
        logger.info("Google Calendar: configured (refresh token set)")
    else:
        logger.warning(
            "Google Calendar: NOT configured. Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN in %s",
            _ENV_FILE,
        )
    if settings.reminder_sweep_interval_minutes > 0:
        logger.info("Reminder sweep: every %d minutes", settings.reminder_sweep_interval_minutes)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}

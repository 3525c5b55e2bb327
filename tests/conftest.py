"""Shared pytest fixtures for testing."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime

# Set test environment before the package reads settings
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CLINIC_TIMEZONE"] = "Asia/Hong_Kong"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["SMTP_HOST"] = ""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import clinic_booking.models  # noqa: F401 - register tables
from clinic_booking.models.schedule import ScheduleMapping, TimeRange
from clinic_booking.services.booking_service import BookingCoordinator
from clinic_booking.services.holiday_service import HolidayResolver
from clinic_booking.services.reminder_service import ReminderSweeper
from clinic_booking.services.schedule_repository import ScheduleRepository
from clinic_booking.services.slot_service import SlotService
from tests.fakes import FakeCalendarGateway, FakeNotifier

CALENDAR_ID = "chan-central@group.calendar.google.com"
# 2026-03-16 is a Monday
MONDAY = "2026-03-16"
# a week before, so MONDAY is never "today"
FAR_PAST_NOW = datetime(2026, 3, 9, 0, 0, tzinfo=UTC)


def monday_mapping(calendar_id: str = CALENDAR_ID) -> ScheduleMapping:
    return ScheduleMapping(
        doctor_id="chan",
        clinic_id="central",
        calendar_id=calendar_id,
        is_active=True,
        schedule={1: (TimeRange("09:00", "12:00"),)},
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every session in one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def gateway() -> FakeCalendarGateway:
    return FakeCalendarGateway()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def schedules(session_maker) -> ScheduleRepository:
    return ScheduleRepository(session_maker, ttl_seconds=120, fallback=lambda: [monday_mapping()])


@pytest.fixture
def slot_service(schedules, session_maker, gateway) -> SlotService:
    return SlotService(schedules, HolidayResolver(session_maker), gateway)


@pytest.fixture
def coordinator(schedules, gateway, notifier, session_maker) -> BookingCoordinator:
    return BookingCoordinator(schedules, gateway, notifier, session_maker, revalidation_timeout=0.5)


@pytest.fixture
def sweeper(schedules, gateway, notifier) -> ReminderSweeper:
    return ReminderSweeper(schedules, gateway, notifier, clock=lambda: FAR_PAST_NOW)

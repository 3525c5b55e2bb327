"""Booking Coordinator: commit, reschedule, cancel and look up bookings.

The calendar event is the source of truth for a booking. Intake rows,
follow-up links and emails are side records written after the calendar
write and never turn a successful booking into a failure.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_booking.core.clinic_time import local_date_and_time, local_to_utc, parse_local_date, parse_local_time
from clinic_booking.core.clinics import get_clinic, get_doctor
from clinic_booking.core.config import settings
from clinic_booking.core.errors import (
    BookingNotFoundError,
    CalendarError,
    CalendarNotFoundError,
    FailureClass,
    InvalidInputError,
    ScheduleNotFoundError,
    SlotTakenError,
    resolve_failure,
)
from clinic_booking.models.booking_intake import BookingIntakeCreate
from clinic_booking.models.calendar_event import CalendarEvent, EventDetails
from clinic_booking.services import follow_up_service, intake_service
from clinic_booking.services.calendar_gateway import CalendarGateway
from clinic_booking.services.email_service import EmailNotifier
from clinic_booking.services.event_description import (
    DESCRIPTION_VERSION,
    BookingEventData,
    decode_description,
    encode_description,
)
from clinic_booking.services.schedule_repository import ScheduleRepository
from clinic_booking.services.slot_service import subtract_interval, validate_duration, window_is_free

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PatientDetails:
    name: str
    phone: str
    email: str
    notes: str | None = None
    user_id: str | None = None


@dataclass
class BookingRequest:
    doctor_id: str
    clinic_id: str
    date: str
    time: str
    duration_minutes: int
    patient: PatientDetails
    source: str = "api"


@dataclass
class BookingConfirmation:
    event_id: str
    calendar_id: str
    intake_id: int | None = None


@dataclass
class BookingDetails:
    event_id: str
    calendar_id: str
    status: str
    date: str | None
    time: str | None
    duration_minutes: int | None
    data: BookingEventData | None


def _window(date_str: str, time_str: str, duration_minutes: int) -> tuple[date, datetime, datetime]:
    d = parse_local_date(date_str)
    t = parse_local_time(time_str)
    validate_duration(duration_minutes)
    start = local_to_utc(d, t)
    return d, start, start + timedelta(minutes=duration_minutes)


class BookingCoordinator:
    def __init__(
        self,
        schedules: ScheduleRepository,
        gateway: CalendarGateway,
        notifier: EmailNotifier,
        session_maker: async_sessionmaker[AsyncSession],
        revalidation_timeout: float | None = None,
    ) -> None:
        self._schedules = schedules
        self._gateway = gateway
        self._notifier = notifier
        self._session_maker = session_maker
        self._revalidation_timeout = revalidation_timeout or settings.calendar_timeout_seconds
        # one writer per calendar at a time within this process
        self._calendar_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _in_session(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        async with self._session_maker() as session:
            try:
                result = await fn(session, *args)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise

    async def _best_effort(
        self, failure_class: FailureClass, context: str, fn: Callable[..., Awaitable[T]], *args: Any
    ) -> T | None:
        try:
            return await self._in_session(fn, *args)
        except Exception as e:
            resolve_failure(failure_class, e, context)
            return None

    async def _fetch_busy(self, calendar_id: str, d: date):
        try:
            return await asyncio.wait_for(
                self._gateway.get_free_busy(calendar_id, d), timeout=self._revalidation_timeout
            )
        except Exception as e:
            resolve_failure(FailureClass.REVALIDATION, e, f"calendar {calendar_id} on {d.isoformat()}")
            raise

    async def _notify(self, what: str, send: Awaitable[bool]) -> None:
        try:
            sent = await send
        except Exception as e:
            resolve_failure(FailureClass.NOTIFICATION, e, what)
            return
        if not sent:
            logger.warning("%s email was not sent", what)

    async def commit_booking(self, request: BookingRequest) -> BookingConfirmation:
        mapping = await self._schedules.get_schedule_mapping(request.doctor_id, request.clinic_id)
        if mapping is None or not mapping.is_usable:
            raise ScheduleNotFoundError("No active schedule for this doctor at the selected clinic")

        d, start, end = _window(request.date, request.time, request.duration_minutes)
        patient = request.patient
        if not patient.name.strip() or not patient.phone.strip() or not patient.email.strip():
            raise InvalidInputError("Patient name, phone and email are required")
        calendar_id = mapping.calendar_id
        doctor = get_doctor(request.doctor_id)
        clinic = get_clinic(request.clinic_id)

        data = BookingEventData(
            patient_name=patient.name.strip(),
            phone=patient.phone.strip(),
            email=patient.email.strip().lower(),
            doctor_id=doctor.id,
            doctor_name=doctor.name_en,
            doctor_name_zh=doctor.name_zh,
            clinic_id=clinic.id,
            clinic_name=clinic.name_en,
            clinic_name_zh=clinic.name_zh,
            patient_user_id=patient.user_id,
        )

        intake = await self._best_effort(
            FailureClass.INTAKE_WRITE,
            "create pending intake",
            intake_service.create_pending_intake,
            BookingIntakeCreate(
                source=request.source,
                patient_user_id=patient.user_id,
                doctor_id=doctor.id,
                doctor_name_zh=doctor.name_zh,
                clinic_id=clinic.id,
                clinic_name_zh=clinic.name_zh,
                appointment_date=d,
                appointment_time=request.time,
                duration_minutes=request.duration_minutes,
                patient_name=data.patient_name,
                phone=data.phone,
                email=data.email,
                notes=patient.notes,
            ),
        )
        intake_id = intake.id if intake else None

        async with self._calendar_locks[calendar_id]:
            try:
                busy = await self._fetch_busy(calendar_id, d)
                if not window_is_free(start, end, busy):
                    raise SlotTakenError("This time slot has just been booked. Please choose another time.")
                event_id = await self._create_event(calendar_id, data, patient.notes, start, end)
            except Exception as e:
                await self._mark_failed(intake_id, e)
                raise

        logger.info("Booked %s/%s %s %s on %s as %s", doctor.id, clinic.id, request.date, request.time, calendar_id, event_id)

        await self._notify(
            "Booking confirmation",
            self._notifier.send_confirmation(data, d, request.time, request.duration_minutes, event_id, calendar_id),
        )
        if patient.user_id:
            await self._best_effort(
                FailureClass.FOLLOW_UP_LINK, "link follow-up plan",
                follow_up_service.link_follow_up_plan, patient.user_id, d, event_id,
            )
        if intake_id is not None:
            await self._best_effort(
                FailureClass.INTAKE_WRITE, "confirm intake",
                intake_service.mark_intake_confirmed, intake_id, event_id, calendar_id,
            )
        return BookingConfirmation(event_id=event_id, calendar_id=calendar_id, intake_id=intake_id)

    async def _create_event(
        self, calendar_id: str, data: BookingEventData, notes: str | None, start: datetime, end: datetime
    ) -> str:
        details = EventDetails(
            summary=f"{data.clinic_name_zh} - {data.patient_name}",
            description=encode_description(data, notes),
            start=start,
            end=end,
            private_metadata={
                "booking_version": str(DESCRIPTION_VERSION),
                "doctor_id": data.doctor_id,
                "clinic_id": data.clinic_id,
            },
        )
        try:
            return await self._gateway.create_event(calendar_id, details)
        except Exception as e:
            resolve_failure(FailureClass.EVENT_WRITE, e, f"create event on {calendar_id}")
            raise

    async def _mark_failed(self, intake_id: int | None, exc: Exception) -> None:
        if intake_id is None:
            return
        reason = getattr(exc, "code", None)
        reason = reason.value.lower() if reason is not None else type(exc).__name__
        await self._best_effort(
            FailureClass.INTAKE_WRITE, "mark intake failed",
            intake_service.mark_intake_failed, intake_id, reason,
        )

    async def _load_event(self, calendar_id: str, event_id: str) -> CalendarEvent:
        if not calendar_id or not event_id:
            raise InvalidInputError("event_id and calendar_id are required")
        try:
            event = await self._gateway.get_event(calendar_id, event_id)
        except CalendarNotFoundError as e:
            raise BookingNotFoundError("Booking not found") from e
        except CalendarError:
            raise
        except Exception as e:
            raise CalendarError("Failed to load booking", detail=str(e)) from e
        if event.is_cancelled:
            raise BookingNotFoundError("Booking not found")
        return event

    async def get_booking(self, event_id: str, calendar_id: str) -> BookingDetails:
        event = await self._load_event(calendar_id, event_id)
        local_date = local_time = None
        duration = None
        if event.start is not None:
            start_date, local_time = local_date_and_time(event.start)
            local_date = start_date.isoformat()
            if event.end is not None:
                duration = int((event.end - event.start).total_seconds() // 60)
        return BookingDetails(
            event_id=event.id or event_id,
            calendar_id=calendar_id,
            status=event.status,
            date=local_date,
            time=local_time,
            duration_minutes=duration,
            data=decode_description(event.description),
        )

    async def reschedule_booking(
        self,
        event_id: str,
        calendar_id: str,
        new_date: str,
        new_time: str,
        duration_minutes: int,
    ) -> BookingConfirmation:
        d, start, end = _window(new_date, new_time, duration_minutes)
        event = await self._load_event(calendar_id, event_id)

        async with self._calendar_locks[calendar_id]:
            busy = await self._fetch_busy(calendar_id, d)
            if event.start is not None and event.end is not None:
                # the booking being moved does not conflict with itself
                busy = subtract_interval(busy, event.start, event.end)
            if not window_is_free(start, end, busy):
                raise SlotTakenError("The selected time is no longer available. Please choose another time.")
            try:
                await self._gateway.update_event(calendar_id, event_id, start, end)
            except CalendarNotFoundError as e:
                raise BookingNotFoundError("Booking not found") from e
            except Exception as e:
                resolve_failure(FailureClass.EVENT_WRITE, e, f"update event {event_id}")
                raise

        logger.info("Rescheduled %s on %s to %s %s", event_id, calendar_id, new_date, new_time)
        await self._best_effort(
            FailureClass.INTAKE_WRITE, "sync rescheduled intake",
            intake_service.mark_intake_rescheduled_by_event,
            event_id, calendar_id, d, new_time, duration_minutes,
        )
        data = decode_description(event.description)
        if data is not None:
            await self._notify(
                "Reschedule confirmation",
                self._notifier.send_confirmation(
                    data, d, new_time, duration_minutes, event_id, calendar_id, rescheduled=True
                ),
            )
        else:
            logger.warning("Event %s has no booking data; skipping reschedule email", event_id)
        return BookingConfirmation(event_id=event_id, calendar_id=calendar_id)

    async def cancel_booking(self, event_id: str, calendar_id: str) -> None:
        if not calendar_id or not event_id:
            raise InvalidInputError("event_id and calendar_id are required")
        # only needed for the cancellation email
        event: CalendarEvent | None = None
        try:
            event = await self._gateway.get_event(calendar_id, event_id)
        except Exception as e:
            logger.warning("Could not load event %s before cancelling: %s", event_id, e)

        try:
            await self._gateway.delete_event(calendar_id, event_id)
        except CalendarNotFoundError as e:
            raise BookingNotFoundError("Booking not found") from e
        except Exception as e:
            resolve_failure(FailureClass.EVENT_WRITE, e, f"delete event {event_id}")
            raise

        logger.info("Cancelled %s on %s", event_id, calendar_id)
        await self._best_effort(
            FailureClass.INTAKE_WRITE, "sync cancelled intake",
            intake_service.mark_intake_cancelled_by_event, event_id, calendar_id,
        )
        if event is None or event.is_cancelled:
            return
        data = decode_description(event.description)
        if data is not None and event.start is not None:
            d, time_str = local_date_and_time(event.start)
            await self._notify("Cancellation", self._notifier.send_cancellation(data, d, time_str))

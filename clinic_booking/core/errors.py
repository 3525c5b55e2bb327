"""Booking error taxonomy and the failure policy table.

Each failure class a component can hit is mapped once, here, to what the
engine does about it. Components call :func:`resolve_failure` instead of
deciding fail-open / fail-closed at the call site.
"""
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_BOOKABLE = "NOT_BOOKABLE"
    SCHEDULE_NOT_FOUND = "SCHEDULE_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    SLOT_TAKEN = "SLOT_TAKEN"
    CALENDAR_ERROR = "CALENDAR_ERROR"
    DATASTORE_ERROR = "DATASTORE_ERROR"


class BookingError(Exception):
    code: ErrorCode = ErrorCode.CALENDAR_ERROR
    status_code: int = 500

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidInputError(BookingError):
    code = ErrorCode.INVALID_INPUT
    status_code = 400


class NotBookableError(BookingError):
    code = ErrorCode.NOT_BOOKABLE
    status_code = 404


class ScheduleNotFoundError(BookingError):
    code = ErrorCode.SCHEDULE_NOT_FOUND
    status_code = 404


class BookingNotFoundError(BookingError):
    code = ErrorCode.BOOKING_NOT_FOUND
    status_code = 404


class SlotTakenError(BookingError):
    code = ErrorCode.SLOT_TAKEN
    status_code = 409


class CalendarError(BookingError):
    """Upstream calendar provider failure (timeouts included). Retryable."""

    code = ErrorCode.CALENDAR_ERROR
    status_code = 503


class CalendarNotFoundError(CalendarError):
    """The provider answered 404 for a calendar or event."""


class DatastoreError(BookingError):
    code = ErrorCode.DATASTORE_ERROR
    status_code = 503


class FailureClass(str, Enum):
    SCHEDULE_READ = "schedule_read"
    HOLIDAY_READ = "holiday_read"
    FREEBUSY_READ = "freebusy_read"
    REVALIDATION = "revalidation"
    EVENT_WRITE = "event_write"
    INTAKE_WRITE = "intake_write"
    NOTIFICATION = "notification"
    FOLLOW_UP_LINK = "follow_up_link"
    REMINDER_FLAG = "reminder_flag"


class FailurePolicy(str, Enum):
    FALLBACK = "fallback"  # use bundled static data
    FAIL_OPEN = "fail_open"  # proceed as if no restriction applies
    FAIL_CLOSED = "fail_closed"  # refuse the operation with a typed error
    BEST_EFFORT = "best_effort"  # log and carry on; never user-facing


FAILURE_POLICIES: dict[FailureClass, tuple[FailurePolicy, type[BookingError]]] = {
    FailureClass.SCHEDULE_READ: (FailurePolicy.FALLBACK, DatastoreError),
    FailureClass.HOLIDAY_READ: (FailurePolicy.FAIL_OPEN, DatastoreError),
    FailureClass.FREEBUSY_READ: (FailurePolicy.FAIL_CLOSED, CalendarError),
    FailureClass.REVALIDATION: (FailurePolicy.FAIL_CLOSED, CalendarError),
    FailureClass.EVENT_WRITE: (FailurePolicy.FAIL_CLOSED, CalendarError),
    FailureClass.INTAKE_WRITE: (FailurePolicy.BEST_EFFORT, DatastoreError),
    FailureClass.NOTIFICATION: (FailurePolicy.BEST_EFFORT, BookingError),
    FailureClass.FOLLOW_UP_LINK: (FailurePolicy.BEST_EFFORT, DatastoreError),
    FailureClass.REMINDER_FLAG: (FailurePolicy.BEST_EFFORT, CalendarError),
}


def policy_for(failure_class: FailureClass) -> FailurePolicy:
    return FAILURE_POLICIES[failure_class][0]


def resolve_failure(failure_class: FailureClass, exc: Exception, context: str = "") -> None:
    """Apply the table: return if the failure is absorbed, raise if it is not.

    Fail-closed classes re-raise ``exc`` when it already is the mapped error
    type, otherwise wrap it so callers only ever see a :class:`BookingError`.
    """
    policy, error_cls = FAILURE_POLICIES[failure_class]
    if policy is FailurePolicy.FAIL_CLOSED:
        logger.error("%s failed (%s): %s", failure_class.value, context, exc)
        if isinstance(exc, error_cls):
            raise exc
        raise error_cls(f"{failure_class.value} failed", detail=str(exc)) from exc
    logger.warning(
        "%s failed (%s), policy=%s: %s", failure_class.value, context, policy.value, exc
    )

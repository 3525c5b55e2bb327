from clinic_booking.models.booking_intake import BookingIntake, BookingIntakeCreate, BookingIntakeStatus
from clinic_booking.models.calendar_event import BusyInterval, CalendarEvent, EventDetails
from clinic_booking.models.follow_up import FollowUpPlan, FollowUpStatus
from clinic_booking.models.holiday import Holiday
from clinic_booking.models.schedule import DoctorSchedule, ScheduleMapping, TimeRange, WeeklySchedule

__all__ = [
    "BookingIntake",
    "BookingIntakeCreate",
    "BookingIntakeStatus",
    "BusyInterval",
    "CalendarEvent",
    "EventDetails",
    "FollowUpPlan",
    "FollowUpStatus",
    "Holiday",
    "DoctorSchedule",
    "ScheduleMapping",
    "TimeRange",
    "WeeklySchedule",
]

"""Bundled default schedule mappings.

Used when the doctor_schedules table is unreachable or empty, so availability
degrades to the last shipped timetable instead of going dark.
"""
from clinic_booking.models.schedule import ScheduleMapping, TimeRange, WeeklySchedule


def _week(**days: list[tuple[str, str]]) -> WeeklySchedule:
    names = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
    return {
        i: tuple(TimeRange(start, end) for start, end in days.get(name, []))
        for i, name in enumerate(names)
    }


CALENDAR_MAPPINGS: tuple[ScheduleMapping, ...] = (
    # Dr. Chau
    ScheduleMapping(
        "chau", "central",
        "a8b20307316b7d558eb2d01e1adaf3ed4bf3210152e43bc36fccad1da1089754@group.calendar.google.com",
        True,
        _week(mon=[("11:00", "14:00")], tue=[("11:00", "14:00")], wed=[("11:00", "14:00")]),
    ),
    ScheduleMapping(
        "chau", "jordan",
        "40cb62a1e50a16724e785554027785b0b1b041a4b8dffea974d0a2d243c0985f@group.calendar.google.com",
        True,
        _week(tue=[("15:00", "19:00")], thu=[("15:00", "19:00")], fri=[("15:00", "19:00")]),
    ),
    ScheduleMapping(
        "chau", "online",
        "a8b20307316b7d558eb2d01e1adaf3ed4bf3210152e43bc36fccad1da1089754@group.calendar.google.com",
        True,
        _week(
            mon=[("10:00", "12:00")], tue=[("10:00", "12:00")], wed=[("10:00", "12:00")],
            thu=[("10:00", "12:00")], fri=[("10:00", "12:00")],
        ),
    ),
    # Dr. Lee
    ScheduleMapping(
        "lee", "central",
        "f1cabc3fe412870f97fc6d1b8c4cfc297727071bd9dccfcaaa1ef3aba4080c48@group.calendar.google.com",
        True,
        _week(
            mon=[("15:30", "20:00")], tue=[("15:30", "19:00")],
            wed=[("11:00", "13:30"), ("15:30", "19:00")],
        ),
    ),
    ScheduleMapping(
        "lee", "jordan",
        "5f26cf9dc01ffe7daf609d3dfb7c17460ac2d83e79099c924a9e92ec1e974c97@group.calendar.google.com",
        True,
        _week(
            thu=[("11:00", "14:00"), ("15:30", "19:00")],
            fri=[("11:00", "14:00"), ("15:30", "19:00")],
            sat=[("10:00", "13:00")],
        ),
    ),
    ScheduleMapping(
        "lee", "tsuenwan",
        "00675921f690d3dfd53efaa89b916768890c310a9027b8818d7a1763cd1b07ea@group.calendar.google.com",
        True,
        _week(mon=[("10:00", "14:00")]),
    ),
    ScheduleMapping(
        "lee", "online",
        "primary-calendar-lee-online@group.calendar.google.com",
        True,
        _week(
            mon=[("20:00", "23:00")], tue=[("20:00", "21:00")], wed=[("20:00", "21:00")],
            thu=[("20:00", "21:00")], fri=[("20:00", "21:00")],
        ),
    ),
    # Dr. Chan
    ScheduleMapping(
        "chan", "central",
        "b3dd85b8d679e420cd80e595d4442c9f779e26678fe9b3eebe7f11cfc33eb032@group.calendar.google.com",
        True,
        _week(mon=[("11:00", "14:00")], tue=[("11:00", "14:00")]),
    ),
    ScheduleMapping(
        "chan", "jordan",
        "q65lm70v5v733drnuii13ok2u8@group.calendar.google.com",
        True,
        _week(
            wed=[("15:00", "19:00")], thu=[("15:00", "19:00")], fri=[("15:00", "19:00")],
            sat=[("10:00", "14:00")],
        ),
    ),
    ScheduleMapping(
        "chan", "tsuenwan",
        "a7p2f7o664nel4p94sbj3istns@group.calendar.google.com",
        True,
        _week(mon=[("15:00", "18:00")], tue=[("15:00", "18:00")]),
    ),
    ScheduleMapping(
        "chan", "online",
        "b3dd85b8d679e420cd80e595d4442c9f779e26678fe9b3eebe7f11cfc33eb032@group.calendar.google.com",
        True,
        _week(
            mon=[("20:00", "21:00")], tue=[("20:00", "21:00")], wed=[("20:00", "21:00")],
            thu=[("20:00", "21:00")], fri=[("20:00", "21:00")],
        ),
    ),
    # Dr. Hon
    ScheduleMapping(
        "hon", "central",
        "032435361d8f90c72b278f94d462622adae3633939f46f1dcc508493f14ad1ed@group.calendar.google.com",
        True,
        _week(wed=[("15:00", "19:00")], thu=[("15:00", "19:00")], fri=[("15:00", "19:00")]),
    ),
    ScheduleMapping(
        "hon", "jordan",
        "8722c3b55b390f936e659695115607387057e71b395c86187089a1a2c55e17b9@group.calendar.google.com",
        True,
        _week(
            mon=[("11:00", "14:00"), ("15:30", "19:00")],
            tue=[("11:00", "14:00"), ("15:30", "19:00")],
            sat=[("10:00", "14:00")],
        ),
    ),
    ScheduleMapping(
        "hon", "tsuenwan",
        "79e5638e12bd9579183595c7baad1eb44d1a27036a3d2686432d155abd04c044@group.calendar.google.com",
        True,
        _week(wed=[("10:00", "13:00")]),
    ),
    ScheduleMapping(
        "hon", "online",
        "032435361d8f90c72b278f94d462622adae3633939f46f1dcc508493f14ad1ed@group.calendar.google.com",
        True,
        _week(
            mon=[("20:00", "21:00")], tue=[("20:00", "21:00")], wed=[("20:00", "21:00")],
            thu=[("20:00", "21:00")], fri=[("20:00", "21:00")],
        ),
    ),
    # Dr. Cheung: video consultations paused, calendars kept for existing bookings
    ScheduleMapping("cheung", "central", "1n6d816lab7isce87ma0ua8qoc@group.calendar.google.com", True, _week()),
    ScheduleMapping("cheung", "jordan", "r0ea9kabll5gdc7ll2s13n5hko@group.calendar.google.com", True, _week()),
    # Dr. Leung
    ScheduleMapping("leung", "central", "117uj7jkd40t0otf9aekvscm84@group.calendar.google.com", True, _week()),
    ScheduleMapping("leung", "jordan", "a7b5r8c6pfslia0sefcu1f4c38@group.calendar.google.com", True, _week()),
    ScheduleMapping("leung", "tsuenwan", "ibk3t07kqhdvp5lfvpim401vqo@group.calendar.google.com", True, _week()),
)


def static_fallback_mappings() -> list[ScheduleMapping]:
    return [m.copy() for m in CALENDAR_MAPPINGS if m.is_active]

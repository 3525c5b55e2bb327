from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class BusyInterval:
    """Occupied range reported by the external calendar. Aware UTC, half-open."""

    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start


@dataclass
class EventDetails:
    """What the Coordinator writes when it creates a calendar event."""

    summary: str
    description: str
    start: datetime
    end: datetime
    private_metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CalendarEvent:
    id: str
    status: str
    summary: str
    description: str
    start: datetime | None
    end: datetime | None
    private_metadata: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

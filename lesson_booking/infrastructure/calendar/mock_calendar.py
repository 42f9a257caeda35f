from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from lesson_booking.application.exceptions import RemoteWriteError
from lesson_booking.application.ports.calendar import CalendarPort


@dataclass(frozen=True)
class MockCalendarEvent:
    id: str
    start: datetime
    end: datetime
    title: str
    description: str | None
    event_type: str
    created_by: str | None
    hub_id: str | None


class MockCalendar(CalendarPort):
    def __init__(self) -> None:
        self._events: dict[str, MockCalendarEvent] = {}
        self._counter = 0
        self._logger = logging.getLogger(__name__)

    def create_event(
        self,
        start: datetime,
        end: datetime,
        title: str,
        description: str | None = None,
        event_type: str = "private_lesson",
        created_by: str | None = None,
        hub_id: str | None = None,
    ) -> str:
        self._counter += 1
        event_id = f"mock_event_{self._counter}"
        self._events[event_id] = MockCalendarEvent(
            id=event_id,
            start=start,
            end=end,
            title=title,
            description=description,
            event_type=event_type,
            created_by=created_by,
            hub_id=hub_id,
        )
        self._logger.info(
            "Mock calendar event created",
            extra={
                "calendar_event_id": event_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "title": title,
            },
        )
        return event_id

    def delete_event(self, event_id: str) -> None:
        if event_id not in self._events:
            raise RemoteWriteError(f"Calendar event {event_id} not found")
        del self._events[event_id]
        self._logger.info("Mock calendar event deleted", extra={"calendar_event_id": event_id})

    def get_event(self, event_id: str) -> MockCalendarEvent | None:
        return self._events.get(event_id)

    def events(self) -> list[MockCalendarEvent]:
        return list(self._events.values())

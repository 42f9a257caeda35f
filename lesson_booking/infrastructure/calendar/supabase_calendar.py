from __future__ import annotations

import logging
from datetime import datetime

from lesson_booking.application.exceptions import RemoteWriteError
from lesson_booking.application.ports.calendar import CalendarPort
from lesson_booking.infrastructure.supabase.postgrest_client import PostgrestClient


class SupabaseCalendar(CalendarPort):
    """Writes lesson entries into the hub's shared `events` table."""

    def __init__(self, client: PostgrestClient) -> None:
        self._client = client
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
        row = self._client.insert(
            "events",
            {
                "hub_id": hub_id,
                "title": title,
                "description": description,
                "start_time": start.isoformat(),
                "end_time": end.isoformat(),
                "type": event_type,
                "rsvp_enabled": False,
                "created_by": created_by,
            },
        )
        event_id = row.get("id")
        if not event_id:
            raise RemoteWriteError("No event ID returned from the events table")
        self._logger.info("Calendar event created", extra={"calendar_event_id": event_id, "title": title})
        return str(event_id)

    def delete_event(self, event_id: str) -> None:
        self._client.delete("events", {"id": f"eq.{event_id}"})
        self._logger.info("Calendar event deleted", extra={"calendar_event_id": event_id})

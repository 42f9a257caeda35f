from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class CalendarPort(ABC):
    @abstractmethod
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
        """Create calendar event. Returns event_id. Raises RemoteWriteError."""
        raise NotImplementedError

    @abstractmethod
    def delete_event(self, event_id: str) -> None:
        """Delete calendar event. Raises RemoteWriteError."""
        raise NotImplementedError

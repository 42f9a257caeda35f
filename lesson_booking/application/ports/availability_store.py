from __future__ import annotations

from abc import ABC, abstractmethod

from lesson_booking.domain.entities.availability import LessonAvailability


class AvailabilityStorePort(ABC):
    @abstractmethod
    def add_window(self, window: LessonAvailability) -> LessonAvailability:
        raise NotImplementedError

    @abstractmethod
    def deactivate_window(self, window_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_windows(self, hub_id: str, coach_user_id: str | None = None) -> list[LessonAvailability]:
        """Active windows ordered by day_of_week then start_time."""
        raise NotImplementedError

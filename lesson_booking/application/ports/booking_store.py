from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from lesson_booking.domain.entities.lesson_booking import LessonBooking


class BookingStorePort(ABC):
    @abstractmethod
    def create_booking(self, booking: LessonBooking) -> LessonBooking:
        """Insert a booking row. The store assigns the id when booking.id is empty."""
        raise NotImplementedError

    @abstractmethod
    def get_booking(self, booking_id: str) -> LessonBooking | None:
        raise NotImplementedError

    @abstractmethod
    def cancel(
        self,
        booking_id: str,
        cancelled_by: str,
        cancelled_at: datetime,
        reason: str | None = None,
    ) -> LessonBooking:
        """
        Conditional update: only a confirmed booking transitions to cancelled.
        Raises BookingNotFoundError for unknown ids and BookingStateError otherwise.
        """
        raise NotImplementedError

    @abstractmethod
    def list_for_user(self, hub_id: str, user_id: str) -> list[LessonBooking]:
        """Bookings made by user_id, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_for_slots(self, hub_id: str, slot_ids: list[str]) -> list[LessonBooking]:
        """Bookings on any of slot_ids, newest first."""
        raise NotImplementedError

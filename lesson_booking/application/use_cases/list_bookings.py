from __future__ import annotations

from lesson_booking.application.ports.booking_store import BookingStorePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.domain.entities.lesson_booking import LessonBooking


class ListBookingsUseCase:
    def __init__(self, bookings: BookingStorePort, slots: SlotRegistryPort) -> None:
        self._bookings = bookings
        self._slots = slots

    def for_user(self, hub_id: str, user_id: str) -> list[LessonBooking]:
        return self._bookings.list_for_user(hub_id, user_id)

    def for_coach(self, hub_id: str, coach_user_id: str) -> list[LessonBooking]:
        # Bookings only reference slots, so filter through the coach's slot ids
        slot_ids = self._slots.list_slot_ids_for_coach(hub_id, coach_user_id)
        if not slot_ids:
            return []
        return self._bookings.list_for_slots(hub_id, slot_ids)

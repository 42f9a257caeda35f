from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from lesson_booking.application.exceptions import BookingNotFoundError, BookingStateError
from lesson_booking.application.ports.booking_store import BookingStorePort
from lesson_booking.application.ports.calendar import CalendarPort
from lesson_booking.application.ports.reconciliation_queue import ReconciliationQueuePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.domain.entities.lesson_booking import LessonBooking
from lesson_booking.domain.entities.side_effect import ReconciliationItem, SideEffectResult


@dataclass(frozen=True)
class CancellationOutcome:
    booking: LessonBooking
    side_effects: list[SideEffectResult] = field(default_factory=list)


class CancelBookingUseCase:
    """
    confirmed -> cancelled.

    The status update is the primary write and is conditional in the store, so a
    second cancel raises BookingStateError instead of overwriting the audit fields.
    Calendar deletion and seat release run afterwards and never undo the cancel.
    """

    def __init__(
        self,
        calendar: CalendarPort,
        slots: SlotRegistryPort,
        bookings: BookingStorePort,
        reconciliation: ReconciliationQueuePort,
    ) -> None:
        self._calendar = calendar
        self._slots = slots
        self._bookings = bookings
        self._reconciliation = reconciliation
        self._logger = logging.getLogger(__name__)

    def cancel(self, booking_id: str, actor_id: str, reason: str | None = None) -> CancellationOutcome:
        existing = self._bookings.get_booking(booking_id)
        if existing is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        if existing.is_cancelled:
            raise BookingStateError("This booking is already cancelled")

        cleaned_reason = (reason or "").strip() or None
        cancelled = self._bookings.cancel(
            booking_id,
            cancelled_by=actor_id,
            cancelled_at=datetime.now(timezone.utc),
            reason=cleaned_reason,
        )
        self._logger.info(
            "Booking cancelled",
            extra={"booking_id": booking_id, "calendar_event_id": cancelled.calendar_event_id},
        )

        side_effects: list[SideEffectResult] = []
        if cancelled.calendar_event_id:
            side_effects.append(self._delete_calendar_event(cancelled))
        side_effects.append(self._release_seat(cancelled))
        return CancellationOutcome(booking=cancelled, side_effects=side_effects)

    def _delete_calendar_event(self, booking: LessonBooking) -> SideEffectResult:
        event_id = booking.calendar_event_id or ""
        try:
            self._calendar.delete_event(event_id)
            return SideEffectResult(name="delete_calendar_event", ok=True, target_id=event_id)
        except Exception as e:
            self._logger.warning(
                "Calendar event left behind after cancellation",
                extra={"booking_id": booking.id, "calendar_event_id": event_id, "error": str(e)},
            )
            self._enqueue("orphaned_calendar_event", event_id, str(e), booking)
            return SideEffectResult(name="delete_calendar_event", ok=False, target_id=event_id, error=str(e))

    def _release_seat(self, booking: LessonBooking) -> SideEffectResult:
        slot_id = booking.lesson_slot_id
        try:
            self._slots.release_seat(slot_id)
            return SideEffectResult(name="release_seat", ok=True, target_id=slot_id)
        except Exception as e:
            self._logger.warning(
                "Seat release failed after cancellation",
                extra={"booking_id": booking.id, "slot_id": slot_id, "error": str(e)},
            )
            self._enqueue("seat_release", slot_id, str(e), booking)
            return SideEffectResult(name="release_seat", ok=False, target_id=slot_id, error=str(e))

    def _enqueue(self, kind: str, target_id: str, reason: str, booking: LessonBooking) -> None:
        self._reconciliation.enqueue(
            ReconciliationItem(
                kind=kind,
                target_id=target_id,
                reason=reason,
                payload={"booking_id": booking.id},
                created_at=datetime.now(timezone.utc),
            )
        )

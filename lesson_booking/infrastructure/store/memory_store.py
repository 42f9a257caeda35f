from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import date, datetime, time

from lesson_booking.application.exceptions import (
    BookingNotFoundError,
    BookingStateError,
    SlotNotFoundError,
    VersionConflictError,
)
from lesson_booking.application.ports.availability_store import AvailabilityStorePort
from lesson_booking.application.ports.booking_store import BookingStorePort
from lesson_booking.application.ports.catalog_store import CatalogStorePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.domain.entities.availability import LessonAvailability
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.lesson_booking import LessonBooking
from lesson_booking.domain.entities.lesson_package import LessonPackage
from lesson_booking.domain.entities.lesson_slot import LessonSlot


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryCatalogStore(CatalogStorePort):
    def __init__(self) -> None:
        self._profiles: dict[tuple[str, str], CoachLessonProfile] = {}
        self._packages: dict[str, LessonPackage] = {}

    def get_profile(self, hub_id: str, coach_user_id: str) -> CoachLessonProfile | None:
        return self._profiles.get((hub_id, coach_user_id))

    def list_active_profiles(self, hub_id: str) -> list[CoachLessonProfile]:
        return [p for (hub, _), p in self._profiles.items() if hub == hub_id and p.is_active]

    def upsert_profile(self, profile: CoachLessonProfile) -> CoachLessonProfile:
        key = (profile.hub_id, profile.coach_user_id)
        existing = self._profiles.get(key)
        stored = replace(profile, id=profile.id or (existing.id if existing else None) or _new_id())
        self._profiles[key] = stored
        return stored

    def list_packages(self, hub_id: str, coach_user_id: str, active_only: bool = False) -> list[LessonPackage]:
        packages = [
            p
            for p in self._packages.values()
            if p.hub_id == hub_id and p.coach_user_id == coach_user_id and (p.is_active or not active_only)
        ]
        return sorted(packages, key=lambda p: p.sort_order)

    def upsert_package(self, package: LessonPackage) -> LessonPackage:
        stored = package if package.id else replace(package, id=_new_id())
        self._packages[stored.id or ""] = stored
        return stored

    def delete_packages(self, package_ids: list[str]) -> None:
        for package_id in package_ids:
            self._packages.pop(package_id, None)


class MemorySlotRegistry(SlotRegistryPort):
    def __init__(self) -> None:
        self._slots: dict[str, LessonSlot] = {}
        self._lock = threading.Lock()

    def get_slot(self, slot_id: str) -> LessonSlot | None:
        return self._slots.get(slot_id)

    def create_slot(self, slot: LessonSlot) -> LessonSlot:
        stored = slot if slot.id else replace(slot, id=_new_id())
        with self._lock:
            self._slots[stored.id] = stored
        return stored

    def list_slots(
        self,
        hub_id: str,
        start_date: date,
        end_date: date,
        coach_user_id: str | None = None,
        include_cancelled: bool = False,
    ) -> list[LessonSlot]:
        return sorted(
            (
                s
                for s in self._slots.values()
                if s.hub_id == hub_id
                and start_date <= s.slot_date <= end_date
                and (coach_user_id is None or s.coach_user_id == coach_user_id)
                and (include_cancelled or not s.is_cancelled)
            ),
            key=lambda s: (s.slot_date, s.start_time),
        )

    def list_slot_ids_for_coach(self, hub_id: str, coach_user_id: str) -> list[str]:
        return [s.id for s in self._slots.values() if s.hub_id == hub_id and s.coach_user_id == coach_user_id]

    def claim_seat(self, slot_id: str, expected_version: int) -> LessonSlot:
        with self._lock:
            slot = self._require(slot_id)
            if slot.version != expected_version:
                raise VersionConflictError(
                    f"Slot {slot_id} is at version {slot.version}, expected {expected_version}"
                )
            updated = replace(slot, booked_count=slot.booked_count + 1, version=slot.version + 1)
            self._slots[slot_id] = updated
            return updated

    def release_seat(self, slot_id: str) -> LessonSlot:
        with self._lock:
            slot = self._require(slot_id)
            updated = replace(slot, booked_count=max(0, slot.booked_count - 1), version=slot.version + 1)
            self._slots[slot_id] = updated
            return updated

    def update(self, slot_id: str, package_id: str | None, end_time: time, max_gymnasts: int) -> LessonSlot:
        with self._lock:
            slot = self._require(slot_id)
            updated = replace(
                slot,
                package_id=package_id,
                end_time=end_time,
                max_gymnasts=max_gymnasts,
                version=slot.version + 1,
            )
            self._slots[slot_id] = updated
            return updated

    def set_status(self, slot_id: str, status: str) -> LessonSlot:
        with self._lock:
            slot = self._require(slot_id)
            updated = replace(slot, status=status, version=slot.version + 1)
            self._slots[slot_id] = updated
            return updated

    def _require(self, slot_id: str) -> LessonSlot:
        slot = self._slots.get(slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Lesson slot {slot_id} not found")
        return slot


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._bookings: dict[str, LessonBooking] = {}
        self._lock = threading.Lock()

    def create_booking(self, booking: LessonBooking) -> LessonBooking:
        stored = booking if booking.id else replace(booking, id=_new_id())
        with self._lock:
            self._bookings[stored.id] = stored
        return stored

    def get_booking(self, booking_id: str) -> LessonBooking | None:
        return self._bookings.get(booking_id)

    def cancel(
        self,
        booking_id: str,
        cancelled_by: str,
        cancelled_at: datetime,
        reason: str | None = None,
    ) -> LessonBooking:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")
            if booking.status != "confirmed":
                raise BookingStateError(f"Booking {booking_id} is {booking.status}")
            updated = replace(
                booking,
                status="cancelled",
                cancelled_at=cancelled_at,
                cancelled_by=cancelled_by,
                cancellation_reason=reason,
            )
            self._bookings[booking_id] = updated
            return updated

    def list_for_user(self, hub_id: str, user_id: str) -> list[LessonBooking]:
        return self._newest_first(
            b for b in self._bookings.values() if b.hub_id == hub_id and b.booked_by_user_id == user_id
        )

    def list_for_slots(self, hub_id: str, slot_ids: list[str]) -> list[LessonBooking]:
        wanted = set(slot_ids)
        return self._newest_first(
            b for b in self._bookings.values() if b.hub_id == hub_id and b.lesson_slot_id in wanted
        )

    def _newest_first(self, bookings) -> list[LessonBooking]:
        return sorted(bookings, key=lambda b: b.created_at.timestamp() if b.created_at else 0.0, reverse=True)


class MemoryAvailabilityStore(AvailabilityStorePort):
    def __init__(self) -> None:
        self._windows: dict[str, LessonAvailability] = {}

    def add_window(self, window: LessonAvailability) -> LessonAvailability:
        stored = window if window.id else replace(window, id=_new_id())
        self._windows[stored.id] = stored
        return stored

    def deactivate_window(self, window_id: str) -> None:
        window = self._windows.get(window_id)
        if window is not None:
            self._windows[window_id] = replace(window, is_active=False)

    def list_windows(self, hub_id: str, coach_user_id: str | None = None) -> list[LessonAvailability]:
        return sorted(
            (
                w
                for w in self._windows.values()
                if w.hub_id == hub_id
                and w.is_active
                and (coach_user_id is None or w.coach_user_id == coach_user_id)
            ),
            key=lambda w: (w.day_of_week, w.start_time),
        )

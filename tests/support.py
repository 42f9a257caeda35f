from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from zoneinfo import ZoneInfo


from lesson_booking.application.use_cases.availability import AvailabilityUseCase
from lesson_booking.application.use_cases.book_lesson import BookLessonCommand, BookLessonUseCase
from lesson_booking.application.use_cases.cancel_booking import CancelBookingUseCase
from lesson_booking.application.use_cases.catalog import CatalogUseCase
from lesson_booking.application.use_cases.list_bookings import ListBookingsUseCase
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.gymnast import GymnastProfile
from lesson_booking.domain.entities.lesson_package import LessonPackage
from lesson_booking.domain.entities.lesson_slot import LessonSlot
from lesson_booking.infrastructure.calendar.mock_calendar import MockCalendar
from lesson_booking.infrastructure.reconciliation.memory_queue import MemoryReconciliationQueue
from lesson_booking.infrastructure.store.memory_store import (
    MemoryAvailabilityStore,
    MemoryBookingStore,
    MemoryCatalogStore,
    MemorySlotRegistry,
)

HUB = "hub-1"
COACH = "coach-1"
PARENT = "parent-1"
TZ = ZoneInfo("America/Los_Angeles")
LESSON_DAY = date(2030, 3, 4)  # a Monday


@dataclass
class World:
    calendar: MockCalendar
    catalog: MemoryCatalogStore
    slots: MemorySlotRegistry
    bookings: MemoryBookingStore
    availability: MemoryAvailabilityStore
    reconciliation: MemoryReconciliationQueue

    def book_use_case(self) -> BookLessonUseCase:
        return BookLessonUseCase(
            calendar=self.calendar,
            catalog=self.catalog,
            slots=self.slots,
            bookings=self.bookings,
            reconciliation=self.reconciliation,
            timezone=TZ,
        )

    def cancel_use_case(self) -> CancelBookingUseCase:
        return CancelBookingUseCase(
            calendar=self.calendar,
            slots=self.slots,
            bookings=self.bookings,
            reconciliation=self.reconciliation,
        )

    def catalog_use_case(self) -> CatalogUseCase:
        return CatalogUseCase(catalog=self.catalog)

    def availability_use_case(self) -> AvailabilityUseCase:
        return AvailabilityUseCase(
            availability=self.availability,
            slots=self.slots,
            catalog=self.catalog,
            timezone=TZ,
        )

    def list_use_case(self) -> ListBookingsUseCase:
        return ListBookingsUseCase(bookings=self.bookings, slots=self.slots)

    def add_profile(self, **overrides) -> CoachLessonProfile:
        fields = {
            "hub_id": HUB,
            "coach_user_id": COACH,
            "events": frozenset({"beam", "floor"}),
            "levels": frozenset({"Level 4", "Level 5"}),
            "coach_name": "Sam Rivera",
        }
        fields.update(overrides)
        return self.catalog.upsert_profile(CoachLessonProfile(**fields))

    def add_package(
        self,
        package_id: str,
        minutes: int,
        price: str,
        max_gymnasts: int = 1,
        sort_order: int = 0,
        is_active: bool = True,
        is_default: bool = False,
    ) -> LessonPackage:
        return self.catalog.upsert_package(
            LessonPackage(
                id=package_id,
                hub_id=HUB,
                coach_user_id=COACH,
                name=f"{minutes} Min Private",
                duration_minutes=minutes,
                max_gymnasts=max_gymnasts,
                price=Decimal(price),
                is_active=is_active,
                sort_order=sort_order,
                is_default=is_default,
            )
        )

    def add_slot(
        self,
        slot_id: str = "slot-1",
        start: time = time(9, 0),
        end: time = time(9, 30),
        max_gymnasts: int = 1,
        **overrides,
    ) -> LessonSlot:
        return self.slots.create_slot(
            LessonSlot(
                id=slot_id,
                hub_id=HUB,
                coach_user_id=COACH,
                slot_date=overrides.pop("slot_date", LESSON_DAY),
                start_time=start,
                end_time=end,
                max_gymnasts=max_gymnasts,
                **overrides,
            )
        )


def make_world(**parts) -> World:
    return World(
        calendar=parts.get("calendar") or MockCalendar(),
        catalog=parts.get("catalog") or MemoryCatalogStore(),
        slots=parts.get("slots") or MemorySlotRegistry(),
        bookings=parts.get("bookings") or MemoryBookingStore(),
        availability=parts.get("availability") or MemoryAvailabilityStore(),
        reconciliation=parts.get("reconciliation") or MemoryReconciliationQueue(),
    )


def gymnast(gymnast_id: str = "gym-1", level: str | None = "Level 4") -> GymnastProfile:
    return GymnastProfile(id=gymnast_id, first_name="Ava", last_name="Chen", level=level)


def command(slot_id: str = "slot-1", package_id: str | None = None, **overrides) -> BookLessonCommand:
    fields = {
        "hub_id": HUB,
        "actor_id": PARENT,
        "slot_id": slot_id,
        "gymnast": gymnast(),
        "event": "beam",
        "selected_package_id": package_id,
    }
    fields.update(overrides)
    return BookLessonCommand(**fields)

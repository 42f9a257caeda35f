from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from decimal import Decimal

from lesson_booking.application.utils.time_helpers import add_minutes, window_minutes
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.lesson_package import LessonPackage
from lesson_booking.domain.entities.lesson_slot import LessonSlot


@dataclass(frozen=True)
class BookingTerms:
    package: LessonPackage | None
    duration_minutes: int
    start_time: time
    end_time: time
    price: Decimal
    capacity: int
    requires_package_selection: bool

    @property
    def package_id(self) -> str | None:
        return self.package.id if self.package else None

    @property
    def is_complete(self) -> bool:
        return not self.requires_package_selection


def offerable_packages(packages: list[LessonPackage]) -> list[LessonPackage]:
    """Active packages, cheapest first."""
    active = [p for p in packages if p.is_active]
    return sorted(active, key=lambda p: (p.price, p.sort_order))


def resolve_terms(
    slot: LessonSlot,
    packages: list[LessonPackage],
    selected_package_id: str | None = None,
    coach_profile: CoachLessonProfile | None = None,
) -> BookingTerms:
    """
    Turn a slot and an optional package selection into concrete terms.

    Never raises: a missing package falls back to the slot window and the
    profile's legacy scalars, then to zero price and a single gymnast.
    """
    active = offerable_packages(packages)

    package: LessonPackage | None = None
    if selected_package_id:
        package = next((p for p in active if p.id == selected_package_id), None)
    if package is None and len(active) == 1:
        package = active[0]

    if package is not None:
        duration = package.duration_minutes
        end_time = add_minutes(slot.start_time, duration)
    else:
        duration = window_minutes(slot.start_time, slot.end_time)
        end_time = slot.end_time

    if package is not None:
        price = package.price
    elif coach_profile is not None and coach_profile.cost_per_lesson is not None:
        price = coach_profile.cost_per_lesson
    else:
        price = Decimal("0")

    if package is not None:
        capacity = package.max_gymnasts
    elif coach_profile is not None and coach_profile.max_gymnasts_per_slot:
        capacity = coach_profile.max_gymnasts_per_slot
    else:
        capacity = 1

    return BookingTerms(
        package=package,
        duration_minutes=duration,
        start_time=slot.start_time,
        end_time=end_time,
        price=price,
        capacity=capacity,
        requires_package_selection=package is None and len(active) > 1,
    )

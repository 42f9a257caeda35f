from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from lesson_booking.application.exceptions import SlotNotFoundError, ValidationError
from lesson_booking.application.ports.availability_store import AvailabilityStorePort
from lesson_booking.application.ports.catalog_store import CatalogStorePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.application.utils.time_helpers import minutes_to_time, time_to_minutes
from lesson_booking.domain.entities.availability import LessonAvailability
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.lesson_slot import LessonSlot


class AvailabilityUseCase:
    """Recurring weekly windows, one-off slots, and the bookable slot list built from both."""

    def __init__(
        self,
        availability: AvailabilityStorePort,
        slots: SlotRegistryPort,
        catalog: CatalogStorePort,
        timezone: ZoneInfo,
        default_duration_minutes: int = 30,
        default_max_gymnasts: int = 1,
    ) -> None:
        self._availability = availability
        self._slots = slots
        self._catalog = catalog
        self._timezone = timezone
        self._default_duration_minutes = default_duration_minutes
        self._default_max_gymnasts = default_max_gymnasts
        self._logger = logging.getLogger(__name__)

    def add_recurring_window(
        self,
        hub_id: str,
        coach_user_id: str,
        day_of_week: int,
        start_time: time,
        end_time: time,
        effective_from: date | None = None,
        effective_until: date | None = None,
    ) -> LessonAvailability:
        if not 0 <= day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")
        if start_time >= end_time:
            raise ValidationError("End time must be after start time")
        if effective_from and effective_until and effective_from > effective_until:
            raise ValidationError("Availability must start before it ends")

        window = self._availability.add_window(
            LessonAvailability(
                id="",
                hub_id=hub_id,
                coach_user_id=coach_user_id,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
                effective_from=effective_from,
                effective_until=effective_until,
            )
        )
        self._logger.info(
            "Recurring availability added",
            extra={"coach_user_id": coach_user_id, "availability_id": window.id},
        )
        return window

    def remove_recurring_window(self, window_id: str) -> None:
        self._availability.deactivate_window(window_id)

    def list_recurring_windows(self, hub_id: str, coach_user_id: str) -> list[LessonAvailability]:
        return self._availability.list_windows(hub_id, coach_user_id=coach_user_id)

    def add_one_off_slot(
        self,
        hub_id: str,
        coach_user_id: str,
        slot_date: date,
        start_time: time,
        end_time: time,
    ) -> LessonSlot:
        if start_time >= end_time:
            raise ValidationError("End time must be after start time")

        profile = self._catalog.get_profile(hub_id, coach_user_id)
        max_gymnasts = (profile.max_gymnasts_per_slot if profile else None) or self._default_max_gymnasts
        return self._slots.create_slot(
            LessonSlot(
                id="",
                hub_id=hub_id,
                coach_user_id=coach_user_id,
                slot_date=slot_date,
                start_time=start_time,
                end_time=end_time,
                max_gymnasts=max_gymnasts,
                is_one_off=True,
            )
        )

    def cancel_slot(self, slot_id: str) -> LessonSlot:
        slot = self._slots.get_slot(slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Lesson slot {slot_id} not found")
        if slot.booked_count > 0:
            raise ValidationError("Cancel the bookings on this slot before removing it")
        return self._slots.set_status(slot_id, "cancelled")

    def list_bookable_slots(
        self,
        hub_id: str,
        start_date: date,
        end_date: date,
        coach_user_id: str | None = None,
        today: date | None = None,
    ) -> list[LessonSlot]:
        """
        Stored slots in range plus slots generated from recurring availability.

        Generated lessons step through each window using the coach's shortest active
        package so every package fits, and are skipped on past days or where a stored
        slot already starts at the same time for the same coach.
        """
        if today is None:
            today = datetime.now(self._timezone).date()

        stored = self._slots.list_slots(hub_id, start_date, end_date, coach_user_id=coach_user_id)
        windows = self._availability.list_windows(hub_id, coach_user_id=coach_user_id)

        profiles: dict[str, CoachLessonProfile] = {
            p.coach_user_id: p for p in self._catalog.list_active_profiles(hub_id)
        }
        durations: dict[str, int] = {}

        taken = {(s.coach_user_id, s.slot_date, s.start_time.replace(second=0)) for s in stored}
        generated: list[LessonSlot] = []

        day = max(start_date, today)
        while day <= end_date:
            for window in windows:
                if not window.applies_to(day):
                    continue
                profile = profiles.get(window.coach_user_id)
                if profile is None:
                    continue
                if window.coach_user_id not in durations:
                    durations[window.coach_user_id] = self._lesson_duration(profile)
                duration = durations[window.coach_user_id]

                cursor = time_to_minutes(window.start_time)
                window_end = time_to_minutes(window.end_time)
                while cursor + duration <= window_end:
                    start = minutes_to_time(cursor)
                    if (window.coach_user_id, day, start) not in taken:
                        generated.append(
                            LessonSlot(
                                id=f"gen-{window.id}-{day.isoformat()}-{start.strftime('%H:%M')}",
                                hub_id=hub_id,
                                coach_user_id=window.coach_user_id,
                                slot_date=day,
                                start_time=start,
                                end_time=minutes_to_time(cursor + duration),
                                max_gymnasts=profile.max_gymnasts_per_slot or self._default_max_gymnasts,
                                availability_id=window.id,
                                is_one_off=False,
                                is_generated=True,
                            )
                        )
                    cursor += duration
            day += timedelta(days=1)

        return sorted(stored + generated, key=lambda s: (s.slot_date, s.start_time))

    def materialize_slot(self, slot: LessonSlot) -> LessonSlot:
        """Persist a generated slot so it can be booked. Stored slots are returned unchanged."""
        if not slot.is_generated:
            return slot

        existing = self._slots.list_slots(
            slot.hub_id, slot.slot_date, slot.slot_date, coach_user_id=slot.coach_user_id
        )
        for candidate in existing:
            if candidate.start_time.replace(second=0) == slot.start_time.replace(second=0):
                return candidate

        created = self._slots.create_slot(replace(slot, id="", is_generated=False, is_one_off=False))
        self._logger.info(
            "Generated slot stored",
            extra={"slot_id": created.id, "availability_id": slot.availability_id},
        )
        return created

    def _lesson_duration(self, profile: CoachLessonProfile) -> int:
        packages = self._catalog.list_packages(profile.hub_id, profile.coach_user_id, active_only=True)
        if packages:
            return min(p.duration_minutes for p in packages)
        return profile.lesson_duration_minutes or self._default_duration_minutes

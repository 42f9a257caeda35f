from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, time

from lesson_booking.domain.entities.lesson_slot import LessonSlot


class SlotRegistryPort(ABC):
    @abstractmethod
    def get_slot(self, slot_id: str) -> LessonSlot | None:
        raise NotImplementedError

    @abstractmethod
    def create_slot(self, slot: LessonSlot) -> LessonSlot:
        """Persist a new slot. The registry assigns the id when slot.id is empty."""
        raise NotImplementedError

    @abstractmethod
    def list_slots(
        self,
        hub_id: str,
        start_date: date,
        end_date: date,
        coach_user_id: str | None = None,
        include_cancelled: bool = False,
    ) -> list[LessonSlot]:
        raise NotImplementedError

    @abstractmethod
    def list_slot_ids_for_coach(self, hub_id: str, coach_user_id: str) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def claim_seat(self, slot_id: str, expected_version: int) -> LessonSlot:
        """
        Increment booked_count and version if the stored version still equals expected_version.
        Raises VersionConflictError otherwise.
        """
        raise NotImplementedError

    @abstractmethod
    def release_seat(self, slot_id: str) -> LessonSlot:
        """Decrement booked_count (never below zero) and bump version."""
        raise NotImplementedError

    @abstractmethod
    def update(self, slot_id: str, package_id: str | None, end_time: time, max_gymnasts: int) -> LessonSlot:
        raise NotImplementedError

    @abstractmethod
    def set_status(self, slot_id: str, status: str) -> LessonSlot:
        raise NotImplementedError

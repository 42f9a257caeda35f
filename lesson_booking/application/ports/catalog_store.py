from __future__ import annotations

from abc import ABC, abstractmethod

from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.lesson_package import LessonPackage


class CatalogStorePort(ABC):
    @abstractmethod
    def get_profile(self, hub_id: str, coach_user_id: str) -> CoachLessonProfile | None:
        raise NotImplementedError

    @abstractmethod
    def list_active_profiles(self, hub_id: str) -> list[CoachLessonProfile]:
        raise NotImplementedError

    @abstractmethod
    def upsert_profile(self, profile: CoachLessonProfile) -> CoachLessonProfile:
        """Insert or update by (hub_id, coach_user_id). Returns the stored row."""
        raise NotImplementedError

    @abstractmethod
    def list_packages(self, hub_id: str, coach_user_id: str, active_only: bool = False) -> list[LessonPackage]:
        """Packages ordered by sort_order."""
        raise NotImplementedError

    @abstractmethod
    def upsert_package(self, package: LessonPackage) -> LessonPackage:
        """Insert when package.id is None, update otherwise."""
        raise NotImplementedError

    @abstractmethod
    def delete_packages(self, package_ids: list[str]) -> None:
        raise NotImplementedError

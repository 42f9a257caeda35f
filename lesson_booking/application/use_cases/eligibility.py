from __future__ import annotations

from dataclasses import dataclass

from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.discipline import discipline_sort_key
from lesson_booking.domain.entities.gymnast import GymnastProfile


@dataclass(frozen=True)
class LessonOffer:
    eligible_gymnasts: list[GymnastProfile]
    disciplines: list[str]

    @property
    def no_eligible_gymnasts(self) -> bool:
        return not self.eligible_gymnasts


def is_eligible(profile: CoachLessonProfile | None, gymnast: GymnastProfile) -> bool:
    if profile is None or not profile.levels:
        return True
    return gymnast.level in profile.levels


def eligible_gymnasts(profile: CoachLessonProfile | None, gymnasts: list[GymnastProfile]) -> list[GymnastProfile]:
    return [g for g in gymnasts if is_eligible(profile, g)]


def offerable_disciplines(profile: CoachLessonProfile | None) -> list[str]:
    if profile is None:
        return []
    return sorted(profile.events, key=discipline_sort_key)


def describe_offer(profile: CoachLessonProfile | None, gymnasts: list[GymnastProfile]) -> LessonOffer:
    return LessonOffer(
        eligible_gymnasts=eligible_gymnasts(profile, gymnasts),
        disciplines=offerable_disciplines(profile),
    )

from __future__ import annotations

from support import COACH, HUB, gymnast
from lesson_booking.application.use_cases.eligibility import (
    describe_offer,
    eligible_gymnasts,
    is_eligible,
    offerable_disciplines,
)
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.discipline import discipline_label


def _profile(**fields) -> CoachLessonProfile:
    return CoachLessonProfile(hub_id=HUB, coach_user_id=COACH, **fields)


def test_gymnast_level_must_match_coach_levels():
    profile = _profile(levels=frozenset({"Level 4"}))

    assert is_eligible(profile, gymnast(level="Level 4"))
    assert not is_eligible(profile, gymnast(level="Level 8"))
    assert not is_eligible(profile, gymnast(level=None))


def test_coach_without_levels_accepts_everyone():
    """An empty level list, or no profile at all, does not restrict."""
    assert is_eligible(_profile(), gymnast(level="Level 10"))
    assert is_eligible(None, gymnast(level=None))


def test_eligible_gymnasts_keeps_input_order():
    profile = _profile(levels=frozenset({"Level 4", "Level 5"}))
    kids = [gymnast("a", "Level 5"), gymnast("b", "Xcel Gold"), gymnast("c", "Level 4")]

    assert [g.id for g in eligible_gymnasts(profile, kids)] == ["a", "c"]


def test_disciplines_follow_canonical_order():
    profile = _profile(events=frozenset({"floor", "vault", "custom", "beam"}))

    assert offerable_disciplines(profile) == ["vault", "beam", "floor", "custom"]
    assert offerable_disciplines(None) == []


def test_offer_flags_when_no_gymnast_qualifies():
    """The caller shows an explanation instead of an empty picker."""
    offer = describe_offer(_profile(levels=frozenset({"Level 9"})), [gymnast(level="Level 4")])

    assert offer.no_eligible_gymnasts
    assert offer.eligible_gymnasts == []


def test_discipline_labels():
    assert discipline_label("pbars") == "Parallel Bars"
    assert discipline_label("all_around") == "All-Around"
    assert discipline_label("tumbling") == "tumbling"

"""
Tests for recurring availability, one-off slots and the bookable slot list.
"""

from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from support import COACH, HUB, LESSON_DAY
from lesson_booking.application.exceptions import SlotNotFoundError, ValidationError

MONDAY = 1


def test_window_is_split_by_shortest_active_package(world):
    world.add_profile()
    world.add_package("p45", 45, "60")
    world.add_package("p30", 30, "40", sort_order=1)
    world.add_package("old", 15, "10", is_active=False)
    uc = world.availability_use_case()
    uc.add_recurring_window(HUB, COACH, MONDAY, time(9, 0), time(10, 15))

    slots = uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY, today=LESSON_DAY)

    assert [s.start_time for s in slots] == [time(9, 0), time(9, 30)]
    assert all(s.is_generated and not s.is_one_off for s in slots)
    assert slots[0].id.startswith("gen-")
    assert slots[0].id.endswith(f"-{LESSON_DAY.isoformat()}-09:00")


def test_windows_only_apply_on_their_weekday_and_effective_range(world):
    world.add_profile(lesson_duration_minutes=60)
    uc = world.availability_use_case()
    uc.add_recurring_window(
        HUB,
        COACH,
        MONDAY,
        time(17, 0),
        time(18, 0),
        effective_from=LESSON_DAY + timedelta(days=7),
    )

    two_weeks = uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY + timedelta(days=13), today=LESSON_DAY)

    assert [s.slot_date for s in two_weeks] == [LESSON_DAY + timedelta(days=7)]


def test_past_days_are_not_generated(world):
    world.add_profile(lesson_duration_minutes=60)
    uc = world.availability_use_case()
    uc.add_recurring_window(HUB, COACH, MONDAY, time(17, 0), time(18, 0))

    slots = uc.list_bookable_slots(
        HUB, LESSON_DAY, LESSON_DAY + timedelta(days=7), today=LESSON_DAY + timedelta(days=1)
    )

    assert [s.slot_date for s in slots] == [LESSON_DAY + timedelta(days=7)]


def test_stored_slot_replaces_generated_one_at_same_start(world):
    world.add_profile(lesson_duration_minutes=30)
    world.add_slot("stored", time(9, 0), time(9, 30), is_one_off=False)
    uc = world.availability_use_case()
    uc.add_recurring_window(HUB, COACH, MONDAY, time(9, 0), time(10, 0))

    slots = uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY, today=LESSON_DAY)

    assert [(s.id, s.start_time) for s in slots][0] == ("stored", time(9, 0))
    assert [s.is_generated for s in slots] == [False, True]


def test_inactive_coach_gets_no_generated_slots(world):
    world.add_profile(is_active=False)
    uc = world.availability_use_case()
    uc.add_recurring_window(HUB, COACH, MONDAY, time(9, 0), time(10, 0))

    assert uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY, today=LESSON_DAY) == []


def test_removed_window_stops_generating(world):
    world.add_profile()
    uc = world.availability_use_case()
    window = uc.add_recurring_window(HUB, COACH, MONDAY, time(9, 0), time(10, 0))

    uc.remove_recurring_window(window.id)

    assert uc.list_recurring_windows(HUB, COACH) == []
    assert uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY, today=LESSON_DAY) == []


@pytest.mark.parametrize(
    "day, start, end, effective_until",
    [
        (7, time(9, 0), time(10, 0), None),
        (MONDAY, time(10, 0), time(9, 0), None),
        (MONDAY, time(9, 0), time(10, 0), LESSON_DAY - timedelta(days=1)),
    ],
)
def test_invalid_windows_are_rejected(world, day, start, end, effective_until):
    with pytest.raises(ValidationError):
        world.availability_use_case().add_recurring_window(
            HUB, COACH, day, start, end, effective_from=LESSON_DAY, effective_until=effective_until
        )


def test_one_off_slot_takes_capacity_from_profile(world):
    world.add_profile(max_gymnasts_per_slot=3)

    slot = world.availability_use_case().add_one_off_slot(HUB, COACH, LESSON_DAY, time(12, 0), time(13, 0))

    assert slot.id
    assert slot.max_gymnasts == 3
    assert slot.is_one_off


def test_one_off_slot_requires_end_after_start(world):
    with pytest.raises(ValidationError):
        world.availability_use_case().add_one_off_slot(HUB, COACH, LESSON_DAY, time(12, 0), time(12, 0))


def test_cancel_slot_hides_it_from_listing(world):
    world.add_slot()
    uc = world.availability_use_case()

    uc.cancel_slot("slot-1")

    assert uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY, today=LESSON_DAY) == []
    assert world.slots.get_slot("slot-1").is_cancelled


def test_cancel_slot_with_bookings_is_rejected(world):
    world.add_slot(booked_count=1)

    with pytest.raises(ValidationError):
        world.availability_use_case().cancel_slot("slot-1")
    with pytest.raises(SlotNotFoundError):
        world.availability_use_case().cancel_slot("missing")


def test_materialize_is_idempotent_per_start_time(world):
    world.add_profile(lesson_duration_minutes=30)
    uc = world.availability_use_case()
    uc.add_recurring_window(HUB, COACH, MONDAY, time(9, 0), time(9, 30))
    generated = uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY, today=LESSON_DAY)[0]

    first = uc.materialize_slot(generated)
    second = uc.materialize_slot(generated)

    assert first.id == second.id
    assert not first.is_generated
    assert first.availability_id == generated.availability_id
    assert uc.materialize_slot(first) is first


def test_weekday_numbering_starts_on_sunday(world):
    world.add_profile(lesson_duration_minutes=60)
    uc = world.availability_use_case()
    uc.add_recurring_window(HUB, COACH, 0, time(10, 0), time(11, 0))

    slots = uc.list_bookable_slots(HUB, LESSON_DAY, LESSON_DAY + timedelta(days=6), today=LESSON_DAY)

    assert [s.slot_date for s in slots] == [date(2030, 3, 10)]

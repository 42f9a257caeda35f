"""
Tests for the Supabase (PostgREST) adapters against a mocked transport.
"""

from __future__ import annotations

import json
from datetime import datetime, time, timezone
from decimal import Decimal

import httpx
import pytest

from lesson_booking.application.exceptions import (
    BookingNotFoundError,
    BookingStateError,
    RemoteWriteError,
    VersionConflictError,
)
from lesson_booking.infrastructure.calendar.supabase_calendar import SupabaseCalendar
from lesson_booking.infrastructure.store.supabase_store import (
    SupabaseBookingStore,
    SupabaseCatalogStore,
    SupabaseSlotRegistry,
)
from lesson_booking.infrastructure.supabase.postgrest_client import PostgrestClient

SLOT_ROW = {
    "id": "s1",
    "hub_id": "hub-1",
    "coach_user_id": "coach-1",
    "slot_date": "2030-03-04",
    "start_time": "09:00:00",
    "end_time": "09:30:00",
    "max_gymnasts": 1,
    "package_id": None,
    "booked_count": 0,
    "version": 4,
    "status": "available",
    "is_one_off": True,
}

BOOKING_ROW = {
    "id": "b1",
    "hub_id": "hub-1",
    "lesson_slot_id": "s1",
    "booked_by_user_id": "parent-1",
    "gymnast_profile_id": "gym-1",
    "event": "beam",
    "cost": 40.0,
    "status": "confirmed",
    "calendar_event_id": "evt-1",
    "created_at": "2030-03-01T10:00:00.123456+00:00",
}


class FakePostgrest:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        table = request.url.path.rsplit("/", 1)[-1]
        handler = self.routes[(request.method, table)]
        return handler(request) if callable(handler) else handler

    def client(self) -> PostgrestClient:
        return PostgrestClient(
            base_url="https://example.supabase.co",
            service_key="service-key",
            client=httpx.Client(transport=httpx.MockTransport(self)),
        )


def test_requests_carry_service_key_headers():
    fake = FakePostgrest({("GET", "lesson_slots"): httpx.Response(200, json=[SLOT_ROW])})

    slot = SupabaseSlotRegistry(fake.client()).get_slot("s1")

    request = fake.requests[0]
    assert request.url.path == "/rest/v1/lesson_slots"
    assert request.url.params["id"] == "eq.s1"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert slot.start_time == time(9, 0)
    assert slot.version == 4


def test_claim_seat_is_a_conditional_patch():
    claimed = dict(SLOT_ROW, booked_count=1, version=5)
    fake = FakePostgrest(
        {
            ("GET", "lesson_slots"): httpx.Response(200, json=[SLOT_ROW]),
            ("PATCH", "lesson_slots"): httpx.Response(200, json=[claimed]),
        }
    )

    slot = SupabaseSlotRegistry(fake.client()).claim_seat("s1", expected_version=4)

    patch = fake.requests[-1]
    assert patch.url.params["version"] == "eq.4"
    assert json.loads(patch.content) == {"booked_count": 1, "version": 5}
    assert slot.booked_count == 1
    assert patch.headers["Prefer"] == "return=representation"
    assert patch.url.params["booked_count"] == "eq.0"


def test_slot_update_is_conditional_on_the_version_read():
    """An annotation must not rewind a version bumped by a concurrent seat claim."""
    updated = dict(SLOT_ROW, package_id="p60", end_time="10:00:00", max_gymnasts=2, version=5)
    fake = FakePostgrest(
        {
            ("GET", "lesson_slots"): httpx.Response(200, json=[SLOT_ROW]),
            ("PATCH", "lesson_slots"): httpx.Response(200, json=[updated]),
        }
    )

    slot = SupabaseSlotRegistry(fake.client()).update("s1", "p60", time(10, 0), 2)

    patch = fake.requests[-1]
    assert patch.url.params["version"] == "eq.4"
    assert json.loads(patch.content) == {
        "package_id": "p60",
        "end_time": "10:00:00",
        "max_gymnasts": 2,
        "version": 5,
    }
    assert slot.end_time == time(10, 0)


def test_slot_update_rereads_after_a_concurrent_claim():
    """A lost race re-reads the row and writes on top of the newer version."""
    claimed = dict(SLOT_ROW, booked_count=1, version=5)
    reads = iter([[SLOT_ROW], [claimed]])
    patches = iter([[], [dict(claimed, status="cancelled", version=6)]])
    fake = FakePostgrest(
        {
            ("GET", "lesson_slots"): lambda request: httpx.Response(200, json=next(reads)),
            ("PATCH", "lesson_slots"): lambda request: httpx.Response(200, json=next(patches)),
        }
    )

    slot = SupabaseSlotRegistry(fake.client()).set_status("s1", "cancelled")

    sent = [r for r in fake.requests if r.method == "PATCH"]
    assert [r.url.params["version"] for r in sent] == ["eq.4", "eq.5"]
    assert json.loads(sent[-1].content) == {"status": "cancelled", "version": 6}
    assert slot.booked_count == 1


def test_slot_update_gives_up_when_the_row_keeps_changing():
    fake = FakePostgrest(
        {
            ("GET", "lesson_slots"): lambda request: httpx.Response(200, json=[SLOT_ROW]),
            ("PATCH", "lesson_slots"): lambda request: httpx.Response(200, json=[]),
        }
    )

    with pytest.raises(RemoteWriteError):
        SupabaseSlotRegistry(fake.client(), write_retries=2).release_seat("s1")
    assert len([r for r in fake.requests if r.method == "PATCH"]) == 2


def test_claim_seat_reports_lost_race():
    fake = FakePostgrest(
        {
            ("GET", "lesson_slots"): httpx.Response(200, json=[SLOT_ROW]),
            ("PATCH", "lesson_slots"): httpx.Response(200, json=[]),
        }
    )
    registry = SupabaseSlotRegistry(fake.client())

    with pytest.raises(VersionConflictError):
        registry.claim_seat("s1", expected_version=4)
    with pytest.raises(VersionConflictError):
        registry.claim_seat("s1", expected_version=3)


def test_cancel_only_touches_confirmed_rows():
    cancelled = dict(BOOKING_ROW, status="cancelled", cancelled_by="parent-1")
    fake = FakePostgrest(
        {
            ("PATCH", "lesson_bookings"): httpx.Response(200, json=[cancelled]),
        }
    )

    booking = SupabaseBookingStore(fake.client()).cancel(
        "b1", cancelled_by="parent-1", cancelled_at=datetime(2030, 3, 2, tzinfo=timezone.utc)
    )

    assert fake.requests[0].url.params["status"] == "eq.confirmed"
    assert booking.status == "cancelled"
    assert booking.cost == Decimal("40.0")
    assert booking.created_at == datetime(2030, 3, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)


def test_cancel_distinguishes_missing_from_already_cancelled():
    fake = FakePostgrest(
        {
            ("PATCH", "lesson_bookings"): httpx.Response(200, json=[]),
            ("GET", "lesson_bookings"): httpx.Response(200, json=[dict(BOOKING_ROW, status="cancelled")]),
        }
    )
    with pytest.raises(BookingStateError):
        SupabaseBookingStore(fake.client()).cancel("b1", "x", datetime.now(timezone.utc))

    fake.routes[("GET", "lesson_bookings")] = httpx.Response(200, json=[])
    with pytest.raises(BookingNotFoundError):
        SupabaseBookingStore(fake.client()).cancel("b1", "x", datetime.now(timezone.utc))


def test_bookings_for_slots_use_in_filter():
    fake = FakePostgrest({("GET", "lesson_bookings"): httpx.Response(200, json=[BOOKING_ROW])})
    store = SupabaseBookingStore(fake.client())

    bookings = store.list_for_slots("hub-1", ["s1", "s2"])

    assert fake.requests[0].url.params["lesson_slot_id"] == "in.(s1,s2)"
    assert fake.requests[0].url.params["order"] == "created_at.desc"
    assert [b.id for b in bookings] == ["b1"]
    assert store.list_for_slots("hub-1", []) == []
    assert len(fake.requests) == 1


def test_profile_reads_joined_coach_name():
    row = {
        "id": "prof-1",
        "hub_id": "hub-1",
        "coach_user_id": "coach-1",
        "events": ["beam"],
        "levels": ["Level 4"],
        "cost_per_lesson": "45.00",
        "lesson_duration_minutes": 45,
        "max_gymnasts_per_slot": 1,
        "is_active": True,
        "coach_profile": {"id": "coach-1", "full_name": "Sam Rivera"},
    }
    fake = FakePostgrest({("GET", "coach_lesson_profiles"): httpx.Response(200, json=[row])})

    profile = SupabaseCatalogStore(fake.client()).get_profile("hub-1", "coach-1")

    assert "coach_profile:profiles" in fake.requests[0].url.params["select"]
    assert profile.coach_name == "Sam Rivera"
    assert profile.cost_per_lesson == Decimal("45.00")
    assert profile.events == frozenset({"beam"})


def test_http_errors_become_remote_write_errors():
    fake = FakePostgrest(
        {("POST", "events"): httpx.Response(409, json={"message": "duplicate key value"})}
    )
    calendar = SupabaseCalendar(fake.client())

    with pytest.raises(RemoteWriteError, match="duplicate key value"):
        calendar.create_event(
            start=datetime(2030, 3, 4, 17, tzinfo=timezone.utc),
            end=datetime(2030, 3, 4, 18, tzinfo=timezone.utc),
            title="Private Lesson: Ava Chen with Coach",
        )


def test_network_errors_become_remote_write_errors():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    fake = FakePostgrest({("DELETE", "events"): refuse})

    with pytest.raises(RemoteWriteError):
        SupabaseCalendar(fake.client()).delete_event("evt-1")


def test_calendar_event_row_shape():
    fake = FakePostgrest({("POST", "events"): httpx.Response(201, json=[{"id": "evt-9"}])})

    event_id = SupabaseCalendar(fake.client()).create_event(
        start=datetime(2030, 3, 4, 17, tzinfo=timezone.utc),
        end=datetime(2030, 3, 4, 18, tzinfo=timezone.utc),
        title="Private Lesson: Ava Chen with Coach",
        description="Beam lesson",
        created_by="parent-1",
        hub_id="hub-1",
    )

    sent = json.loads(fake.requests[0].content)
    assert event_id == "evt-9"
    assert sent["type"] == "private_lesson"
    assert sent["rsvp_enabled"] is False
    assert sent["start_time"] == "2030-03-04T17:00:00+00:00"

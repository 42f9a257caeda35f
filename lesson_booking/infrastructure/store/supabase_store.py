from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable

from lesson_booking.application.exceptions import (
    BookingNotFoundError,
    BookingStateError,
    RemoteWriteError,
    SlotNotFoundError,
    VersionConflictError,
)
from lesson_booking.application.ports.availability_store import AvailabilityStorePort
from lesson_booking.application.ports.booking_store import BookingStorePort
from lesson_booking.application.ports.catalog_store import CatalogStorePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.application.utils.time_helpers import format_time, parse_time
from lesson_booking.domain.entities.availability import LessonAvailability
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.lesson_booking import LessonBooking
from lesson_booking.domain.entities.lesson_package import LessonPackage
from lesson_booking.domain.entities.lesson_slot import LessonSlot
from lesson_booking.infrastructure.supabase.postgrest_client import PostgrestClient, in_filter

PROFILE_COLUMNS = "*, coach_profile:profiles!coach_user_id(id, full_name)"


def _decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _date(value: Any) -> date | None:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _datetime(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def profile_from_row(row: dict[str, Any]) -> CoachLessonProfile:
    coach = row.get("coach_profile") or {}
    return CoachLessonProfile(
        id=row.get("id"),
        hub_id=row["hub_id"],
        coach_user_id=row["coach_user_id"],
        events=frozenset(row.get("events") or []),
        levels=frozenset(row.get("levels") or []),
        bio=row.get("bio"),
        is_active=bool(row.get("is_active", True)),
        cost_per_lesson=_decimal(row.get("cost_per_lesson")),
        lesson_duration_minutes=row.get("lesson_duration_minutes"),
        max_gymnasts_per_slot=row.get("max_gymnasts_per_slot"),
        coach_name=coach.get("full_name"),
    )


def package_from_row(row: dict[str, Any]) -> LessonPackage:
    return LessonPackage(
        id=row.get("id"),
        hub_id=row["hub_id"],
        coach_user_id=row["coach_user_id"],
        name=row.get("name") or "",
        duration_minutes=int(row.get("duration_minutes") or 0),
        max_gymnasts=int(row.get("max_gymnasts") or 1),
        price=_decimal(row.get("price")) or Decimal("0"),
        description=row.get("description"),
        is_active=bool(row.get("is_active", True)),
        sort_order=int(row.get("sort_order") or 0),
        is_default=bool(row.get("is_default", False)),
    )


def slot_from_row(row: dict[str, Any]) -> LessonSlot:
    return LessonSlot(
        id=str(row["id"]),
        hub_id=row["hub_id"],
        coach_user_id=row["coach_user_id"],
        slot_date=_date(row["slot_date"]) or date.min,
        start_time=parse_time(row["start_time"]),
        end_time=parse_time(row["end_time"]),
        max_gymnasts=int(row.get("max_gymnasts") or 1),
        package_id=row.get("package_id"),
        booked_count=int(row.get("booked_count") or 0),
        version=int(row.get("version") or 0),
        status=row.get("status") or "available",
        availability_id=row.get("availability_id"),
        is_one_off=bool(row.get("is_one_off", True)),
    )


def booking_from_row(row: dict[str, Any]) -> LessonBooking:
    return LessonBooking(
        id=str(row["id"]),
        hub_id=row["hub_id"],
        lesson_slot_id=row["lesson_slot_id"],
        booked_by_user_id=row["booked_by_user_id"],
        gymnast_profile_id=row["gymnast_profile_id"],
        event=row.get("event") or "",
        cost=_decimal(row.get("cost")) or Decimal("0"),
        status=row.get("status") or "confirmed",
        calendar_event_id=row.get("calendar_event_id"),
        package_id=row.get("package_id"),
        created_at=_datetime(row.get("created_at")),
        cancelled_at=_datetime(row.get("cancelled_at")),
        cancelled_by=row.get("cancelled_by"),
        cancellation_reason=row.get("cancellation_reason"),
    )


def availability_from_row(row: dict[str, Any]) -> LessonAvailability:
    return LessonAvailability(
        id=str(row["id"]),
        hub_id=row["hub_id"],
        coach_user_id=row["coach_user_id"],
        day_of_week=int(row["day_of_week"]),
        start_time=parse_time(row["start_time"]),
        end_time=parse_time(row["end_time"]),
        effective_from=_date(row.get("effective_from")),
        effective_until=_date(row.get("effective_until")),
        is_active=bool(row.get("is_active", True)),
    )


class SupabaseCatalogStore(CatalogStorePort):
    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    def get_profile(self, hub_id: str, coach_user_id: str) -> CoachLessonProfile | None:
        rows = self._client.select(
            "coach_lesson_profiles",
            {"hub_id": f"eq.{hub_id}", "coach_user_id": f"eq.{coach_user_id}"},
            columns=PROFILE_COLUMNS,
        )
        return profile_from_row(rows[0]) if rows else None

    def list_active_profiles(self, hub_id: str) -> list[CoachLessonProfile]:
        rows = self._client.select(
            "coach_lesson_profiles",
            {"hub_id": f"eq.{hub_id}", "is_active": "eq.true"},
            columns=PROFILE_COLUMNS,
        )
        return [profile_from_row(r) for r in rows]

    def upsert_profile(self, profile: CoachLessonProfile) -> CoachLessonProfile:
        values = {
            "hub_id": profile.hub_id,
            "coach_user_id": profile.coach_user_id,
            "events": sorted(profile.events),
            "levels": sorted(profile.levels),
            "bio": profile.bio,
            "is_active": profile.is_active,
            "cost_per_lesson": str(profile.cost_per_lesson) if profile.cost_per_lesson is not None else None,
            "lesson_duration_minutes": profile.lesson_duration_minutes,
            "max_gymnasts_per_slot": profile.max_gymnasts_per_slot,
            "updated_at": _now_iso(),
        }
        if profile.id:
            rows = self._client.update("coach_lesson_profiles", {"id": f"eq.{profile.id}"}, values)
            if not rows:
                raise RemoteWriteError(f"Coach lesson profile {profile.id} not found")
            row = rows[0]
        else:
            row = self._client.insert("coach_lesson_profiles", values)
        stored = profile_from_row(row)
        # The write response carries no joined display name
        return replace(stored, coach_name=profile.coach_name)

    def list_packages(self, hub_id: str, coach_user_id: str, active_only: bool = False) -> list[LessonPackage]:
        filters = {"hub_id": f"eq.{hub_id}", "coach_user_id": f"eq.{coach_user_id}"}
        if active_only:
            filters["is_active"] = "eq.true"
        rows = self._client.select("lesson_packages", filters, order="sort_order.asc")
        return [package_from_row(r) for r in rows]

    def upsert_package(self, package: LessonPackage) -> LessonPackage:
        values = {
            "hub_id": package.hub_id,
            "coach_user_id": package.coach_user_id,
            "name": package.name,
            "duration_minutes": package.duration_minutes,
            "max_gymnasts": package.max_gymnasts,
            "price": str(package.price),
            "description": package.description,
            "is_active": package.is_active,
            "sort_order": package.sort_order,
            "is_default": package.is_default,
            "updated_at": _now_iso(),
        }
        if package.id:
            rows = self._client.update("lesson_packages", {"id": f"eq.{package.id}"}, values)
            if not rows:
                raise RemoteWriteError(f"Lesson package {package.id} not found")
            return package_from_row(rows[0])
        return package_from_row(self._client.insert("lesson_packages", values))

    def delete_packages(self, package_ids: list[str]) -> None:
        if not package_ids:
            return
        self._client.delete("lesson_packages", {"id": in_filter(package_ids)})


class SupabaseSlotRegistry(SlotRegistryPort):
    def __init__(self, client: PostgrestClient, write_retries: int = 3) -> None:
        self._client = client
        self._write_retries = write_retries
        self._logger = logging.getLogger(__name__)

    def get_slot(self, slot_id: str) -> LessonSlot | None:
        rows = self._client.select("lesson_slots", {"id": f"eq.{slot_id}"})
        return slot_from_row(rows[0]) if rows else None

    def create_slot(self, slot: LessonSlot) -> LessonSlot:
        row = self._client.insert(
            "lesson_slots",
            {
                "hub_id": slot.hub_id,
                "coach_user_id": slot.coach_user_id,
                "slot_date": slot.slot_date.isoformat(),
                "start_time": format_time(slot.start_time),
                "end_time": format_time(slot.end_time),
                "max_gymnasts": slot.max_gymnasts,
                "package_id": slot.package_id,
                "availability_id": slot.availability_id,
                "is_one_off": slot.is_one_off,
                "status": slot.status,
                "booked_count": slot.booked_count,
                "version": slot.version,
            },
        )
        return slot_from_row(row)

    def list_slots(
        self,
        hub_id: str,
        start_date: date,
        end_date: date,
        coach_user_id: str | None = None,
        include_cancelled: bool = False,
    ) -> list[LessonSlot]:
        filters = {"hub_id": f"eq.{hub_id}", "and": f"(slot_date.gte.{start_date},slot_date.lte.{end_date})"}
        if coach_user_id:
            filters["coach_user_id"] = f"eq.{coach_user_id}"
        if not include_cancelled:
            filters["status"] = "neq.cancelled"
        rows = self._client.select("lesson_slots", filters, order="slot_date.asc,start_time.asc")
        return [slot_from_row(r) for r in rows]

    def list_slot_ids_for_coach(self, hub_id: str, coach_user_id: str) -> list[str]:
        rows = self._client.select(
            "lesson_slots",
            {"hub_id": f"eq.{hub_id}", "coach_user_id": f"eq.{coach_user_id}"},
            columns="id",
        )
        return [str(r["id"]) for r in rows]

    def claim_seat(self, slot_id: str, expected_version: int) -> LessonSlot:
        current = self._require(slot_id)
        if current.version != expected_version:
            raise VersionConflictError(f"Slot {slot_id} is at version {current.version}, expected {expected_version}")
        # The count is written from the same row the version was read from
        rows = self._client.update(
            "lesson_slots",
            {
                "id": f"eq.{slot_id}",
                "version": f"eq.{expected_version}",
                "booked_count": f"eq.{current.booked_count}",
            },
            {"booked_count": current.booked_count + 1, "version": expected_version + 1},
        )
        if not rows:
            raise VersionConflictError(f"Slot {slot_id} changed while claiming a seat")
        return slot_from_row(rows[0])

    def release_seat(self, slot_id: str) -> LessonSlot:
        return self._versioned_patch(
            slot_id,
            lambda current: {"booked_count": max(0, current.booked_count - 1)},
            "release a seat on",
        )

    def update(self, slot_id: str, package_id: str | None, end_time: time, max_gymnasts: int) -> LessonSlot:
        return self._versioned_patch(
            slot_id,
            lambda current: {
                "package_id": package_id,
                "end_time": format_time(end_time),
                "max_gymnasts": max_gymnasts,
            },
            "update",
        )

    def set_status(self, slot_id: str, status: str) -> LessonSlot:
        return self._versioned_patch(slot_id, lambda current: {"status": status}, "change the status of")

    def _versioned_patch(
        self,
        slot_id: str,
        values_for: Callable[[LessonSlot], dict[str, Any]],
        action: str,
    ) -> LessonSlot:
        """Every slot write is conditional on the version it read, so no seat claim is lost."""
        for attempt in range(1, self._write_retries + 1):
            current = self._require(slot_id)
            rows = self._client.update(
                "lesson_slots",
                {"id": f"eq.{slot_id}", "version": f"eq.{current.version}"},
                {**values_for(current), "version": current.version + 1},
            )
            if rows:
                return slot_from_row(rows[0])
            self._logger.info(
                "Slot write hit a version conflict",
                extra={"slot_id": slot_id, "attempt": attempt},
            )
        raise RemoteWriteError(f"Could not {action} slot {slot_id}: it kept changing")

    def _require(self, slot_id: str) -> LessonSlot:
        slot = self.get_slot(slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Lesson slot {slot_id} not found")
        return slot


class SupabaseBookingStore(BookingStorePort):
    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    def create_booking(self, booking: LessonBooking) -> LessonBooking:
        row = self._client.insert(
            "lesson_bookings",
            {
                "hub_id": booking.hub_id,
                "lesson_slot_id": booking.lesson_slot_id,
                "booked_by_user_id": booking.booked_by_user_id,
                "gymnast_profile_id": booking.gymnast_profile_id,
                "event": booking.event,
                "status": booking.status,
                "cost": str(booking.cost),
                "calendar_event_id": booking.calendar_event_id,
                "package_id": booking.package_id,
            },
        )
        return booking_from_row(row)

    def get_booking(self, booking_id: str) -> LessonBooking | None:
        rows = self._client.select("lesson_bookings", {"id": f"eq.{booking_id}"})
        return booking_from_row(rows[0]) if rows else None

    def cancel(
        self,
        booking_id: str,
        cancelled_by: str,
        cancelled_at: datetime,
        reason: str | None = None,
    ) -> LessonBooking:
        rows = self._client.update(
            "lesson_bookings",
            {"id": f"eq.{booking_id}", "status": "eq.confirmed"},
            {
                "status": "cancelled",
                "cancelled_at": cancelled_at.isoformat(),
                "cancelled_by": cancelled_by,
                "cancellation_reason": reason,
            },
        )
        if rows:
            return booking_from_row(rows[0])
        existing = self.get_booking(booking_id)
        if existing is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        raise BookingStateError(f"Booking {booking_id} is {existing.status}")

    def list_for_user(self, hub_id: str, user_id: str) -> list[LessonBooking]:
        rows = self._client.select(
            "lesson_bookings",
            {"hub_id": f"eq.{hub_id}", "booked_by_user_id": f"eq.{user_id}"},
            order="created_at.desc",
        )
        return [booking_from_row(r) for r in rows]

    def list_for_slots(self, hub_id: str, slot_ids: list[str]) -> list[LessonBooking]:
        if not slot_ids:
            return []
        rows = self._client.select(
            "lesson_bookings",
            {"hub_id": f"eq.{hub_id}", "lesson_slot_id": in_filter(slot_ids)},
            order="created_at.desc",
        )
        return [booking_from_row(r) for r in rows]


class SupabaseAvailabilityStore(AvailabilityStorePort):
    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    def add_window(self, window: LessonAvailability) -> LessonAvailability:
        row = self._client.insert(
            "lesson_availability",
            {
                "hub_id": window.hub_id,
                "coach_user_id": window.coach_user_id,
                "day_of_week": window.day_of_week,
                "start_time": format_time(window.start_time),
                "end_time": format_time(window.end_time),
                "effective_from": window.effective_from.isoformat() if window.effective_from else None,
                "effective_until": window.effective_until.isoformat() if window.effective_until else None,
                "is_active": True,
            },
        )
        return availability_from_row(row)

    def deactivate_window(self, window_id: str) -> None:
        self._client.update("lesson_availability", {"id": f"eq.{window_id}"}, {"is_active": False})

    def list_windows(self, hub_id: str, coach_user_id: str | None = None) -> list[LessonAvailability]:
        filters = {"hub_id": f"eq.{hub_id}", "is_active": "eq.true"}
        if coach_user_id:
            filters["coach_user_id"] = f"eq.{coach_user_id}"
        rows = self._client.select("lesson_availability", filters, order="day_of_week.asc,start_time.asc")
        return [availability_from_row(r) for r in rows]

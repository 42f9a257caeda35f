from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import NoReturn
from zoneinfo import ZoneInfo

from lesson_booking.application.exceptions import (
    RemoteWriteError,
    SlotFullError,
    SlotNotFoundError,
    ValidationError,
    VersionConflictError,
)
from lesson_booking.application.ports.booking_store import BookingStorePort
from lesson_booking.application.ports.calendar import CalendarPort
from lesson_booking.application.ports.catalog_store import CatalogStorePort
from lesson_booking.application.ports.reconciliation_queue import ReconciliationQueuePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.application.saga import Saga, SagaAborted
from lesson_booking.application.use_cases.eligibility import LessonOffer, describe_offer, offerable_disciplines
from lesson_booking.application.use_cases.pricing import BookingTerms, offerable_packages, resolve_terms
from lesson_booking.application.utils.time_helpers import format_time, local_datetime
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.discipline import discipline_label
from lesson_booking.domain.entities.gymnast import GymnastProfile
from lesson_booking.domain.entities.lesson_booking import LessonBooking
from lesson_booking.domain.entities.lesson_package import LessonPackage
from lesson_booking.domain.entities.lesson_slot import LessonSlot
from lesson_booking.domain.entities.side_effect import ReconciliationItem, SideEffectResult

STEP_SEAT = "seat_claimed"
STEP_CALENDAR = "calendar_created"
STEP_BOOKING = "confirmed"


@dataclass(frozen=True)
class BookLessonCommand:
    hub_id: str
    actor_id: str
    slot_id: str
    gymnast: GymnastProfile | None
    event: str | None
    selected_package_id: str | None = None


@dataclass(frozen=True)
class BookingOutcome:
    booking: LessonBooking
    terms: BookingTerms
    side_effects: list[SideEffectResult] = field(default_factory=list)
    saga_history: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BookingQuote:
    slot: LessonSlot
    terms: BookingTerms
    packages: list[LessonPackage]
    disciplines: list[str]
    coach_profile: CoachLessonProfile | None


class BookLessonUseCase:
    def __init__(
        self,
        calendar: CalendarPort,
        catalog: CatalogStorePort,
        slots: SlotRegistryPort,
        bookings: BookingStorePort,
        reconciliation: ReconciliationQueuePort,
        timezone: ZoneInfo,
        event_type: str = "private_lesson",
        seat_claim_max_retries: int = 3,
    ) -> None:
        self._calendar = calendar
        self._catalog = catalog
        self._slots = slots
        self._bookings = bookings
        self._reconciliation = reconciliation
        self._timezone = timezone
        self._event_type = event_type
        self._seat_claim_max_retries = max(1, seat_claim_max_retries)
        self._logger = logging.getLogger(__name__)

    def quote(self, slot_id: str, selected_package_id: str | None = None) -> BookingQuote:
        """Resolve the terms a booking would get, without writing anything."""
        slot = self._require_slot(slot_id)
        profile = self._catalog.get_profile(slot.hub_id, slot.coach_user_id)
        packages = self._catalog.list_packages(slot.hub_id, slot.coach_user_id, active_only=True)
        terms = resolve_terms(slot, packages, self._bound_selection(slot, selected_package_id), profile)
        return BookingQuote(
            slot=slot,
            terms=terms,
            packages=offerable_packages(packages),
            disciplines=offerable_disciplines(profile),
            coach_profile=profile,
        )

    def offer(self, slot_id: str, gymnasts: list[GymnastProfile]) -> LessonOffer:
        """Which of the caller's gymnasts this slot's coach teaches, and in which disciplines."""
        slot = self._require_slot(slot_id)
        profile = self._catalog.get_profile(slot.hub_id, slot.coach_user_id)
        offer = describe_offer(profile, gymnasts)
        if offer.no_eligible_gymnasts:
            raise ValidationError("None of your gymnasts match the levels this coach teaches")
        return offer

    def book(self, command: BookLessonCommand) -> BookingOutcome:
        if command.gymnast is None or not command.event:
            raise ValidationError("Please select a gymnast and lesson focus")

        slot = self._require_slot(command.slot_id)
        if slot.is_cancelled:
            raise ValidationError("This lesson slot is no longer available")

        profile = self._catalog.get_profile(slot.hub_id, slot.coach_user_id)
        packages = self._catalog.list_packages(slot.hub_id, slot.coach_user_id, active_only=True)
        active = offerable_packages(packages)

        if command.selected_package_id and not any(p.id == command.selected_package_id for p in active):
            raise ValidationError("The selected lesson package is not available")
        if (
            command.selected_package_id
            and slot.package_id
            and slot.booked_count > 0
            and command.selected_package_id != slot.package_id
        ):
            raise ValidationError("This slot is already booked with a different lesson package")

        terms = resolve_terms(slot, packages, self._bound_selection(slot, command.selected_package_id), profile)
        if terms.requires_package_selection:
            raise ValidationError("Please select a lesson package")
        if slot.package_id and slot.booked_count > 0 and terms.package_id != slot.package_id:
            # The package the slot was booked with has since been deactivated
            raise ValidationError("The lesson package for this slot is no longer available")

        gymnast = command.gymnast
        saga = Saga(name=f"book_lesson:{slot.id}")
        try:
            saga.run(
                STEP_SEAT,
                lambda: self._claim_seat(slot.id, terms.capacity),
                lambda claimed: self._slots.release_seat(claimed.id),
            )
            event_id = saga.run(
                STEP_CALENDAR,
                lambda: self._create_calendar_event(command, slot, terms, gymnast, profile),
                lambda created_id: self._calendar.delete_event(created_id),
            )
            booking = saga.run(
                STEP_BOOKING,
                lambda: self._bookings.create_booking(
                    LessonBooking(
                        id="",
                        hub_id=command.hub_id,
                        lesson_slot_id=slot.id,
                        booked_by_user_id=command.actor_id,
                        gymnast_profile_id=gymnast.id,
                        event=command.event or "",
                        cost=terms.price,
                        status="confirmed",
                        calendar_event_id=event_id,
                        package_id=terms.package_id,
                        created_at=datetime.now(timezone.utc),
                    )
                ),
            )
        except SagaAborted as e:
            self._raise_for_abort(e, slot)
        saga.complete()

        self._logger.info(
            "Lesson booked",
            extra={
                "booking_id": booking.id,
                "slot_id": slot.id,
                "calendar_event_id": booking.calendar_event_id,
                "package_id": terms.package_id,
            },
        )

        side_effects: list[SideEffectResult] = []
        if terms.package is not None:
            side_effects.append(self._annotate_slot(slot.id, terms))

        return BookingOutcome(
            booking=booking,
            terms=terms,
            side_effects=side_effects,
            saga_history=list(saga.history),
        )

    def _require_slot(self, slot_id: str) -> LessonSlot:
        slot = self._slots.get_slot(slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Lesson slot {slot_id} not found")
        return slot

    def _bound_selection(self, slot: LessonSlot, selected_package_id: str | None) -> str | None:
        # A slot that already holds bookings keeps the package it was booked with
        if slot.package_id and slot.booked_count > 0:
            return selected_package_id or slot.package_id
        return selected_package_id

    def _claim_seat(self, slot_id: str, capacity: int) -> LessonSlot:
        for attempt in range(1, self._seat_claim_max_retries + 1):
            current = self._require_slot(slot_id)
            if current.is_cancelled:
                raise ValidationError("This lesson slot is no longer available")
            if current.booked_count >= capacity:
                raise SlotFullError("This lesson slot is fully booked")
            try:
                return self._slots.claim_seat(slot_id, expected_version=current.version)
            except VersionConflictError:
                self._logger.info(
                    "Seat claim hit a version conflict",
                    extra={"slot_id": slot_id, "attempt": attempt},
                )
        raise RemoteWriteError("Failed to book lesson: the slot changed too many times, please retry")

    def _create_calendar_event(
        self,
        command: BookLessonCommand,
        slot: LessonSlot,
        terms: BookingTerms,
        gymnast: GymnastProfile,
        profile: CoachLessonProfile | None,
    ) -> str:
        coach_name = (profile.coach_name if profile else None) or "Coach"
        package_suffix = f" ({terms.package.name})" if terms.package else ""
        start = local_datetime(slot.slot_date, slot.start_time, self._timezone)
        if terms.package is not None:
            end = start + timedelta(minutes=terms.duration_minutes)
        else:
            end = local_datetime(slot.slot_date, slot.end_time, self._timezone)

        return self._calendar.create_event(
            start=start,
            end=end,
            title=f"Private Lesson: {gymnast.full_name} with {coach_name}{package_suffix}",
            description=f"{discipline_label(command.event or '')} lesson",
            event_type=self._event_type,
            created_by=command.actor_id,
            hub_id=command.hub_id,
        )

    def _annotate_slot(self, slot_id: str, terms: BookingTerms) -> SideEffectResult:
        try:
            self._slots.update(
                slot_id,
                package_id=terms.package_id,
                end_time=terms.end_time,
                max_gymnasts=terms.capacity,
            )
            return SideEffectResult(name="annotate_slot", ok=True, target_id=slot_id)
        except Exception as e:
            self._logger.warning("Slot annotation failed", extra={"slot_id": slot_id, "error": str(e)})
            self._reconciliation.enqueue(
                ReconciliationItem(
                    kind="slot_annotation",
                    target_id=slot_id,
                    reason=str(e),
                    payload={
                        "package_id": terms.package_id,
                        "end_time": format_time(terms.end_time),
                        "max_gymnasts": terms.capacity,
                    },
                    created_at=datetime.now(timezone.utc),
                )
            )
            return SideEffectResult(name="annotate_slot", ok=False, target_id=slot_id, error=str(e))

    def _raise_for_abort(self, aborted: SagaAborted, slot: LessonSlot) -> NoReturn:
        orphaned: list[str] = []
        for failure in aborted.compensation_failures:
            if failure.step == STEP_CALENDAR and failure.result:
                orphaned.append(str(failure.result))
                kind, target = "orphaned_calendar_event", str(failure.result)
            elif failure.step == STEP_SEAT:
                kind, target = "seat_release", slot.id
            else:
                continue
            self._reconciliation.enqueue(
                ReconciliationItem(
                    kind=kind,
                    target_id=target,
                    reason=str(failure.cause),
                    payload={"slot_id": slot.id, "failed_step": aborted.step},
                    created_at=datetime.now(timezone.utc),
                )
            )

        if isinstance(aborted.cause, (ValidationError, SlotNotFoundError)) and not orphaned:
            raise aborted.cause

        self._logger.error(
            "Lesson booking failed",
            extra={
                "slot_id": slot.id,
                "step": aborted.step,
                "error": str(aborted.cause),
                "orphaned_calendar_event_ids": orphaned,
            },
        )
        raise RemoteWriteError("Failed to book lesson", orphaned_calendar_event_ids=orphaned) from aborted.cause

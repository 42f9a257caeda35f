from datetime import date, timedelta

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from lesson_booking.api.v1.schemas import (
    AvailabilityRequestSchema,
    AvailabilitySchema,
    BookingOutcomeSchema,
    BookingSchema,
    BookRequestSchema,
    CancellationSchema,
    CancelRequestSchema,
    CatalogSchema,
    GeneratedSlotSchema,
    GymnastSchema,
    OfferRequestSchema,
    OfferSchema,
    OneOffSlotRequestSchema,
    PackageSchema,
    QuoteSchema,
    ReconciliationItemSchema,
    SideEffectSchema,
    SlotSchema,
    TermsSchema,
)
from lesson_booking.application.exceptions import (
    BookingNotFoundError,
    BookingStateError,
    LessonBookingError,
    RemoteWriteError,
    SlotNotFoundError,
    ValidationError,
)
from lesson_booking.application.ports.reconciliation_queue import ReconciliationQueuePort
from lesson_booking.application.use_cases.availability import AvailabilityUseCase
from lesson_booking.application.use_cases.book_lesson import BookLessonCommand, BookLessonUseCase
from lesson_booking.application.use_cases.cancel_booking import CancelBookingUseCase
from lesson_booking.application.use_cases.catalog import CatalogDraft, CatalogUseCase, PackageDraft
from lesson_booking.application.use_cases.list_bookings import ListBookingsUseCase
from lesson_booking.application.use_cases.pricing import BookingTerms
from lesson_booking.core.config import settings
from lesson_booking.domain.entities.availability import LessonAvailability
from lesson_booking.domain.entities.gymnast import GymnastProfile
from lesson_booking.domain.entities.lesson_booking import LessonBooking
from lesson_booking.domain.entities.lesson_package import LessonPackage
from lesson_booking.domain.entities.lesson_slot import LessonSlot
from lesson_booking.domain.entities.side_effect import SideEffectResult
from lesson_booking.wiring.dependencies import (
    get_availability_use_case,
    get_book_lesson_use_case,
    get_cancel_booking_use_case,
    get_catalog_use_case,
    get_list_bookings_use_case,
    get_reconciliation_queue,
)

router = APIRouter()


def to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, (SlotNotFoundError, BookingNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, BookingStateError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, RemoteWriteError) and e.orphaned_calendar_event_ids:
        return HTTPException(
            status_code=502,
            detail={"message": str(e), "orphaned_calendar_event_ids": e.orphaned_calendar_event_ids},
        )
    return HTTPException(status_code=502, detail=str(e))


def slot_schema(slot: LessonSlot) -> SlotSchema:
    return SlotSchema(
        id=slot.id,
        hub_id=slot.hub_id,
        coach_user_id=slot.coach_user_id,
        slot_date=slot.slot_date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        max_gymnasts=slot.max_gymnasts,
        package_id=slot.package_id,
        booked_count=slot.booked_count,
        status=slot.status,
        occupancy=slot.occupancy,
        availability_id=slot.availability_id,
        is_one_off=slot.is_one_off,
        is_generated=slot.is_generated,
    )


def package_schema(pkg: LessonPackage | PackageDraft) -> PackageSchema:
    return PackageSchema(
        id=pkg.id,
        name=pkg.name,
        duration_minutes=pkg.duration_minutes,
        max_gymnasts=pkg.max_gymnasts,
        price=pkg.price,
        description=pkg.description or None,
        is_active=pkg.is_active,
        is_default=pkg.is_default,
    )


def terms_schema(terms: BookingTerms) -> TermsSchema:
    return TermsSchema(
        package_id=terms.package_id,
        duration_minutes=terms.duration_minutes,
        start_time=terms.start_time,
        end_time=terms.end_time,
        price=terms.price,
        capacity=terms.capacity,
        requires_package_selection=terms.requires_package_selection,
    )


def booking_schema(booking: LessonBooking) -> BookingSchema:
    return BookingSchema(
        id=booking.id,
        hub_id=booking.hub_id,
        lesson_slot_id=booking.lesson_slot_id,
        booked_by_user_id=booking.booked_by_user_id,
        gymnast_profile_id=booking.gymnast_profile_id,
        event=booking.event,
        cost=booking.cost,
        status=booking.status,
        calendar_event_id=booking.calendar_event_id,
        package_id=booking.package_id,
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
        cancelled_by=booking.cancelled_by,
        cancellation_reason=booking.cancellation_reason,
    )


def side_effect_schemas(results: list[SideEffectResult]) -> list[SideEffectSchema]:
    return [SideEffectSchema(name=r.name, ok=r.ok, target_id=r.target_id, error=r.error) for r in results]


def availability_schema(window: LessonAvailability) -> AvailabilitySchema:
    return AvailabilitySchema(
        id=window.id,
        coach_user_id=window.coach_user_id,
        day_of_week=window.day_of_week,
        start_time=window.start_time,
        end_time=window.end_time,
        effective_from=window.effective_from,
        effective_until=window.effective_until,
        is_active=window.is_active,
    )


def catalog_schema(draft: CatalogDraft) -> CatalogSchema:
    return CatalogSchema(
        events=draft.events,
        levels=draft.levels,
        bio=draft.bio,
        is_active=draft.is_active,
        packages=[package_schema(p) for p in draft.packages],
    )


@router.get("/slots", response_model=list[SlotSchema])
def list_slots(
    hub_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    coach_user_id: str | None = None,
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    start = start_date or date.today()
    end = end_date or start + timedelta(days=settings.SLOT_LOOKAHEAD_DAYS)
    try:
        slots = uc.list_bookable_slots(hub_id, start, end, coach_user_id=coach_user_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return [slot_schema(s) for s in slots]


@router.post("/slots", response_model=SlotSchema)
def add_one_off_slot(
    req: OneOffSlotRequestSchema,
    x_actor_id: str = Header(...),
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    try:
        slot = uc.add_one_off_slot(req.hub_id, x_actor_id, req.slot_date, req.start_time, req.end_time)
    except LessonBookingError as e:
        raise to_http_error(e)
    return slot_schema(slot)


@router.post("/slots/materialize", response_model=SlotSchema)
def materialize_slot(
    req: GeneratedSlotSchema,
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    generated = LessonSlot(
        id="",
        hub_id=req.hub_id,
        coach_user_id=req.coach_user_id,
        slot_date=req.slot_date,
        start_time=req.start_time,
        end_time=req.end_time,
        max_gymnasts=req.max_gymnasts,
        availability_id=req.availability_id,
        is_one_off=False,
        is_generated=True,
    )
    try:
        slot = uc.materialize_slot(generated)
    except LessonBookingError as e:
        raise to_http_error(e)
    return slot_schema(slot)


@router.delete("/slots/{slot_id}", response_model=SlotSchema)
def cancel_slot(slot_id: str, uc: AvailabilityUseCase = Depends(get_availability_use_case)):
    try:
        slot = uc.cancel_slot(slot_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return slot_schema(slot)


@router.get("/slots/{slot_id}/quote", response_model=QuoteSchema)
def quote(
    slot_id: str,
    package_id: str | None = Query(default=None),
    uc: BookLessonUseCase = Depends(get_book_lesson_use_case),
):
    try:
        q = uc.quote(slot_id, selected_package_id=package_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return QuoteSchema(
        slot=slot_schema(q.slot),
        terms=terms_schema(q.terms),
        packages=[package_schema(p) for p in q.packages],
        disciplines=q.disciplines,
        coach_name=q.coach_profile.coach_name if q.coach_profile else None,
    )


@router.post("/slots/{slot_id}/offer", response_model=OfferSchema)
def offer(
    slot_id: str,
    req: OfferRequestSchema,
    uc: BookLessonUseCase = Depends(get_book_lesson_use_case),
):
    gymnasts = [
        GymnastProfile(id=g.id, first_name=g.first_name, last_name=g.last_name, level=g.level)
        for g in req.gymnasts
    ]
    try:
        o = uc.offer(slot_id, gymnasts)
    except LessonBookingError as e:
        raise to_http_error(e)
    return OfferSchema(
        eligible_gymnasts=[
            GymnastSchema(id=g.id, first_name=g.first_name, last_name=g.last_name, level=g.level)
            for g in o.eligible_gymnasts
        ],
        disciplines=o.disciplines,
    )


@router.post("/bookings", response_model=BookingOutcomeSchema)
def book(
    req: BookRequestSchema,
    x_actor_id: str = Header(...),
    uc: BookLessonUseCase = Depends(get_book_lesson_use_case),
):
    gymnast = (
        GymnastProfile(
            id=req.gymnast.id,
            first_name=req.gymnast.first_name,
            last_name=req.gymnast.last_name,
            level=req.gymnast.level,
        )
        if req.gymnast
        else None
    )
    command = BookLessonCommand(
        hub_id=req.hub_id,
        actor_id=x_actor_id,
        slot_id=req.slot_id,
        gymnast=gymnast,
        event=req.event,
        selected_package_id=req.package_id,
    )
    try:
        outcome = uc.book(command)
    except LessonBookingError as e:
        raise to_http_error(e)
    return BookingOutcomeSchema(
        booking=booking_schema(outcome.booking),
        terms=terms_schema(outcome.terms),
        side_effects=side_effect_schemas(outcome.side_effects),
    )


@router.post("/bookings/{booking_id}/cancel", response_model=CancellationSchema)
def cancel_booking(
    booking_id: str,
    req: CancelRequestSchema,
    x_actor_id: str = Header(...),
    uc: CancelBookingUseCase = Depends(get_cancel_booking_use_case),
):
    try:
        outcome = uc.cancel(booking_id, actor_id=x_actor_id, reason=req.reason)
    except LessonBookingError as e:
        raise to_http_error(e)
    return CancellationSchema(
        booking=booking_schema(outcome.booking),
        side_effects=side_effect_schemas(outcome.side_effects),
    )


@router.get("/bookings", response_model=list[BookingSchema])
def my_bookings(
    hub_id: str,
    x_actor_id: str = Header(...),
    uc: ListBookingsUseCase = Depends(get_list_bookings_use_case),
):
    try:
        bookings = uc.for_user(hub_id, x_actor_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return [booking_schema(b) for b in bookings]


@router.get("/coaches/{coach_user_id}/bookings", response_model=list[BookingSchema])
def coach_bookings(
    coach_user_id: str,
    hub_id: str,
    uc: ListBookingsUseCase = Depends(get_list_bookings_use_case),
):
    try:
        bookings = uc.for_coach(hub_id, coach_user_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return [booking_schema(b) for b in bookings]


@router.get("/coaches/{coach_user_id}/catalog", response_model=CatalogSchema)
def get_catalog(
    coach_user_id: str,
    hub_id: str,
    uc: CatalogUseCase = Depends(get_catalog_use_case),
):
    try:
        draft = uc.load(hub_id, coach_user_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return catalog_schema(draft)


@router.put("/coaches/{coach_user_id}/catalog", response_model=CatalogSchema)
def save_catalog(
    coach_user_id: str,
    hub_id: str,
    req: CatalogSchema,
    uc: CatalogUseCase = Depends(get_catalog_use_case),
):
    try:
        draft = uc.load(hub_id, coach_user_id)
        kept_ids = {p.id for p in req.packages if p.id}
        draft.pending_deletes = [p.id for p in draft.packages if p.id and p.id not in kept_ids]
        draft.events = list(req.events)
        draft.levels = list(req.levels)
        draft.bio = req.bio
        draft.is_active = req.is_active
        draft.packages = [
            PackageDraft(
                id=p.id,
                name=p.name,
                duration_minutes=p.duration_minutes,
                max_gymnasts=p.max_gymnasts,
                price=p.price,
                description=p.description or "",
                is_active=p.is_active,
                is_default=p.is_default,
            )
            for p in req.packages
        ]
        saved = uc.save(draft)
    except LessonBookingError as e:
        raise to_http_error(e)
    return catalog_schema(saved)


@router.get("/coaches/{coach_user_id}/availability", response_model=list[AvailabilitySchema])
def list_availability(
    coach_user_id: str,
    hub_id: str,
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    try:
        windows = uc.list_recurring_windows(hub_id, coach_user_id)
    except LessonBookingError as e:
        raise to_http_error(e)
    return [availability_schema(w) for w in windows]


@router.post("/coaches/{coach_user_id}/availability", response_model=AvailabilitySchema)
def add_availability(
    coach_user_id: str,
    req: AvailabilityRequestSchema,
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    try:
        window = uc.add_recurring_window(
            req.hub_id,
            coach_user_id,
            req.day_of_week,
            req.start_time,
            req.end_time,
            effective_from=req.effective_from,
            effective_until=req.effective_until,
        )
    except LessonBookingError as e:
        raise to_http_error(e)
    return availability_schema(window)


@router.delete("/availability/{window_id}", status_code=204)
def remove_availability(window_id: str, uc: AvailabilityUseCase = Depends(get_availability_use_case)):
    try:
        uc.remove_recurring_window(window_id)
    except LessonBookingError as e:
        raise to_http_error(e)


@router.get("/reconciliation", response_model=list[ReconciliationItemSchema])
def pending_reconciliation(queue: ReconciliationQueuePort = Depends(get_reconciliation_queue)):
    return [
        ReconciliationItemSchema(
            kind=i.kind,
            target_id=i.target_id,
            reason=i.reason,
            payload=i.payload,
            created_at=i.created_at,
        )
        for i in queue.pending()
    ]

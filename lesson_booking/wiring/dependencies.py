from functools import lru_cache
import logging

from lesson_booking.core.config import settings
from lesson_booking.application.ports.availability_store import AvailabilityStorePort
from lesson_booking.application.ports.booking_store import BookingStorePort
from lesson_booking.application.ports.calendar import CalendarPort
from lesson_booking.application.ports.catalog_store import CatalogStorePort
from lesson_booking.application.ports.reconciliation_queue import ReconciliationQueuePort
from lesson_booking.application.ports.slot_registry import SlotRegistryPort
from lesson_booking.application.use_cases.availability import AvailabilityUseCase
from lesson_booking.application.use_cases.book_lesson import BookLessonUseCase
from lesson_booking.application.use_cases.cancel_booking import CancelBookingUseCase
from lesson_booking.application.use_cases.catalog import CatalogUseCase
from lesson_booking.application.use_cases.list_bookings import ListBookingsUseCase
from lesson_booking.application.utils.time_helpers import safe_timezone
from lesson_booking.infrastructure.calendar.mock_calendar import MockCalendar
from lesson_booking.infrastructure.calendar.supabase_calendar import SupabaseCalendar
from lesson_booking.infrastructure.reconciliation.memory_queue import MemoryReconciliationQueue
from lesson_booking.infrastructure.store.memory_store import (
    MemoryAvailabilityStore,
    MemoryBookingStore,
    MemoryCatalogStore,
    MemorySlotRegistry,
)
from lesson_booking.infrastructure.store.supabase_store import (
    SupabaseAvailabilityStore,
    SupabaseBookingStore,
    SupabaseCatalogStore,
    SupabaseSlotRegistry,
)
from lesson_booking.infrastructure.supabase.postgrest_client import PostgrestClient


def use_supabase() -> bool:
    if settings.STORE_PROVIDER.lower() != "supabase":
        return False
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        if settings.ENV.lower() in {"dev", "local"}:
            logging.getLogger(__name__).info("Supabase not configured, using in-memory stores (ENV=dev/local)")
            return False
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required when STORE_PROVIDER=supabase.")
    return True


@lru_cache
def get_postgrest_client() -> PostgrestClient:
    return PostgrestClient(
        base_url=settings.SUPABASE_URL or "",
        service_key=settings.SUPABASE_SERVICE_KEY or "",
        timeout=settings.SUPABASE_TIMEOUT_SECONDS,
    )


@lru_cache
def get_catalog_store() -> CatalogStorePort:
    if use_supabase():
        return SupabaseCatalogStore(get_postgrest_client())
    return MemoryCatalogStore()


@lru_cache
def get_slot_registry() -> SlotRegistryPort:
    if use_supabase():
        return SupabaseSlotRegistry(get_postgrest_client())
    return MemorySlotRegistry()


@lru_cache
def get_booking_store() -> BookingStorePort:
    if use_supabase():
        return SupabaseBookingStore(get_postgrest_client())
    return MemoryBookingStore()


@lru_cache
def get_availability_store() -> AvailabilityStorePort:
    if use_supabase():
        return SupabaseAvailabilityStore(get_postgrest_client())
    return MemoryAvailabilityStore()


@lru_cache
def get_calendar() -> CalendarPort:
    if use_supabase():
        return SupabaseCalendar(get_postgrest_client())
    return MockCalendar()


@lru_cache
def get_reconciliation_queue() -> ReconciliationQueuePort:
    return MemoryReconciliationQueue()


def get_book_lesson_use_case() -> BookLessonUseCase:
    return BookLessonUseCase(
        calendar=get_calendar(),
        catalog=get_catalog_store(),
        slots=get_slot_registry(),
        bookings=get_booking_store(),
        reconciliation=get_reconciliation_queue(),
        timezone=safe_timezone(settings.HUB_TIMEZONE),
        event_type=settings.CALENDAR_EVENT_TYPE,
        seat_claim_max_retries=settings.SEAT_CLAIM_MAX_RETRIES,
    )


def get_cancel_booking_use_case() -> CancelBookingUseCase:
    return CancelBookingUseCase(
        calendar=get_calendar(),
        slots=get_slot_registry(),
        bookings=get_booking_store(),
        reconciliation=get_reconciliation_queue(),
    )


def get_catalog_use_case() -> CatalogUseCase:
    return CatalogUseCase(
        catalog=get_catalog_store(),
        default_duration_minutes=settings.DEFAULT_LESSON_DURATION_MINUTES,
        default_max_gymnasts=settings.DEFAULT_MAX_GYMNASTS,
    )


def get_availability_use_case() -> AvailabilityUseCase:
    return AvailabilityUseCase(
        availability=get_availability_store(),
        slots=get_slot_registry(),
        catalog=get_catalog_store(),
        timezone=safe_timezone(settings.HUB_TIMEZONE),
        default_duration_minutes=settings.DEFAULT_LESSON_DURATION_MINUTES,
        default_max_gymnasts=settings.DEFAULT_MAX_GYMNASTS,
    )


def get_list_bookings_use_case() -> ListBookingsUseCase:
    return ListBookingsUseCase(bookings=get_booking_store(), slots=get_slot_registry())

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class Occupancy(str, Enum):
    available = "available"
    partial = "partial"
    booked = "booked"


class GymnastSchema(BaseModel):
    id: str
    first_name: str
    last_name: str
    level: str | None = None


class PackageSchema(BaseModel):
    id: str | None = None
    name: str
    duration_minutes: int
    max_gymnasts: int
    price: Decimal
    description: str | None = None
    is_active: bool = True
    is_default: bool = False


class SlotSchema(BaseModel):
    id: str
    hub_id: str
    coach_user_id: str
    slot_date: date
    start_time: time
    end_time: time
    max_gymnasts: int
    package_id: str | None = None
    booked_count: int = 0
    status: str = "available"
    occupancy: Occupancy = Occupancy.available
    availability_id: str | None = None
    is_one_off: bool = True
    is_generated: bool = False


class GeneratedSlotSchema(BaseModel):
    hub_id: str
    coach_user_id: str
    slot_date: date
    start_time: time
    end_time: time
    max_gymnasts: int = 1
    availability_id: str | None = None


class OneOffSlotRequestSchema(BaseModel):
    hub_id: str
    slot_date: date
    start_time: time
    end_time: time


class TermsSchema(BaseModel):
    package_id: str | None = None
    duration_minutes: int
    start_time: time
    end_time: time
    price: Decimal
    capacity: int
    requires_package_selection: bool


class QuoteSchema(BaseModel):
    slot: SlotSchema
    terms: TermsSchema
    packages: list[PackageSchema] = Field(default_factory=list)
    disciplines: list[str] = Field(default_factory=list)
    coach_name: str | None = None


class OfferRequestSchema(BaseModel):
    gymnasts: list[GymnastSchema] = Field(default_factory=list)


class OfferSchema(BaseModel):
    eligible_gymnasts: list[GymnastSchema] = Field(default_factory=list)
    disciplines: list[str] = Field(default_factory=list)


class BookRequestSchema(BaseModel):
    hub_id: str
    slot_id: str
    gymnast: GymnastSchema | None = None
    event: str | None = None
    package_id: str | None = None


class BookingSchema(BaseModel):
    id: str
    hub_id: str
    lesson_slot_id: str
    booked_by_user_id: str
    gymnast_profile_id: str
    event: str
    cost: Decimal
    status: str
    calendar_event_id: str | None = None
    package_id: str | None = None
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None


class SideEffectSchema(BaseModel):
    name: str
    ok: bool
    target_id: str | None = None
    error: str | None = None


class BookingOutcomeSchema(BaseModel):
    booking: BookingSchema
    terms: TermsSchema
    side_effects: list[SideEffectSchema] = Field(default_factory=list)


class CancelRequestSchema(BaseModel):
    reason: str | None = None


class CancellationSchema(BaseModel):
    booking: BookingSchema
    side_effects: list[SideEffectSchema] = Field(default_factory=list)


class CatalogSchema(BaseModel):
    events: list[str] = Field(default_factory=list)
    levels: list[str] = Field(default_factory=list)
    bio: str = ""
    is_active: bool = True
    packages: list[PackageSchema] = Field(default_factory=list)


class AvailabilityRequestSchema(BaseModel):
    hub_id: str
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    effective_from: date | None = None
    effective_until: date | None = None


class AvailabilitySchema(BaseModel):
    id: str
    coach_user_id: str
    day_of_week: int
    start_time: time
    end_time: time
    effective_from: date | None = None
    effective_until: date | None = None
    is_active: bool = True


class ReconciliationItemSchema(BaseModel):
    kind: str
    target_id: str
    reason: str
    payload: dict = Field(default_factory=dict)
    created_at: datetime | None = None

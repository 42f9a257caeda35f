from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class LessonBooking:
    id: str
    hub_id: str
    lesson_slot_id: str
    booked_by_user_id: str
    gymnast_profile_id: str
    event: str
    cost: Decimal
    status: str = "confirmed"  # "confirmed", "cancelled"
    # Left in place after cancellation for audit
    calendar_event_id: str | None = None
    package_id: str | None = None
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

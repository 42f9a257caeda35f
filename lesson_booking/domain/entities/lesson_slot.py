from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time


@dataclass(frozen=True)
class LessonSlot:
    id: str
    hub_id: str
    coach_user_id: str
    slot_date: date
    start_time: time
    end_time: time
    max_gymnasts: int = 1
    package_id: str | None = None
    booked_count: int = 0
    version: int = 0
    status: str = "available"  # "available", "cancelled"
    availability_id: str | None = None
    is_one_off: bool = True
    is_generated: bool = False  # produced from recurring availability, not stored yet

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def occupancy(self) -> str:
        if self.booked_count <= 0:
            return "available"
        if self.booked_count >= self.max_gymnasts:
            return "booked"
        return "partial"

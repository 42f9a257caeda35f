from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time


@dataclass(frozen=True)
class LessonAvailability:
    id: str
    hub_id: str
    coach_user_id: str
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: time
    end_time: time
    effective_from: date | None = None
    effective_until: date | None = None
    is_active: bool = True

    def applies_to(self, day: date) -> bool:
        if not self.is_active:
            return False
        if (day.isoweekday() % 7) != self.day_of_week:
            return False
        if self.effective_from and day < self.effective_from:
            return False
        if self.effective_until and day > self.effective_until:
            return False
        return True

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LessonPackage:
    hub_id: str
    coach_user_id: str
    name: str
    duration_minutes: int
    max_gymnasts: int
    price: Decimal
    description: str | None = None
    is_active: bool = True
    sort_order: int = 0
    is_default: bool = False
    id: str | None = None

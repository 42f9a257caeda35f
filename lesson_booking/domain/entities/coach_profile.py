from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class CoachLessonProfile:
    hub_id: str
    coach_user_id: str
    events: frozenset[str] = field(default_factory=frozenset)
    levels: frozenset[str] = field(default_factory=frozenset)
    bio: str | None = None
    is_active: bool = True
    # Legacy scalars, kept for coaches without packages
    cost_per_lesson: Decimal | None = None
    lesson_duration_minutes: int | None = None
    max_gymnasts_per_slot: int | None = None
    coach_name: str | None = None  # display name from the identity collaborator
    id: str | None = None

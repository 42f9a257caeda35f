from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class SideEffectResult:
    """Outcome of a best-effort step that never rolls back the primary write."""

    name: str  # "annotate_slot", "delete_calendar_event", "release_seat"
    ok: bool
    target_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ReconciliationItem:
    kind: str  # "orphaned_calendar_event", "slot_annotation", "seat_release"
    target_id: str
    reason: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None

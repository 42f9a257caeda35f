from __future__ import annotations

import logging

from lesson_booking.application.ports.reconciliation_queue import ReconciliationQueuePort
from lesson_booking.domain.entities.side_effect import ReconciliationItem


class MemoryReconciliationQueue(ReconciliationQueuePort):
    def __init__(self, limit: int = 1000) -> None:
        self._items: list[ReconciliationItem] = []
        self._limit = limit
        self._logger = logging.getLogger(__name__)

    def enqueue(self, item: ReconciliationItem) -> None:
        self._items.append(item)
        if len(self._items) > self._limit:
            self._items = self._items[-self._limit :]
        self._logger.warning(
            "Queued for reconciliation",
            extra={"kind": item.kind, "target_id": item.target_id, "reason": item.reason},
        )

    def pending(self) -> list[ReconciliationItem]:
        return list(self._items)

from __future__ import annotations

from abc import ABC, abstractmethod

from lesson_booking.domain.entities.side_effect import ReconciliationItem


class ReconciliationQueuePort(ABC):
    @abstractmethod
    def enqueue(self, item: ReconciliationItem) -> None:
        raise NotImplementedError

    @abstractmethod
    def pending(self) -> list[ReconciliationItem]:
        raise NotImplementedError

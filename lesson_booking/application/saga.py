from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from lesson_booking.application.exceptions import CompensationFailure, LessonBookingError

T = TypeVar("T")


@dataclass
class CommittedStep:
    name: str
    result: Any
    compensate: Callable[[Any], None] | None = None


class SagaAborted(LessonBookingError):
    """Raised by Saga.run when a step fails; committed steps have already been compensated."""

    def __init__(self, step: str, cause: Exception, compensation_failures: list[CompensationFailure]) -> None:
        super().__init__(f"Step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
        self.compensation_failures = compensation_failures


@dataclass
class Saga:
    """
    Sequential multi-step write with compensations.

    Each successful step is recorded with its compensation. When a later step raises,
    compensations run in reverse commit order (a failing compensation does not stop
    the remaining ones) and SagaAborted carries the failing step's error plus any
    CompensationFailure collected on the way.

    state: "pending", then the name of the last committed step, then
    "completed" or "failed".
    """

    name: str
    state: str = "pending"
    committed: list[CommittedStep] = field(default_factory=list)
    history: list[str] = field(default_factory=lambda: ["pending"])

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def run(
        self,
        step: str,
        action: Callable[[], T],
        compensate: Callable[[T], None] | None = None,
    ) -> T:
        if self.state in {"completed", "failed"}:
            raise RuntimeError(f"Saga '{self.name}' already finished with state '{self.state}'")
        try:
            result = action()
        except Exception as e:
            self._logger.warning(
                "Saga step failed",
                extra={"saga": self.name, "step": step, "error": str(e)},
            )
            failures = self._compensate()
            self._transition("failed")
            raise SagaAborted(step, e, failures) from e

        self.committed.append(CommittedStep(name=step, result=result, compensate=compensate))
        self._transition(step)
        return result

    def complete(self) -> None:
        self._transition("completed")

    def committed_steps(self) -> list[str]:
        return [s.name for s in self.committed]

    def _compensate(self) -> list[CompensationFailure]:
        failures: list[CompensationFailure] = []
        while self.committed:
            done = self.committed.pop()
            if done.compensate is None:
                continue
            try:
                done.compensate(done.result)
                self._logger.info("Saga step compensated", extra={"saga": self.name, "step": done.name})
            except Exception as e:
                failure = CompensationFailure(done.name, e, result=done.result)
                self._logger.error(
                    "Saga compensation failed",
                    extra={"saga": self.name, "step": done.name, "error": str(e)},
                )
                failures.append(failure)
        return failures

    def _transition(self, state: str) -> None:
        self.state = state
        self.history.append(state)

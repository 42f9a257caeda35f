from typing import Any


class LessonBookingError(RuntimeError):
    """Base class for booking core failures."""
    pass


class ValidationError(LessonBookingError):
    """Raised when caller input is incomplete or breaks a catalog rule. Nothing was written."""
    pass


class SlotFullError(ValidationError):
    """Raised when a slot already holds as many bookings as its capacity allows."""
    pass


class SlotNotFoundError(LessonBookingError):
    pass


class BookingNotFoundError(LessonBookingError):
    pass


class BookingStateError(LessonBookingError):
    """Raised when a booking is not in a state that allows the requested transition."""
    pass


class VersionConflictError(LessonBookingError):
    """Raised by a slot registry when a conditional write saw a stale version."""
    pass


class RemoteWriteError(LessonBookingError):
    """Raised when a store or calendar write fails (network errors, rejected rows)."""

    def __init__(self, message: str, orphaned_calendar_event_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.orphaned_calendar_event_ids = list(orphaned_calendar_event_ids or [])


class CompensationFailure(LessonBookingError):
    """Raised when undoing a committed saga step fails."""

    def __init__(self, step: str, cause: Exception, result: Any = None) -> None:
        super().__init__(f"Compensation for step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
        self.result = result

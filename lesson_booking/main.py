import logging

from fastapi import FastAPI

from lesson_booking.api.v1.lessons import router as lessons_router
from lesson_booking.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in (
            "saga",
            "step",
            "booking_id",
            "slot_id",
            "calendar_event_id",
            "orphaned_calendar_event_ids",
            "package_id",
            "package_count",
            "attempt",
            "coach_user_id",
            "availability_id",
            "kind",
            "target_id",
            "reason",
            "method",
            "table",
            "status",
            "error",
        ):
            value = getattr(record, key, None)
            if value not in (None, "", []):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Private Lesson Booking", version="1.0.0")

app.include_router(lessons_router, prefix="/api/v1/lessons", tags=["lessons"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def add_minutes(start: time, minutes: int) -> time:
    """Wall-clock addition; wraps past midnight like a clock face."""
    anchor = datetime.combine(date(2000, 1, 1), start)
    return (anchor + timedelta(minutes=minutes)).time()


def window_minutes(start: time, end: time) -> int:
    """Minutes between two wall-clock times on the same day. Zero or negative if end <= start."""
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def minutes_to_time(minutes: int) -> time:
    return time(hour=(minutes // 60) % 24, minute=minutes % 60)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def local_datetime(day: date, at: time, timezone: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=timezone)


def parse_time(value: str | time) -> time:
    """Accept "HH:MM" or "HH:MM:SS" (the store format) as well as time objects."""
    if isinstance(value, time):
        return value
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    seconds = int(parts[2]) if len(parts) > 2 else 0
    return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)


def format_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


def safe_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")

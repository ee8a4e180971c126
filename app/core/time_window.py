"""
Fixed-offset time windows.

Every time-of-day restriction in the app (mobile login hours, audio upload
hours) is expressed as a half-open window of minutes since local midnight,
evaluated in a fixed-offset timezone (no DST). Default offset is IST (+330).

    MOBILE_LOGIN_WINDOW  → 10:00 – 13:00
    AUDIO_UPLOAD_WINDOW  → 14:00 – 19:00
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


@dataclass(frozen=True)
class TimeWindow:
    start_minute: int   # inclusive
    end_minute: int     # exclusive
    label: str = ""

    @classmethod
    def from_hours(cls, start_hour: int, end_hour: int, label: str = "") -> "TimeWindow":
        return cls(start_minute=start_hour * 60, end_minute=end_hour * 60, label=label)


MOBILE_LOGIN_WINDOW = TimeWindow.from_hours(10, 13, label="10 AM and 1 PM")
AUDIO_UPLOAD_WINDOW = TimeWindow.from_hours(14, 19, label="2:00 PM and 7:00 PM")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_since_midnight(now_utc: datetime, fixed_offset_minutes: int) -> int:
    shifted = as_utc(now_utc) + timedelta(minutes=fixed_offset_minutes)
    return shifted.hour * 60 + shifted.minute


def is_within(window: TimeWindow, now_utc: datetime, fixed_offset_minutes: int) -> bool:
    """True iff start <= local minute-of-day < end. The end minute is rejected."""
    current = minutes_since_midnight(now_utc, fixed_offset_minutes)
    return window.start_minute <= current < window.end_minute


def local_date(now_utc: datetime, fixed_offset_minutes: int):
    """Calendar date at the fixed offset (used for once-per-day limits)."""
    return (as_utc(now_utc) + timedelta(minutes=fixed_offset_minutes)).date()

"""
Audio upload gate.

Storing and streaming the audio itself is handled elsewhere; this module only
answers "may this user upload right now?":
  1. an audio_upload OTP must have been verified within the last hour
  2. the current time must fall inside AUDIO_UPLOAD_WINDOW (14:00–19:00 IST)
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.config import settings
from app.core.time_window import AUDIO_UPLOAD_WINDOW, as_utc, is_within, utcnow
from app.models.user import User

AUDIO_VERIFICATION_TTL = timedelta(hours=1)


@dataclass(frozen=True)
class UploadPermission:
    allowed: bool
    reason: str


def check_upload_permission(user: User, now: Optional[datetime] = None) -> UploadPermission:
    now = now or utcnow()
    verified_at = as_utc(user.audio_upload_verified_at)
    if verified_at is None or verified_at < now - AUDIO_VERIFICATION_TTL:
        return UploadPermission(False, "Please verify your email before uploading audio")

    if not is_within(AUDIO_UPLOAD_WINDOW, now, settings.timezone_offset_minutes):
        return UploadPermission(
            False, f"Audio uploads are only allowed between {AUDIO_UPLOAD_WINDOW.label} IST"
        )
    return UploadPermission(True, "Audio upload allowed")

"""
OTP service: generation, storage (hashed), verification and delivery.

Security design decisions:
  1. Raw OTP is NEVER stored — only bcrypt hash. If DB is breached, OTPs are useless.
  2. One pending row per (user, purpose). A new request overwrites it in place,
     so the previous code stops verifying immediately (last-issued-wins).
  3. The row is read with SELECT FOR UPDATE in both issue and verify, so the two
     are linearised per (user, purpose). The unique constraint catches two
     concurrent first issues; the loser retries as an update.
  4. OTPs expire after OTP_EXPIRY_MINUTES and are single-use (consumed_at).
  5. secrets.randbelow() is cryptographically secure (unlike random.randint).
  6. Brute-force of 6-digit code is prevented by slowapi rate limiting at the HTTP layer.

Issuance and delivery are decoupled: issue_otp() commits the code and returns an
IssuedOTP; deliver_otp() runs afterwards (BackgroundTasks) and never raises.
"""
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.security import pwd_context
from app.core.time_window import as_utc, utcnow
from app.database import to_uuid
from app.models.otp import PendingOTP
from app.models.user import User
from app.services.auth_policy import OTPChannel
from app.services.email_service import send_otp_email
from app.services.sms_service import send_otp_sms

logger = logging.getLogger(__name__)

OTP_EXPIRY_MINUTES = settings.otp_expiry_minutes

PURPOSE_LOGIN = "login"
PURPOSE_PASSWORD_RESET = "password_reset"
PURPOSE_AUDIO_UPLOAD = "audio_upload"
PURPOSE_LANGUAGE_SWITCH = "language_switch"
PURPOSE_PHONE_VERIFY = "phone_verify"

PURPOSE_LABELS = {
    PURPOSE_LOGIN: "login",
    PURPOSE_PASSWORD_RESET: "password reset",
    PURPOSE_AUDIO_UPLOAD: "audio upload",
    PURPOSE_LANGUAGE_SWITCH: "language switch",
    PURPOSE_PHONE_VERIFY: "phone verification",
}


class VerifyResult(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    EXPIRED = "expired"
    NONE_PENDING = "none_pending"


@dataclass(frozen=True)
class IssuedOTP:
    user_id: uuid.UUID
    purpose: str
    channel: OTPChannel
    destination: str
    code: str
    expires_at: datetime

    def __repr__(self) -> str:
        # keep the raw code out of logs and tracebacks
        return (
            f"IssuedOTP(user_id={self.user_id}, purpose={self.purpose!r}, "
            f"channel={self.channel.value!r}, destination={mask_destination(self.channel, self.destination)!r})"
        )


def generate_otp() -> str:
    """
    Generate a cryptographically secure 6-digit OTP.
    secrets.randbelow(900000) gives 0–899999, +100000 gives 100000–999999.
    Always 6 digits — no leading zero issues.
    """
    return str(secrets.randbelow(900000) + 100000)


def mask_destination(channel: OTPChannel, destination: Optional[str]) -> str:
    """j***@example.com / ********4321"""
    if not destination:
        return ""
    if channel == OTPChannel.SMS:
        visible = destination[-4:]
        return "*" * max(len(destination) - 4, 0) + visible
    local, _, domain = destination.partition("@")
    if not domain:
        return destination[:1] + "***"
    return f"{local[:1]}***@{domain}"


def _lock_pending(db: Session, user_id, purpose: str) -> Optional[PendingOTP]:
    return db.execute(
        select(PendingOTP)
        .where(PendingOTP.user_id == to_uuid(user_id), PendingOTP.purpose == purpose)
        .with_for_update()
    ).scalar_one_or_none()


def get_pending(db: Session, user_id, purpose: str) -> Optional[PendingOTP]:
    """Read-only lookup, e.g. to fetch the context stored with a code."""
    return db.execute(
        select(PendingOTP).where(
            PendingOTP.user_id == to_uuid(user_id),
            PendingOTP.purpose == purpose,
        )
    ).scalar_one_or_none()


def issue_otp(
    db: Session,
    user: User,
    purpose: str,
    channel: OTPChannel,
    destination: Optional[str] = None,
    context: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> IssuedOTP:
    """
    Create (or overwrite) the pending code for (user, purpose) and commit it.

    destination defaults to the user's email / phone for the channel.
    Returns the IssuedOTP; the raw code is only ever held in memory.
    """
    if channel == OTPChannel.NONE:
        raise ValueError("Cannot issue an OTP without a delivery channel")
    if destination is None:
        destination = user.phone if channel == OTPChannel.SMS else user.email
    if not destination:
        raise ValueError(f"No {channel.value} destination on file for user {user.id}")

    now = now or utcnow()
    raw_otp = generate_otp()
    code_hash = pwd_context.hash(raw_otp)
    expires_at = now + timedelta(minutes=OTP_EXPIRY_MINUTES)

    for attempt in range(2):
        record = _lock_pending(db, user.id, purpose)
        if record is None:
            record = PendingOTP(user_id=to_uuid(user.id), purpose=purpose)
            db.add(record)
        record.channel = channel.value
        record.code_hash = code_hash
        record.context = context
        record.issued_at = now
        record.expires_at = expires_at
        record.consumed_at = None
        try:
            db.commit()
            break
        except IntegrityError:
            # another request inserted the row first; lock it and overwrite
            db.rollback()
            if attempt:
                raise

    logger.info("Issued %s OTP for user %s via %s", purpose, user.id, channel.value)
    return IssuedOTP(
        user_id=to_uuid(user.id),
        purpose=purpose,
        channel=channel,
        destination=destination,
        code=raw_otp,
        expires_at=expires_at,
    )


def verify_otp(
    db: Session,
    user_id,
    purpose: str,
    supplied_code: Optional[str],
    now: Optional[datetime] = None,
    commit: bool = True,
) -> VerifyResult:
    """
    Checks, in order:
    - a code exists for (user, purpose) and has not been consumed → else NONE_PENDING
    - now <= expires_at                                           → else EXPIRED
    - bcrypt.verify(trimmed code, stored hash)                     → else INVALID
    On success the row is marked consumed (single use) and OK is returned.

    commit=False only flushes the consumption, so the caller can apply the
    effect of the code in the same transaction and commit (or roll back) once.
    """
    now = now or utcnow()
    record = _lock_pending(db, user_id, purpose)

    if record is None or record.consumed_at is not None:
        result = VerifyResult.NONE_PENDING
    elif now > as_utc(record.expires_at):
        result = VerifyResult.EXPIRED
    else:
        candidate = (supplied_code or "").strip()
        if len(candidate) == 6 and candidate.isdigit() and pwd_context.verify(candidate, record.code_hash):
            result = VerifyResult.OK
        else:
            result = VerifyResult.INVALID

    if result == VerifyResult.OK:
        record.consumed_at = now
        if commit:
            db.commit()
        else:
            db.flush()
    else:
        db.rollback()  # release the row lock

    logger.info("Verify %s OTP for user %s: %s", purpose, user_id, result.value)
    return result


async def deliver_otp(issued: IssuedOTP) -> bool:
    """
    Hand the code to the email / SMS provider.

    Delivery failure never invalidates the code. Outside production the code is
    written to the log as the fallback channel so the flow can still be completed.
    """
    label = PURPOSE_LABELS.get(issued.purpose, issued.purpose)
    if issued.channel == OTPChannel.SMS:
        result = await send_otp_sms(issued.destination, issued.code, label)
    else:
        result = await send_otp_email(issued.destination, issued.code, label)

    if result.get("success"):
        return True

    if settings.is_production:
        logger.error(
            "%s OTP delivery via %s failed for user %s: %s",
            issued.purpose, issued.channel.value, issued.user_id, result.get("error"),
        )
    else:
        logger.warning(
            "%s OTP delivery via %s failed for user %s (%s); fallback code: %s",
            issued.purpose, issued.channel.value, issued.user_id, result.get("error"), issued.code,
        )
    return False

"""
Account verifications that ride on the OTP lifecycle (everything except login
and password reset):

  audio_upload     → email code; success stamps audio_upload_verified_at
  language_switch  → email code for French, SMS for every other language;
                     success sets preferred_language
  phone_verify     → SMS to the number being added; success stores it as verified

Each purpose has its own pending slot, so these flows never clobber a login code.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import BadRequestException
from app.core.time_window import utcnow
from app.models.user import User, SUPPORTED_LANGUAGES
from app.services import otp_service
from app.services.auth_policy import OTPChannel
from app.services.otp_service import IssuedOTP, VerifyResult

logger = logging.getLogger(__name__)

USER_VERIFICATION_PURPOSES = (
    otp_service.PURPOSE_AUDIO_UPLOAD,
    otp_service.PURPOSE_LANGUAGE_SWITCH,
    otp_service.PURPOSE_PHONE_VERIFY,
)

# Languages whose switch is confirmed by email instead of SMS
EMAIL_CONFIRMED_LANGUAGES = {"fr"}


def start_verification(
    db: Session,
    user: User,
    purpose: str,
    language: Optional[str] = None,
    phone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IssuedOTP:
    """Validates the request for the purpose and issues its code."""
    if purpose == otp_service.PURPOSE_AUDIO_UPLOAD:
        return otp_service.issue_otp(db, user, purpose, OTPChannel.EMAIL, now=now)

    if purpose == otp_service.PURPOSE_LANGUAGE_SWITCH:
        if language not in SUPPORTED_LANGUAGES:
            raise BadRequestException(f"language must be one of: {', '.join(SUPPORTED_LANGUAGES)}")
        if language in EMAIL_CONFIRMED_LANGUAGES:
            channel = OTPChannel.EMAIL
        elif user.phone and user.phone_verified:
            channel = OTPChannel.SMS
        else:
            raise BadRequestException("A verified phone number is required to switch to this language")
        return otp_service.issue_otp(
            db, user, purpose, channel, context={"language": language}, now=now
        )

    if purpose == otp_service.PURPOSE_PHONE_VERIFY:
        if not phone:
            raise BadRequestException("phone is required")
        return otp_service.issue_otp(
            db, user, purpose, OTPChannel.SMS, destination=phone, context={"phone": phone}, now=now
        )

    raise BadRequestException(f"purpose must be one of: {', '.join(USER_VERIFICATION_PURPOSES)}")


def complete_verification(
    db: Session,
    user: User,
    purpose: str,
    code: str,
    now: Optional[datetime] = None,
) -> VerifyResult:
    """Verifies the code and, on success, applies the purpose's effect to the user."""
    if purpose not in USER_VERIFICATION_PURPOSES:
        raise BadRequestException(f"purpose must be one of: {', '.join(USER_VERIFICATION_PURPOSES)}")

    now = now or utcnow()
    result = otp_service.verify_otp(db, user.id, purpose, code, now=now, commit=False)
    if result != VerifyResult.OK:
        return result

    record = otp_service.get_pending(db, user.id, purpose)
    context = (record.context if record is not None else None) or {}

    if purpose == otp_service.PURPOSE_AUDIO_UPLOAD:
        user.audio_upload_verified_at = now
    elif purpose == otp_service.PURPOSE_LANGUAGE_SWITCH:
        user.preferred_language = context.get("language", user.preferred_language)
    elif purpose == otp_service.PURPOSE_PHONE_VERIFY:
        user.phone = context.get("phone", user.phone)
        user.phone_verified = True

    db.commit()
    db.refresh(user)
    logger.info("User %s completed %s verification", user.id, purpose)
    return result

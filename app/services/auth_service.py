"""
Auth service: the login orchestrator plus account-level operations.
Keeps routers thin — routers only handle HTTP, services handle logic.

Login state machine:

  CREDENTIALS_SUBMITTED ──bad email/password──────────────────────────► REJECTED
        │
  CREDENTIALS_VALID ──classify device, decide policy──► POLICY_EVALUATED
        │                                                   │
        │                        deny (mobile, off-hours) ──┴──────────► REJECTED
        │
        ├── direct (Edge / IE) ──────────────────────────────► SESSION_ISSUED
        └── OTP ─► OTP_PENDING ──verify_login_otp ok──► OTP_VERIFIED ─► SESSION_ISSUED

Validation failures come back as typed outcomes (Rejected / OtpPending /
Granted); a wrong password, code or token is never raised as an exception.
Database errors propagate untouched; the app-level handler turns them into a
generic 500.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Union

from jwt.exceptions import InvalidTokenError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AuthError, ConflictException, GENERIC_CREDENTIALS_MESSAGE, TooManyRequestsException
from app.core.security import (
    create_access_token,
    create_login_otp_token,
    decode_access_token,
    decode_login_otp_token,
    hash_password,
    pwd_context,
    verify_password,
)
from app.core.time_window import as_utc, local_date, utcnow
from app.database import to_uuid
from app.middleware.login_audit import log_login_attempt, mark_attempt_succeeded
from app.models.pending_login import PendingLoginSession
from app.models.user import DEFAULT_NOTIFICATION_KEYWORDS, User
from app.services import otp_service
from app.services.auth_policy import AuthDecision, OTPChannel, decide
from app.services.device_classifier import DeviceFingerprint, classify
from app.services.otp_service import IssuedOTP, VerifyResult

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash used ONLY for constant-time comparison when the user
# doesn't exist — prevents timing attacks that reveal valid email addresses.
# Generated once at module load. Never stored anywhere or used for real auth.
_DUMMY_HASH: str = pwd_context.hash("__dummy_timing_prevention__")

AUTH_METHOD_FOR_CHANNEL = {
    OTPChannel.EMAIL: "otp_email",
    OTPChannel.SMS: "otp_sms",
}

OTP_FAILURES = {
    VerifyResult.INVALID: (AuthError.OTP_INVALID, "Invalid OTP"),
    VerifyResult.EXPIRED: (AuthError.OTP_EXPIRED, "OTP expired"),
    VerifyResult.NONE_PENDING: (AuthError.OTP_NOT_PENDING, "No OTP pending. Please request a new one."),
}


# ── Outcomes ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Rejected:
    error: AuthError
    reason: str
    reason_code: Optional[str] = None
    restriction: Optional[str] = None


@dataclass(frozen=True)
class OtpPending:
    intermediate_token: str
    channel: OTPChannel
    masked_destination: str
    device: DeviceFingerprint
    reason: str
    expires_at: datetime
    # handed to otp_service.deliver_otp by the router; never serialised
    delivery: IssuedOTP = field(repr=False)


@dataclass(frozen=True)
class Granted:
    session_token: str
    user: User


@dataclass(frozen=True)
class ResendOk:
    masked_destination: str
    delivery: IssuedOTP = field(repr=False)


LoginOutcome = Union[Rejected, OtpPending, Granted]


def _invalid_credentials() -> Rejected:
    return Rejected(AuthError.INVALID_CREDENTIALS, GENERIC_CREDENTIALS_MESSAGE)


def _invalid_login_token() -> Rejected:
    return Rejected(AuthError.TOKEN_INVALID, "Invalid or expired login token. Please log in again.")


def otp_failure(result: VerifyResult) -> Rejected:
    error, message = OTP_FAILURES[result]
    return Rejected(error, message)


# ── Registration ──────────────────────────────────────────────────────────────

def register_user(db: Session, name: str, username: str, email: str, password: str) -> User:
    """Creates a new account. Email and username must both be unused."""
    email = email.lower()
    username = username.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictException("An account with this email already exists")
    if db.query(User).filter(User.username == username).first():
        raise ConflictException("This username is already taken")

    user = User(
        name=name,
        username=username,
        email=email,
        hashed_password=hash_password(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# ── Login ─────────────────────────────────────────────────────────────────────

def login_with_password(
    db: Session,
    email: str,
    password: str,
    user_agent: Optional[str],
    forwarded_for: Optional[str],
    direct_address: Optional[str],
    real_ip: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LoginOutcome:
    """
    Runs one login attempt end to end. Every attempt by a known user writes
    exactly one login_history row; unknown emails write nothing.

    Security: always use the same error message regardless of whether
    the email exists or the password is wrong (prevents user enumeration).
    """
    now = now or utcnow()
    user = db.query(User).filter(User.email == email.lower()).first()
    # Always run verify_password regardless of whether the user exists.
    # This makes the response time identical for "wrong email" vs "wrong password",
    # preventing timing-based user enumeration attacks.
    password_ok = verify_password(password, user.hashed_password if user else _DUMMY_HASH)

    if user is None:
        logger.info("Login rejected: unknown email")
        return _invalid_credentials()

    fingerprint = classify(user_agent, forwarded_for, direct_address, real_ip)

    if not password_ok:
        log_login_attempt(db, user.id, fingerprint, "failed", "direct", now)
        logger.info("Login rejected for user %s: bad password", user.id)
        return _invalid_credentials()

    decision = decide(fingerprint, now)
    logger.info(
        "Login policy for user %s: browser=%s device=%s → %s",
        user.id, fingerprint.browser_name.value, fingerprint.device_type.value, decision.reason_code.value,
    )

    if not decision.allowed:
        log_login_attempt(db, user.id, fingerprint, "time_restricted", "direct", now)
        return Rejected(
            AuthError.POLICY_DENIED,
            decision.reason,
            reason_code=decision.reason_code.value,
            restriction=decision.restriction,
        )

    if not decision.requires_otp:
        user.last_login_at = now
        log_login_attempt(db, user.id, fingerprint, "success", "direct", now, commit=False)
        db.commit()
        return Granted(session_token=create_access_token(str(user.id), now=now), user=user)

    return _start_otp_challenge(db, user, fingerprint, decision, now)


def _lock_pending_login(db: Session, user_id) -> Optional[PendingLoginSession]:
    return db.execute(
        select(PendingLoginSession)
        .where(PendingLoginSession.user_id == to_uuid(user_id))
        .with_for_update()
    ).scalar_one_or_none()


def _start_otp_challenge(
    db: Session,
    user: User,
    fingerprint: DeviceFingerprint,
    decision: AuthDecision,
    now: datetime,
) -> OtpPending:
    # Code first: if the pending session write below fails, the user simply
    # never receives a token and has to start again.
    issued = otp_service.issue_otp(db, user, otp_service.PURPOSE_LOGIN, decision.otp_channel, now=now)

    user_id = to_uuid(user.id)
    jti = uuid.uuid4().hex
    expires_at = now + timedelta(minutes=settings.login_otp_token_expire_minutes)
    for attempt in range(2):
        pending = _lock_pending_login(db, user_id)
        if pending is None:
            pending = PendingLoginSession(user_id=user_id)
            db.add(pending)
        pending.jti = jti
        pending.channel = decision.otp_channel.value
        pending.fingerprint = fingerprint.to_dict()
        pending.expires_at = expires_at
        log_login_attempt(
            db, user_id, fingerprint, "otp_required", AUTH_METHOD_FOR_CHANNEL[decision.otp_channel], now,
            commit=False,
        )
        try:
            db.commit()
            break
        except IntegrityError:
            # a concurrent login for the same user inserted first; take over its row
            db.rollback()
            if attempt:
                raise

    return OtpPending(
        intermediate_token=create_login_otp_token(str(user.id), jti, now=now),
        channel=decision.otp_channel,
        masked_destination=otp_service.mask_destination(issued.channel, issued.destination),
        device=fingerprint,
        reason=decision.reason,
        expires_at=expires_at,
        delivery=issued,
    )


def _load_pending_login(
    db: Session, intermediate_token: str, now: datetime
) -> Optional[tuple[User, PendingLoginSession]]:
    """Token must be a live login_otp JWT whose jti matches the stored pending session."""
    try:
        payload = decode_login_otp_token(intermediate_token)
        user_id = to_uuid(payload["sub"])
    except (InvalidTokenError, ValueError):
        return None

    pending = db.execute(
        select(PendingLoginSession).where(
            PendingLoginSession.user_id == user_id,
            PendingLoginSession.jti == payload["jti"],
        )
    ).scalar_one_or_none()
    if pending is None or now > as_utc(pending.expires_at):
        return None

    user = db.get(User, user_id)
    if user is None:
        return None
    return user, pending


def verify_login_otp(
    db: Session,
    intermediate_token: str,
    code: str,
    now: Optional[datetime] = None,
) -> Union[Rejected, Granted]:
    """
    Second step of a challenged login. On failure the intermediate token stays
    usable (retry) until it expires; on success it is discarded together with
    the pending session.
    """
    now = now or utcnow()
    loaded = _load_pending_login(db, intermediate_token, now)
    if loaded is None:
        return _invalid_login_token()
    user, pending = loaded
    fingerprint = DeviceFingerprint.from_dict(pending.fingerprint)
    channel = OTPChannel(pending.channel)

    # consumption, history flip and session teardown commit together
    result = otp_service.verify_otp(db, user.id, otp_service.PURPOSE_LOGIN, code, now=now, commit=False)
    if result != VerifyResult.OK:
        return otp_failure(result)

    mark_attempt_succeeded(db, user.id, fingerprint, AUTH_METHOD_FOR_CHANNEL[channel], now)
    user.last_login_at = now
    db.delete(pending)
    db.commit()
    logger.info("Login OTP verified for user %s", user.id)
    return Granted(session_token=create_access_token(str(user.id), now=now), user=user)


def resend_login_otp(
    db: Session,
    intermediate_token: str,
    now: Optional[datetime] = None,
) -> Union[Rejected, ResendOk]:
    """Issue a fresh login code (the old one dies). Not a new attempt: no history row."""
    now = now or utcnow()
    loaded = _load_pending_login(db, intermediate_token, now)
    if loaded is None:
        return _invalid_login_token()
    user, pending = loaded
    channel = OTPChannel(pending.channel)

    issued = otp_service.issue_otp(db, user, otp_service.PURPOSE_LOGIN, channel, now=now)
    return ResendOk(
        masked_destination=otp_service.mask_destination(issued.channel, issued.destination),
        delivery=issued,
    )


def restore_session_from_token(db: Session, session_token: str) -> Optional[User]:
    """
    Resolve a full session token to its user. Intermediate login_otp tokens
    (and anything else that isn't a valid access token) yield None.
    """
    try:
        payload = decode_access_token(session_token)
        user_id = to_uuid(payload["sub"])
    except (InvalidTokenError, ValueError):
        return None
    return db.get(User, user_id)


# ── Password reset ────────────────────────────────────────────────────────────

RESET_METHODS = {
    "email": OTPChannel.EMAIL,
    "phone": OTPChannel.SMS,
}


def _find_reset_user(db: Session, method: str, value: str) -> Optional[User]:
    """Email lookup is case-insensitive; phone resets only go to a verified number."""
    if method == "phone":
        return db.query(User).filter(User.phone == value.strip(), User.phone_verified.is_(True)).first()
    return db.query(User).filter(User.email == value.lower()).first()


def request_password_reset(
    db: Session, value: str, method: str = "email", now: Optional[datetime] = None
) -> Optional[IssuedOTP]:
    """
    Issue a password_reset code by email or SMS. One request per user per local day.
    Returns None for unknown accounts; the router answers identically either way.
    """
    channel = RESET_METHODS[method]
    now = now or utcnow()
    user = _find_reset_user(db, method, value)
    if user is None:
        return None

    offset = settings.timezone_offset_minutes
    last = as_utc(user.password_reset_requested_at)
    if last is not None and local_date(last, offset) == local_date(now, offset):
        raise TooManyRequestsException(
            "You have already requested password reset today. Please try again tomorrow."
        )

    user.password_reset_requested_at = now
    db.commit()
    return otp_service.issue_otp(db, user, otp_service.PURPOSE_PASSWORD_RESET, channel, now=now)


def reset_password(
    db: Session,
    value: str,
    otp: str,
    new_password: str,
    method: str = "email",
    now: Optional[datetime] = None,
) -> VerifyResult:
    """Verifies the password_reset code, then updates the password in the same commit."""
    user = _find_reset_user(db, method, value)
    if user is None:
        return VerifyResult.NONE_PENDING

    result = otp_service.verify_otp(
        db, user.id, otp_service.PURPOSE_PASSWORD_RESET, otp, now=now, commit=False
    )
    if result != VerifyResult.OK:
        return result

    user.hashed_password = hash_password(new_password)
    db.commit()
    logger.info("Password reset for user %s via %s", user.id, method)
    return result


# ── Notification settings ─────────────────────────────────────────────────────

def get_notification_settings(user: User) -> dict:
    keywords = user.notification_keywords
    return {
        "enabled": user.notifications_enabled,
        "keywords": list(DEFAULT_NOTIFICATION_KEYWORDS if keywords is None else keywords),
        "browser_permission_granted": user.browser_notification_permission,
    }


def update_notification_settings(
    db: Session, user: User, enabled: bool, keywords: list[str], browser_permission_granted: bool
) -> dict:
    user.notifications_enabled = enabled
    user.notification_keywords = list(keywords)
    user.browser_notification_permission = browser_permission_granted
    db.commit()
    db.refresh(user)
    return get_notification_settings(user)

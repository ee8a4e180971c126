"""
Login history helper. NOT an HTTP middleware, but a utility called explicitly
by the login orchestrator (app/services/auth_service.py) for every attempt.

Why not a real HTTP middleware?
  - The outcome of an attempt (failed / otp_required / time_restricted / success)
    is only known deep inside the login flow
  - Unknown emails must NOT produce an entry (no user to attribute it to)
  - Resending an OTP must NOT produce an entry (same attempt)

Rows are append-only. The one allowed mutation is mark_attempt_succeeded():
flipping the most recent unresolved `otp_required` row of the same attempt to
`success` after its OTP is verified.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.database import to_uuid
from app.models.login_history import LoginHistory
from app.services.device_classifier import DeviceFingerprint


def log_login_attempt(
    db: Session,
    user_id,
    fingerprint: DeviceFingerprint,
    login_status: str,
    auth_method: str,
    login_time: datetime,
    commit: bool = True,
) -> LoginHistory:
    """
    Insert one history row.

    Args:
        login_status: "success" | "failed" | "otp_required" | "time_restricted"
        auth_method: "direct" | "otp_email" | "otp_sms"
        commit: pass False to fold the insert into the caller's transaction
    """
    entry = LoginHistory(
        user_id=to_uuid(user_id),
        ip_address=fingerprint.ip_address,
        browser=fingerprint.browser_name.value,
        browser_version=fingerprint.browser_version,
        browser_full_name=fingerprint.browser_full_name,
        os=fingerprint.os_name,
        os_version=fingerprint.os_version,
        platform=fingerprint.platform,
        device=fingerprint.device_type.value,
        device_vendor=fingerprint.device_vendor,
        device_model=fingerprint.device_model[:100],
        user_agent=fingerprint.user_agent,
        login_time=login_time,
        login_status=login_status,
        auth_method=auth_method,
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    return entry


def find_most_recent_unresolved(db: Session, user_id, browser: str) -> Optional[LoginHistory]:
    """Latest `otp_required` row for this user + browser, or None."""
    return db.execute(
        select(LoginHistory)
        .where(
            LoginHistory.user_id == to_uuid(user_id),
            LoginHistory.login_status == "otp_required",
            LoginHistory.browser == browser,
        )
        .order_by(LoginHistory.login_time.desc())
        .limit(1)
    ).scalar_one_or_none()


def mark_attempt_succeeded(
    db: Session,
    user_id,
    fingerprint: DeviceFingerprint,
    auth_method: str,
    login_time: datetime,
) -> LoginHistory:
    """
    Resolve the pending row for this attempt, or append a success row if none
    is found. Does not commit; runs inside the OTP-verification transaction.
    """
    entry = find_most_recent_unresolved(db, user_id, fingerprint.browser_name.value)
    if entry is not None:
        entry.login_status = "success"
        return entry
    return log_login_attempt(
        db,
        user_id=user_id,
        fingerprint=fingerprint,
        login_status="success",
        auth_method=auth_method,
        login_time=login_time,
        commit=False,
    )


def get_login_history(db: Session, user_id, limit: int = 50) -> list[LoginHistory]:
    """Newest first."""
    return list(
        db.execute(
            select(LoginHistory)
            .where(LoginHistory.user_id == to_uuid(user_id))
            .order_by(LoginHistory.login_time.desc())
            .limit(limit)
        ).scalars()
    )

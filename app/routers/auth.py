"""
Auth router: registration, conditional login, login OTP, login history, password reset.

Login:
  1. POST /auth/login
       → 200 {status: "granted", access_token, user}          (Edge / IE)
       → 200 {status: "otp_required", login_token, sent_to}   (Chrome and others)
       → 401 invalid credentials | 403 mobile outside 10 AM–1 PM IST
  2. POST /auth/verify-login-otp {login_token, otp} → access token
     POST /auth/resend-login-otp {login_token}      → new code, old one dies

The login_token is an intermediate JWT (type=login_otp, 10 min). It is refused
by every endpoint that requires a session.

Password reset:
  1. POST /auth/forgot-password → send OTP by email or SMS (method=email|phone;
     always 200, never reveals if the account exists)
  2. POST /auth/reset-password → verify OTP + set new password

Notification settings: GET / PUT /auth/notification-settings
"""
from typing import Union

from fastapi import APIRouter, Depends, BackgroundTasks, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.dependencies import get_current_user, get_request_addresses
from app.core.exceptions import exception_for
from app.core.rate_limiter import limiter
from app.core.security import create_access_token
from app.middleware.login_audit import get_login_history
from app.models.user import User
from app.schemas.auth import (
    RegisterRequest, LoginRequest, VerifyLoginOTPRequest, ResendLoginOTPRequest,
    ForgotPasswordRequest, ResetPasswordRequest, DeviceInfo,
    LoginGrantedResponse, LoginOTPRequiredResponse, ResendLoginOTPResponse,
    LoginHistoryResponse, MessageResponse,
    NotificationSettingsResponse, NotificationSettingsUpdate,
)
from app.schemas.user import UserAuthResponse, UserOut
from app.services import auth_service, otp_service
from app.services.auth_service import Granted, OtpPending, Rejected
from app.services.device_classifier import DeviceFingerprint
from app.services.otp_service import VerifyResult


router = APIRouter()


def _raise_rejected(outcome: Rejected):
    raise exception_for(
        outcome.error,
        reason=outcome.reason,
        reason_code=outcome.reason_code,
        restriction=outcome.restriction,
    )


def _granted_response(outcome: Granted) -> LoginGrantedResponse:
    return LoginGrantedResponse(
        access_token=outcome.session_token,
        user=UserAuthResponse.model_validate(outcome.user),
    )


def _device_info(fingerprint: DeviceFingerprint) -> DeviceInfo:
    return DeviceInfo(
        browser=fingerprint.browser_full_name,
        browser_version=fingerprint.browser_version,
        os=fingerprint.os_name,
        os_version=fingerprint.os_version,
        platform=fingerprint.platform,
        device_type=fingerprint.device_type.value,
        device_vendor=fingerprint.device_vendor,
        device_model=fingerprint.device_model,
        ip_address=fingerprint.ip_address,
    )


# ── Register ──────────────────────────────────────────────────────────────────

@router.post("/register", response_model=LoginGrantedResponse, status_code=201)
@limiter.limit("5/minute")
async def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create an account and sign straight in."""
    user = auth_service.register_user(
        db,
        name=body.name,
        username=body.username,
        email=body.email,
        password=body.password,
    )
    return LoginGrantedResponse(
        access_token=create_access_token(str(user.id)),
        user=UserAuthResponse.model_validate(user),
    )


# ── Login ─────────────────────────────────────────────────────────────────────

@router.post("/login", response_model=Union[LoginGrantedResponse, LoginOTPRequiredResponse])
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Login with email and password. The device/browser/time policy decides
    whether a session is issued now or an email OTP is required first.
    OTP delivery runs in BackgroundTasks so SMTP never delays the response.
    """
    outcome = auth_service.login_with_password(
        db,
        email=body.email,
        password=body.password,
        **get_request_addresses(request),
    )

    if isinstance(outcome, Rejected):
        _raise_rejected(outcome)

    if isinstance(outcome, OtpPending):
        background_tasks.add_task(otp_service.deliver_otp, outcome.delivery)
        return LoginOTPRequiredResponse(
            login_token=outcome.intermediate_token,
            otp_channel=outcome.channel.value,
            sent_to=outcome.masked_destination,
            expires_at=outcome.expires_at,
            message=f"{outcome.reason}. OTP sent to {outcome.masked_destination}.",
            device=_device_info(outcome.device),
        )

    return _granted_response(outcome)


@router.post("/verify-login-otp", response_model=LoginGrantedResponse)
@limiter.limit("10/minute")
async def verify_login_otp(
    request: Request,
    body: VerifyLoginOTPRequest,
    db: Session = Depends(get_db),
):
    """Step 2 of a challenged login: exchange login_token + OTP for a session."""
    outcome = auth_service.verify_login_otp(db, body.login_token, body.otp)
    if isinstance(outcome, Rejected):
        _raise_rejected(outcome)
    return _granted_response(outcome)


@router.post("/resend-login-otp", response_model=ResendLoginOTPResponse)
@limiter.limit("3/minute")
async def resend_login_otp(
    request: Request,
    body: ResendLoginOTPRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Send a fresh login code. The previous code stops working immediately."""
    outcome = auth_service.resend_login_otp(db, body.login_token)
    if isinstance(outcome, Rejected):
        _raise_rejected(outcome)

    background_tasks.add_task(otp_service.deliver_otp, outcome.delivery)
    return ResendLoginOTPResponse(
        message=f"A new OTP has been sent to {outcome.masked_destination}.",
        sent_to=outcome.masked_destination,
    )


# ── Session ───────────────────────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    """Restore the session: resolves the bearer token to its user."""
    return current_user


@router.get("/login-history", response_model=LoginHistoryResponse)
def login_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=100, description="Max entries, newest first"),
):
    entries = get_login_history(db, current_user.id, limit=limit)
    return {"login_history": entries}


# ── Forgot / Reset Password ───────────────────────────────────────────────────

@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Send password reset OTP to the email address or the verified phone number.
    Limited to one request per day per account. Returns 200 even if the account
    doesn't exist — never reveal account existence.
    """
    issued = auth_service.request_password_reset(db, body.value, method=body.method)
    if issued is not None:
        background_tasks.add_task(otp_service.deliver_otp, issued)

    return {"message": f"If an account with that {body.method} exists, a reset OTP has been sent."}


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    """Verify OTP and set a new password."""
    result = auth_service.reset_password(
        db, body.value, otp=body.otp, new_password=body.new_password, method=body.method
    )
    if result != VerifyResult.OK:
        _raise_rejected(auth_service.otp_failure(result))
    return {"message": "Password reset successfully. You can now login with your new password."}


# ── Notification settings ─────────────────────────────────────────────────────

@router.get("/notification-settings", response_model=NotificationSettingsResponse)
def get_notification_settings(current_user: User = Depends(get_current_user)):
    return {"notification_settings": auth_service.get_notification_settings(current_user)}


@router.put("/notification-settings", response_model=NotificationSettingsResponse)
def update_notification_settings(
    body: NotificationSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    new = body.notification_settings
    saved = auth_service.update_notification_settings(
        db,
        current_user,
        enabled=new.enabled,
        keywords=new.keywords,
        browser_permission_granted=new.browser_permission_granted,
    )
    return {
        "message": "Notification settings updated successfully",
        "notification_settings": saved,
    }

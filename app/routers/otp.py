"""
OTP router: account verifications for signed-in users.

  POST /otp/send   {purpose, language?, phone?} → code by email or SMS
  POST /otp/verify {purpose, otp}               → applies the verification

Purposes: audio_upload, language_switch, phone_verify.
Login and password-reset codes have their own endpoints under /auth.
"""
from fastapi import APIRouter, Depends, BackgroundTasks, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.dependencies import get_current_user
from app.core.exceptions import exception_for
from app.core.rate_limiter import limiter
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.otp import SendOTPRequest, SendOTPResponse, VerifyOTPRequest
from app.services import otp_service, verification_service
from app.services.auth_service import otp_failure
from app.services.otp_service import VerifyResult

router = APIRouter()


@router.post("/send", response_model=SendOTPResponse)
@limiter.limit("3/minute")
async def send_otp(
    request: Request,
    body: SendOTPRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    issued = verification_service.start_verification(
        db, current_user, body.purpose, language=body.language, phone=body.phone
    )
    background_tasks.add_task(otp_service.deliver_otp, issued)

    sent_to = otp_service.mask_destination(issued.channel, issued.destination)
    return SendOTPResponse(
        message=f"OTP sent to {sent_to}",
        channel=issued.channel.value,
        sent_to=sent_to,
    )


@router.post("/verify", response_model=MessageResponse)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    body: VerifyOTPRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = verification_service.complete_verification(db, current_user, body.purpose, body.otp)
    if result != VerifyResult.OK:
        rejected = otp_failure(result)
        raise exception_for(rejected.error)
    return {"message": f"{otp_service.PURPOSE_LABELS[body.purpose].capitalize()} verified successfully"}

"""
OTP schemas for the account verification flows (audio upload, language switch, phone).
"""
from pydantic import BaseModel, field_validator
from typing import Literal, Optional
import re

VerificationPurpose = Literal["audio_upload", "language_switch", "phone_verify"]


class SendOTPRequest(BaseModel):
    purpose: VerificationPurpose
    language: Optional[str] = None   # language_switch only
    phone: Optional[str] = None      # phone_verify only

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = re.sub(r"[\s\-()]", "", v)
        if not re.match(r"^\+?\d{7,15}$", v):
            raise ValueError("Please enter a valid phone number")
        return v


class VerifyOTPRequest(BaseModel):
    purpose: VerificationPurpose
    otp: str


class SendOTPResponse(BaseModel):
    message: str
    channel: str
    sent_to: str


class UploadPermissionResponse(BaseModel):
    allowed: bool
    reason: str

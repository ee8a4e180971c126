"""
Auth schemas: request bodies and responses for registration, login, OTP, and token operations.
"""
from pydantic import BaseModel, EmailStr, field_validator, model_validator, ConfigDict
from typing import Literal, Optional
from datetime import datetime
import re

from app.schemas.user import UserAuthResponse


class RegisterRequest(BaseModel):
    name: str
    username: str
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator("name")
    @classmethod
    def name_valid(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 50:
            raise ValueError("Name must be between 1 and 50 characters")
        return v

    @field_validator("username")
    @classmethod
    def username_valid(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3 or len(v) > 20:
            raise ValueError("Username must be between 3 and 20 characters")
        if not re.match(r"^[a-zA-Z0-9_]+$", v):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return v

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class VerifyLoginOTPRequest(BaseModel):
    login_token: str
    otp: str


class ResendLoginOTPRequest(BaseModel):
    login_token: str


class PasswordResetTarget(BaseModel):
    """Reset by email (default) or by the account's verified phone number."""
    method: Literal["email", "phone"] = "email"
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def target_present(self):
        if self.method == "email" and not self.email:
            raise ValueError("email is required when method is 'email'")
        if self.method == "phone" and not (self.phone or "").strip():
            raise ValueError("phone is required when method is 'phone'")
        return self

    @property
    def value(self) -> str:
        return self.email if self.method == "email" else self.phone.strip()


class ForgotPasswordRequest(PasswordResetTarget):
    pass


class ResetPasswordRequest(PasswordResetTarget):
    otp: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class DeviceInfo(BaseModel):
    browser: str
    browser_version: str
    os: str
    os_version: str
    platform: str
    device_type: str
    device_vendor: str
    device_model: str
    ip_address: str


class LoginGrantedResponse(BaseModel):
    status: Literal["granted"] = "granted"
    access_token: str
    token_type: str = "bearer"
    user: UserAuthResponse


class LoginOTPRequiredResponse(BaseModel):
    status: Literal["otp_required"] = "otp_required"
    login_token: str
    otp_channel: str
    sent_to: str
    expires_at: datetime
    message: str
    device: DeviceInfo


class ResendLoginOTPResponse(BaseModel):
    message: str
    sent_to: str


class LoginHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ip_address: str
    browser: str
    browser_version: Optional[str] = None
    browser_full_name: Optional[str] = None
    os: str
    os_version: Optional[str] = None
    platform: Optional[str] = None
    device: str
    device_vendor: Optional[str] = None
    device_model: Optional[str] = None
    user_agent: str
    login_time: datetime
    login_status: str
    auth_method: str

    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class LoginHistoryResponse(BaseModel):
    login_history: list[LoginHistoryOut]


class MessageResponse(BaseModel):
    message: str


class NotificationSettings(BaseModel):
    enabled: bool = True
    keywords: list[str] = ["cricket", "science"]
    browser_permission_granted: bool = False

    @field_validator("keywords")
    @classmethod
    def clean_keywords(cls, v: list[str]) -> list[str]:
        cleaned = []
        for keyword in v:
            keyword = keyword.strip().lower()
            if keyword and keyword not in cleaned:
                cleaned.append(keyword)
        if len(cleaned) > 20:
            raise ValueError("At most 20 keywords are allowed")
        return cleaned


class NotificationSettingsUpdate(BaseModel):
    notification_settings: NotificationSettings


class NotificationSettingsResponse(BaseModel):
    message: Optional[str] = None
    notification_settings: NotificationSettings

from app.schemas.auth import (
    RegisterRequest, LoginRequest, VerifyLoginOTPRequest, ResendLoginOTPRequest,
    ForgotPasswordRequest, ResetPasswordRequest, DeviceInfo,
    LoginGrantedResponse, LoginOTPRequiredResponse, ResendLoginOTPResponse,
    LoginHistoryOut, LoginHistoryResponse, MessageResponse,
    NotificationSettings, NotificationSettingsUpdate, NotificationSettingsResponse,
)
from app.schemas.user import UserOut, UserUpdateRequest, UserAuthResponse
from app.schemas.otp import SendOTPRequest, VerifyOTPRequest, SendOTPResponse, UploadPermissionResponse

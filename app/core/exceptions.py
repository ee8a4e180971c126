"""
Centralised custom exceptions.
Having them in one place means consistent error messages across the entire app
and easy global changes (e.g., changing status codes or adding logging).

Auth failures come back from the service layer as typed outcomes (AuthError);
routers turn them into the exceptions below via exception_for().
"""
from enum import Enum
from typing import Optional, Union

from fastapi import HTTPException, status


class AuthError(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    POLICY_DENIED = "policy_denied"
    OTP_INVALID = "otp_invalid"
    OTP_EXPIRED = "otp_expired"
    OTP_NOT_PENDING = "otp_not_pending"
    TOKEN_INVALID = "token_invalid"


GENERIC_CREDENTIALS_MESSAGE = "Invalid email or password"


class CredentialsException(HTTPException):
    def __init__(self, detail: Union[str, dict] = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class TokenInvalidException(HTTPException):
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": AuthError.TOKEN_INVALID.value, "message": detail},
            headers={"WWW-Authenticate": "Bearer"},
        )


class PolicyDeniedException(HTTPException):
    def __init__(self, reason: str, reason_code: str, restriction: str = "time_restricted"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": AuthError.POLICY_DENIED.value,
                "message": reason,
                "reason_code": reason_code,
                "restriction": restriction,
            },
        )


class OTPException(HTTPException):
    """Invalid / expired / missing OTP. `code` lets clients pick retry vs resend vs restart."""

    messages = {
        AuthError.OTP_INVALID: "Invalid OTP",
        AuthError.OTP_EXPIRED: "OTP expired",
        AuthError.OTP_NOT_PENDING: "No OTP pending. Please request a new one.",
    }

    def __init__(self, error: AuthError):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": error.value, "message": self.messages[error]},
        )


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundException(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class ConflictException(HTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class TooManyRequestsException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


def exception_for(
    error: AuthError,
    reason: Optional[str] = None,
    reason_code: Optional[str] = None,
    restriction: Optional[str] = None,
) -> HTTPException:
    """Map a service-layer AuthError onto its HTTP exception."""
    if error == AuthError.INVALID_CREDENTIALS:
        return CredentialsException(
            {"code": AuthError.INVALID_CREDENTIALS.value, "message": GENERIC_CREDENTIALS_MESSAGE}
        )
    if error == AuthError.POLICY_DENIED:
        return PolicyDeniedException(
            reason or "Login not allowed",
            reason_code or "",
            restriction or "time_restricted",
        )
    if error == AuthError.TOKEN_INVALID:
        return TokenInvalidException(reason or "Invalid or expired login token")
    return OTPException(error)

"""
Login policy engine: DeviceFingerprint + clock → AuthDecision.

Rules, first match wins:
  1. Mobile device outside the mobile window (10:00–13:00 IST) → deny
  2. Chrome                                                    → allow + email OTP
  3. Microsoft browsers (Edge, legacy IE)                      → allow, no OTP
  4. Everything else (Firefox, Safari, Opera, unknown)         → allow + email OTP

Only Microsoft browsers get direct access. Each browser is mapped to a policy
bucket in BROWSER_POLICY; the table must cover every BrowserName, so adding a
browser to the classifier without deciding its bucket fails at import time.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from app.config import settings
from app.core.time_window import MOBILE_LOGIN_WINDOW, is_within
from app.services.device_classifier import BrowserName, DeviceFingerprint, DeviceType


class OTPChannel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    NONE = "none"


class ReasonCode(str, Enum):
    DIRECT_OK = "direct_ok"
    OTP_REQUIRED_BROWSER = "otp_required_browser"
    TIME_RESTRICTED_MOBILE = "time_restricted_mobile"


class BrowserPolicy(str, Enum):
    CHALLENGE = "challenge"   # high-risk, always OTP
    DIRECT = "direct"         # Microsoft family
    DEFAULT = "default"       # not exempted → OTP


BROWSER_POLICY: dict[BrowserName, BrowserPolicy] = {
    BrowserName.CHROME: BrowserPolicy.CHALLENGE,
    BrowserName.EDGE: BrowserPolicy.DIRECT,
    BrowserName.IE: BrowserPolicy.DIRECT,
    BrowserName.FIREFOX: BrowserPolicy.DEFAULT,
    BrowserName.SAFARI: BrowserPolicy.DEFAULT,
    BrowserName.OPERA: BrowserPolicy.DEFAULT,
    BrowserName.UNKNOWN: BrowserPolicy.DEFAULT,
}

_missing = set(BrowserName) - set(BROWSER_POLICY)
if _missing:
    raise RuntimeError(f"No login policy defined for browsers: {sorted(b.value for b in _missing)}")


@dataclass(frozen=True)
class AuthDecision:
    allowed: bool
    requires_otp: bool
    otp_channel: OTPChannel
    reason_code: ReasonCode
    reason: str

    @property
    def restriction(self) -> str:
        """Short tag returned to clients alongside the reason."""
        if not self.allowed:
            return "time_restricted"
        return "otp_required" if self.requires_otp else "none"


def _deny_mobile() -> AuthDecision:
    return AuthDecision(
        allowed=False,
        requires_otp=False,
        otp_channel=OTPChannel.NONE,
        reason_code=ReasonCode.TIME_RESTRICTED_MOBILE,
        reason=f"Mobile access is only allowed between {MOBILE_LOGIN_WINDOW.label}",
    )


def _challenge(reason: str) -> AuthDecision:
    return AuthDecision(
        allowed=True,
        requires_otp=True,
        otp_channel=OTPChannel.EMAIL,
        reason_code=ReasonCode.OTP_REQUIRED_BROWSER,
        reason=reason,
    )


def decide(fingerprint: DeviceFingerprint, now: datetime) -> AuthDecision:
    """Pure function of (fingerprint, now)."""
    if fingerprint.device_type == DeviceType.MOBILE and not is_within(
        MOBILE_LOGIN_WINDOW, now, settings.timezone_offset_minutes
    ):
        return _deny_mobile()

    bucket = BROWSER_POLICY[fingerprint.browser_name]
    if bucket == BrowserPolicy.CHALLENGE:
        return _challenge("Chrome browser requires email OTP verification")
    if bucket == BrowserPolicy.DIRECT:
        return AuthDecision(
            allowed=True,
            requires_otp=False,
            otp_channel=OTPChannel.NONE,
            reason_code=ReasonCode.DIRECT_OK,
            reason="Microsoft browser - direct access allowed",
        )
    return _challenge("Additional verification required for this browser")

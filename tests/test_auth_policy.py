"""Tests for the login policy engine."""

import pytest

from app.services.auth_policy import (
    BROWSER_POLICY,
    AuthDecision,
    OTPChannel,
    ReasonCode,
    decide,
)
from app.services.device_classifier import BrowserName, DeviceFingerprint, DeviceType, classify
from tests.helpers import (
    CHROME_ANDROID,
    CHROME_ANDROID_TABLET,
    CHROME_DESKTOP,
    EDGE_ANDROID,
    EDGE_DESKTOP,
    FIREFOX_DESKTOP,
    FIREFOX_MOBILE,
    IE11_DESKTOP,
    OPERA_DESKTOP,
    SAFARI_IPHONE,
    SAFARI_MAC,
    ist,
)


def fingerprint(browser: BrowserName, device: DeviceType) -> DeviceFingerprint:
    return DeviceFingerprint(
        browser_name=browser,
        browser_version="1.0",
        os_name="Test",
        os_version="1",
        platform="test",
        device_type=device,
        ip_address="127.0.0.1",
    )


class TestDecisionTable:

    def test_every_browser_has_a_policy(self):
        assert set(BROWSER_POLICY) == set(BrowserName)

    def test_mobile_firefox_inside_window_gets_email_otp(self):
        decision = decide(classify(FIREFOX_MOBILE, None, None), ist(11))
        assert decision.allowed is True
        assert decision.requires_otp is True
        assert decision.otp_channel == OTPChannel.EMAIL
        assert decision.reason_code == ReasonCode.OTP_REQUIRED_BROWSER

    @pytest.mark.parametrize("ua", [FIREFOX_MOBILE, CHROME_ANDROID, EDGE_ANDROID, SAFARI_IPHONE])
    def test_mobile_outside_window_is_denied(self, ua):
        decision = decide(classify(ua, None, None), ist(15))
        assert decision.allowed is False
        assert decision.requires_otp is False
        assert decision.otp_channel == OTPChannel.NONE
        assert decision.reason_code == ReasonCode.TIME_RESTRICTED_MOBILE
        assert decision.reason == "Mobile access is only allowed between 10 AM and 1 PM"
        assert decision.restriction == "time_restricted"

    def test_mobile_at_window_end_is_denied(self):
        assert not decide(classify(FIREFOX_MOBILE, None, None), ist(13)).allowed

    def test_tablet_is_not_time_restricted(self):
        decision = decide(classify(CHROME_ANDROID_TABLET, None, None), ist(22))
        assert decision.allowed is True
        assert decision.requires_otp is True

    @pytest.mark.parametrize("hour", [0, 6, 11, 15, 23])
    def test_desktop_edge_any_time_is_direct(self, hour):
        decision = decide(classify(EDGE_DESKTOP, None, None), ist(hour))
        assert decision.allowed is True
        assert decision.requires_otp is False
        assert decision.otp_channel == OTPChannel.NONE
        assert decision.reason_code == ReasonCode.DIRECT_OK
        assert decision.restriction == "none"

    def test_legacy_ie_is_direct(self):
        assert decide(classify(IE11_DESKTOP, None, None), ist(15)).requires_otp is False

    def test_mobile_edge_inside_window_is_direct(self):
        decision = decide(classify(EDGE_ANDROID, None, None), ist(11))
        assert decision.allowed and not decision.requires_otp

    @pytest.mark.parametrize("hour", [3, 11, 15, 21])
    def test_desktop_chrome_always_challenged(self, hour):
        decision = decide(classify(CHROME_DESKTOP, None, None), ist(hour))
        assert decision.allowed is True
        assert decision.requires_otp is True
        assert decision.otp_channel == OTPChannel.EMAIL
        assert decision.reason == "Chrome browser requires email OTP verification"
        assert decision.restriction == "otp_required"

    def test_mobile_chrome_inside_window_challenged(self):
        decision = decide(classify(CHROME_ANDROID, None, None), ist(12))
        assert decision.allowed and decision.requires_otp

    @pytest.mark.parametrize("ua", [FIREFOX_DESKTOP, SAFARI_MAC, OPERA_DESKTOP, "curl/8.4.0"])
    def test_other_browsers_default_to_otp(self, ua):
        decision = decide(classify(ua, None, None), ist(15))
        assert decision.allowed is True
        assert decision.requires_otp is True
        assert decision.otp_channel == OTPChannel.EMAIL
        assert decision.reason == "Additional verification required for this browser"

    def test_unknown_device_unknown_browser_is_challenged(self):
        decision = decide(fingerprint(BrowserName.UNKNOWN, DeviceType.UNKNOWN), ist(2))
        assert decision.allowed and decision.requires_otp


class TestPurity:

    def test_same_input_same_decision(self):
        fp = classify(FIREFOX_MOBILE, "1.2.3.4", None)
        now = ist(11, 30)
        decisions = {decide(fp, now) for _ in range(20)}
        assert len(decisions) == 1
        assert isinstance(decisions.pop(), AuthDecision)

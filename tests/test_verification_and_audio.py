"""Tests for account verifications (audio upload, language switch, phone) and the upload gate."""

from datetime import timedelta

import pytest

from app.core.exceptions import BadRequestException
from app.models.user import User
from app.services import verification_service
from app.services.audio_service import check_upload_permission
from app.services.auth_policy import OTPChannel
from app.services.otp_service import (
    PURPOSE_AUDIO_UPLOAD,
    PURPOSE_LANGUAGE_SWITCH,
    PURPOSE_PHONE_VERIFY,
    VerifyResult,
)
from tests.helpers import ist


def verified_phone(db, user, phone="+919876543210"):
    user.phone = phone
    user.phone_verified = True
    db.commit()
    return user


class TestAudioUploadVerification:

    def test_code_goes_to_email(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_AUDIO_UPLOAD)
        assert issued.channel == OTPChannel.EMAIL
        assert issued.destination == "asha@example.com"

    def test_success_stamps_verification_time(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_AUDIO_UPLOAD)
        result = verification_service.complete_verification(db, user, PURPOSE_AUDIO_UPLOAD, issued.code)
        assert result == VerifyResult.OK
        stored = db.get(User, user.id)
        assert stored.audio_upload_verified_at is not None
        # second use of the same code is refused
        again = verification_service.complete_verification(db, user, PURPOSE_AUDIO_UPLOAD, issued.code)
        assert again == VerifyResult.NONE_PENDING


class TestLanguageSwitch:

    def test_french_uses_email(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="fr")
        assert issued.channel == OTPChannel.EMAIL

    def test_other_languages_use_sms(self, db, user):
        verified_phone(db, user)
        issued = verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="hi")
        assert issued.channel == OTPChannel.SMS
        assert issued.destination == "+919876543210"

    def test_sms_language_needs_verified_phone(self, db, user):
        user.phone = "+919876543210"
        db.commit()
        with pytest.raises(BadRequestException):
            verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="es")

    def test_unsupported_language(self, db, user):
        with pytest.raises(BadRequestException):
            verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="xx")

    def test_success_sets_language(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="fr")
        result = verification_service.complete_verification(db, user, PURPOSE_LANGUAGE_SWITCH, issued.code)
        assert result == VerifyResult.OK
        assert db.get(User, user.id).preferred_language == "fr"

    def test_failure_leaves_language(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="fr")
        wrong = "000000" if issued.code != "000000" else "111111"
        result = verification_service.complete_verification(db, user, PURPOSE_LANGUAGE_SWITCH, wrong)
        assert result == VerifyResult.INVALID
        assert db.get(User, user.id).preferred_language == "en"


class TestPhoneVerification:

    def test_code_goes_to_new_number(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_PHONE_VERIFY, phone="+14155550100")
        assert issued.channel == OTPChannel.SMS
        assert issued.destination == "+14155550100"

    def test_phone_required(self, db, user):
        with pytest.raises(BadRequestException):
            verification_service.start_verification(db, user, PURPOSE_PHONE_VERIFY)

    def test_success_stores_verified_phone(self, db, user):
        issued = verification_service.start_verification(db, user, PURPOSE_PHONE_VERIFY, phone="+14155550100")
        verification_service.complete_verification(db, user, PURPOSE_PHONE_VERIFY, issued.code)
        stored = db.get(User, user.id)
        assert stored.phone == "+14155550100"
        assert stored.phone_verified is True


class TestPurposes:

    def test_login_is_not_a_user_verification(self, db, user):
        with pytest.raises(BadRequestException):
            verification_service.start_verification(db, user, "login")
        with pytest.raises(BadRequestException):
            verification_service.complete_verification(db, user, "password_reset", "123456")

    def test_verifications_do_not_clobber_each_other(self, db, user):
        audio = verification_service.start_verification(db, user, PURPOSE_AUDIO_UPLOAD)
        verification_service.start_verification(db, user, PURPOSE_LANGUAGE_SWITCH, language="fr")
        assert verification_service.complete_verification(db, user, PURPOSE_AUDIO_UPLOAD, audio.code) == VerifyResult.OK


class TestUploadPermission:

    def test_unverified_user(self, user):
        permission = check_upload_permission(user, now=ist(15))
        assert permission.allowed is False
        assert "verify your email" in permission.reason

    def test_verified_inside_window(self, user):
        user.audio_upload_verified_at = ist(14, 30)
        permission = check_upload_permission(user, now=ist(15))
        assert permission.allowed is True

    def test_verification_older_than_an_hour(self, user):
        user.audio_upload_verified_at = ist(14)
        assert check_upload_permission(user, now=ist(15, 1)).allowed is False

    def test_verified_outside_window(self, user):
        user.audio_upload_verified_at = ist(18, 50)
        permission = check_upload_permission(user, now=ist(19))
        assert permission.allowed is False
        assert "2:00 PM and 7:00 PM" in permission.reason

    def test_window_start_is_inclusive(self, user):
        user.audio_upload_verified_at = ist(14) - timedelta(minutes=5)
        assert check_upload_permission(user, now=ist(14)).allowed is True

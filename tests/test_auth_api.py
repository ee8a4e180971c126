"""End-to-end tests through the HTTP surface."""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.models.user import User
from tests.helpers import CHROME_DESKTOP, EDGE_DESKTOP, FIREFOX_MOBILE, TEST_PASSWORD, ist, last_code


def login(client, ua, password=TEST_PASSWORD, email="asha@example.com"):
    return client.post(
        "/auth/login",
        json={"email": email, "password": password},
        headers={"User-Agent": ua, "X-Forwarded-For": "203.0.113.9"},
    )


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def otp_login(client, outbox):
    """Chrome login through the OTP step; returns the session token."""
    pending = login(client, CHROME_DESKTOP).json()
    code = last_code(outbox["email"])
    granted = client.post("/auth/verify-login-otp", json={"login_token": pending["login_token"], "otp": code})
    assert granted.status_code == 200
    return granted.json()["access_token"]


class TestRegister:

    def test_register_signs_in(self, client):
        resp = client.post(
            "/auth/register",
            json={
                "name": "Ravi",
                "username": "ravi_k",
                "email": "ravi@example.com",
                "password": TEST_PASSWORD,
                "confirm_password": TEST_PASSWORD,
            },
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "granted"
        assert "hashed_password" not in body["user"]
        me = client.get("/auth/me", headers=bearer(body["access_token"]))
        assert me.json()["email"] == "ravi@example.com"

    def test_password_mismatch(self, client):
        resp = client.post(
            "/auth/register",
            json={
                "name": "Ravi",
                "username": "ravi_k",
                "email": "ravi@example.com",
                "password": TEST_PASSWORD,
                "confirm_password": "something-else",
            },
        )
        assert resp.status_code == 422

    def test_duplicate_email(self, client, user):
        resp = client.post(
            "/auth/register",
            json={
                "name": "Asha",
                "username": "asha2",
                "email": "asha@example.com",
                "password": TEST_PASSWORD,
                "confirm_password": TEST_PASSWORD,
            },
        )
        assert resp.status_code == 409


class TestLogin:

    def test_wrong_password_is_generic(self, client, user):
        resp = login(client, EDGE_DESKTOP, password="not-my-password")
        assert resp.status_code == 401
        assert resp.json()["detail"] == {"code": "invalid_credentials", "message": "Invalid email or password"}

    def test_unknown_email_is_generic(self, client, user):
        resp = login(client, EDGE_DESKTOP, email="ghost@example.com")
        assert resp.status_code == 401
        assert resp.json()["detail"] == {"code": "invalid_credentials", "message": "Invalid email or password"}

    def test_edge_is_granted(self, client, user, outbox):
        resp = login(client, EDGE_DESKTOP)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "granted"
        assert body["user"]["email"] == "asha@example.com"
        outbox["email"].assert_not_awaited()
        assert client.get("/auth/me", headers=bearer(body["access_token"])).status_code == 200

    def test_mobile_outside_window_is_forbidden(self, client, user):
        with patch("app.services.auth_service.utcnow", return_value=ist(15)):
            resp = login(client, FIREFOX_MOBILE)
        assert resp.status_code == 403
        detail = resp.json()["detail"]
        assert detail["code"] == "policy_denied"
        assert detail["reason_code"] == "time_restricted_mobile"
        assert detail["restriction"] == "time_restricted"
        assert detail["message"] == "Mobile access is only allowed between 10 AM and 1 PM"

    def test_chrome_requires_otp(self, client, user, outbox):
        resp = login(client, CHROME_DESKTOP)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "otp_required"
        assert "access_token" not in body
        assert body["otp_channel"] == "email"
        assert body["sent_to"] == "a***@example.com"
        assert body["device"]["browser"] == "Google Chrome"
        assert body["device"]["ip_address"] == "203.0.113.9"
        assert body["device"]["platform"] == "windows"
        assert body["device"]["device_vendor"] == "Microsoft"
        assert body["device"]["device_model"] == "Desktop Computer"
        outbox["email"].assert_awaited_once()
        assert outbox["email"].await_args.args[0] == "asha@example.com"

    def test_login_token_is_refused_as_session(self, client, user, outbox):
        token = login(client, CHROME_DESKTOP).json()["login_token"]
        resp = client.get("/auth/me", headers=bearer(token))
        assert resp.status_code == 401
        assert resp.json()["detail"]["code"] == "token_invalid"

    def test_missing_token(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_delivery_failure_does_not_block_login(self, client, user, outbox):
        outbox["email"].return_value = {"success": False, "error": "SMTP down"}
        resp = login(client, CHROME_DESKTOP)
        assert resp.status_code == 200
        code = last_code(outbox["email"])
        verified = client.post(
            "/auth/verify-login-otp", json={"login_token": resp.json()["login_token"], "otp": code}
        )
        assert verified.status_code == 200

    def test_database_failure_is_opaque(self, client, user):
        with patch(
            "app.services.auth_service.login_with_password",
            side_effect=OperationalError("SELECT 1", {}, Exception("connection refused")),
        ):
            resp = login(client, EDGE_DESKTOP)
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error"}


class TestLoginOtp:

    def test_full_otp_login(self, client, user, outbox):
        token = otp_login(client, outbox)
        me = client.get("/auth/me", headers=bearer(token))
        assert me.status_code == 200
        history = client.get("/auth/login-history", headers=bearer(token)).json()["login_history"]
        assert [(h["login_status"], h["auth_method"]) for h in history] == [("success", "otp_email")]
        assert history[0]["browser"] == "chrome"

    def test_wrong_code(self, client, user, outbox):
        token = login(client, CHROME_DESKTOP).json()["login_token"]
        code = last_code(outbox["email"])
        wrong = "000000" if code != "000000" else "111111"
        resp = client.post("/auth/verify-login-otp", json={"login_token": token, "otp": wrong})
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "otp_invalid"

    def test_bad_login_token(self, client, user):
        resp = client.post("/auth/verify-login-otp", json={"login_token": "nope", "otp": "123456"})
        assert resp.status_code == 401
        assert resp.json()["detail"]["code"] == "token_invalid"

    def test_resend_supersedes_previous_code(self, client, user, outbox):
        token = login(client, CHROME_DESKTOP).json()["login_token"]
        first = last_code(outbox["email"])

        resent = client.post("/auth/resend-login-otp", json={"login_token": token})
        assert resent.status_code == 200
        assert resent.json()["sent_to"] == "a***@example.com"
        second = last_code(outbox["email"])
        assert outbox["email"].await_count == 2

        if first != second:
            stale = client.post("/auth/verify-login-otp", json={"login_token": token, "otp": first})
            assert stale.status_code == 400
        ok = client.post("/auth/verify-login-otp", json={"login_token": token, "otp": second})
        assert ok.status_code == 200

        history = client.get("/auth/login-history", headers=bearer(ok.json()["access_token"])).json()
        assert len(history["login_history"]) == 1


class TestLoginHistory:

    def test_newest_first_with_all_statuses(self, client, user, outbox):
        login(client, EDGE_DESKTOP, password="wrong-password")
        with patch("app.services.auth_service.utcnow", return_value=ist(15, day=1)):
            login(client, FIREFOX_MOBILE)
        token = login(client, EDGE_DESKTOP).json()["access_token"]

        history = client.get("/auth/login-history", headers=bearer(token)).json()["login_history"]
        statuses = [h["login_status"] for h in history]
        assert sorted(statuses) == ["failed", "success", "time_restricted"]
        assert statuses[0] == "success"
        assert all(h["ip_address"] == "203.0.113.9" for h in history)
        assert history[0]["browser_full_name"] == "Microsoft Edge"
        assert history[0]["platform"] == "windows"

    def test_limit(self, client, user):
        for _ in range(3):
            token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.get("/auth/login-history?limit=2", headers=bearer(token))
        assert len(resp.json()["login_history"]) == 2


class TestPasswordReset:

    def test_reset_flow(self, client, user, outbox):
        resp = client.post("/auth/forgot-password", json={"email": "asha@example.com"})
        assert resp.status_code == 200
        code = last_code(outbox["email"])

        reset = client.post(
            "/auth/reset-password",
            json={
                "email": "asha@example.com",
                "otp": code,
                "new_password": "a-fresh-password",
                "confirm_password": "a-fresh-password",
            },
        )
        assert reset.status_code == 200
        assert login(client, EDGE_DESKTOP, password="a-fresh-password").status_code == 200
        assert login(client, EDGE_DESKTOP).status_code == 401

    def test_unknown_email_looks_the_same(self, client, user, outbox):
        known = client.post("/auth/forgot-password", json={"email": "asha@example.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()
        assert outbox["email"].await_count == 1

    def test_second_request_same_day(self, client, user, outbox):
        client.post("/auth/forgot-password", json={"email": "asha@example.com"})
        resp = client.post("/auth/forgot-password", json={"email": "asha@example.com"})
        assert resp.status_code == 429

    def test_reset_without_request(self, client, user):
        resp = client.post(
            "/auth/reset-password",
            json={
                "email": "asha@example.com",
                "otp": "123456",
                "new_password": "a-fresh-password",
                "confirm_password": "a-fresh-password",
            },
        )
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "otp_not_pending"


    def test_reset_by_phone(self, client, user, db, outbox):
        user.phone = "+919876543210"
        user.phone_verified = True
        db.commit()

        sent = client.post("/auth/forgot-password", json={"method": "phone", "phone": "+919876543210"})
        assert sent.status_code == 200
        assert outbox["email"].await_count == 0
        code = last_code(outbox["sms"])

        reset = client.post(
            "/auth/reset-password",
            json={
                "method": "phone",
                "phone": "+919876543210",
                "otp": code,
                "new_password": "a-fresh-password",
                "confirm_password": "a-fresh-password",
            },
        )
        assert reset.status_code == 200
        assert login(client, EDGE_DESKTOP, password="a-fresh-password").status_code == 200

    def test_phone_method_needs_a_phone(self, client, user):
        resp = client.post("/auth/forgot-password", json={"method": "phone", "email": "asha.com"})
        assert resp.status_code == 422


class TestNotificationSettings:

    def test_defaults(self, client, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.get("/auth/notification-settings", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["notification_settings"] == {
            "enabled": True,
            "keywords": ["cricket", "science"],
            "browser_permission_granted": False,
        }

    def test_update_is_persisted(self, client, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.put(
            "/auth/notification-settings",
            json={
                "notification_settings": {
                    "enabled": False,
                    "keywords": [" Cricket ", "football", "cricket", ""],
                    "browser_permission_granted": True,
                }
            },
            headers=bearer(token),
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Notification settings updated successfully"

        stored = client.get("/auth/notification-settings", headers=bearer(token)).json()
        assert stored["notification_settings"] == {
            "enabled": False,
            "keywords": ["cricket", "football"],
            "browser_permission_granted": True,
        }

    def test_body_is_required(self, client, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.put("/auth/notification-settings", json={}, headers=bearer(token))
        assert resp.status_code == 422

    def test_requires_session(self, client, user):
        assert client.get("/auth/notification-settings").status_code == 401


class TestVerificationEndpoints:

    def test_audio_upload_verification(self, client, user, outbox):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        sent = client.post("/otp/send", json={"purpose": "audio_upload"}, headers=bearer(token))
        assert sent.status_code == 200
        assert sent.json()["channel"] == "email"

        code = last_code(outbox["email"])
        verified = client.post(
            "/otp/verify", json={"purpose": "audio_upload", "otp": code}, headers=bearer(token)
        )
        assert verified.status_code == 200
        assert client.get("/users/me", headers=bearer(token)).status_code == 200

    def test_phone_verification_by_sms(self, client, db, user, outbox):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        sent = client.post(
            "/otp/send",
            json={"purpose": "phone_verify", "phone": "+1 (415) 555-0100"},
            headers=bearer(token),
        )
        assert sent.status_code == 200
        assert sent.json()["sent_to"].endswith("0100")
        outbox["sms"].assert_awaited_once()

        code = last_code(outbox["sms"])
        client.post("/otp/verify", json={"purpose": "phone_verify", "otp": code}, headers=bearer(token))
        profile = client.get("/users/me", headers=bearer(token)).json()
        assert profile["phone"] == "+14155550100"
        assert profile["phone_verified"] is True

    def test_language_switch_needs_phone(self, client, user, outbox):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.post(
            "/otp/send", json={"purpose": "language_switch", "language": "hi"}, headers=bearer(token)
        )
        assert resp.status_code == 400

    def test_login_purpose_not_accepted(self, client, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.post("/otp/send", json={"purpose": "login"}, headers=bearer(token))
        assert resp.status_code == 422

    def test_requires_session(self, client, user, outbox):
        login_token = login(client, CHROME_DESKTOP).json()["login_token"]
        resp = client.post("/otp/send", json={"purpose": "audio_upload"}, headers=bearer(login_token))
        assert resp.status_code == 401


class TestUploadPermission:

    def test_unverified(self, client, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.get("/audio/upload-permission", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["allowed"] is False

    def test_verified_in_window(self, client, db, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        stored = db.get(User, user.id)
        stored.audio_upload_verified_at = ist(14, 45)
        db.commit()
        with patch("app.services.audio_service.utcnow", return_value=ist(15)):
            resp = client.get("/audio/upload-permission", headers=bearer(token))
        assert resp.json() == {"allowed": True, "reason": "Audio upload allowed"}


class TestProfile:

    def test_update_profile(self, client, user):
        token = login(client, EDGE_DESKTOP).json()["access_token"]
        resp = client.put("/users/me", json={"bio": "Hello there", "name": "Asha R"}, headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["bio"] == "Hello there"
        assert resp.json()["name"] == "Asha R"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "version": "1.0.0"}

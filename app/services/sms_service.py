"""SMS delivery via the Twilio REST API.

Used for OTPs on phone-based flows (language switch, phone verification).
Credentials come from TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN / TWILIO_PHONE_NUMBER.
"""

import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = (
    "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
)


async def send_otp_sms(to_phone: str, otp: str, purpose_label: str) -> dict:
    """Send an OTP text message.

    Returns ``{"success": True, "sid": ...}`` or ``{"success": False, "error": ...}``.
    This function never raises: delivery failures must not break the calling flow.
    """
    sid = settings.twilio_account_sid
    token = settings.twilio_auth_token

    if not sid or not token:
        logger.warning("Twilio credentials not configured, skipping SMS send")
        return {"success": False, "error": "Twilio credentials not configured"}

    body = (
        f"Twiller - Your verification code for {purpose_label} is: {otp}. "
        f"This code will expire in {settings.otp_expiry_minutes} minutes."
    )

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                TWILIO_MESSAGES_URL.format(sid=sid),
                data={
                    "To": to_phone,
                    "From": settings.twilio_phone_number,
                    "Body": body,
                },
                auth=(sid, token),
                timeout=15.0,
            )
        result = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Twilio request failed: %s", exc)
        return {"success": False, "error": str(exc)}

    if response.status_code >= 400:
        logger.error(
            "Twilio API error %s: %s",
            response.status_code,
            result.get("message", result),
        )
        return {"success": False, "error": result.get("message", "Twilio API error")}

    logger.info("SMS sent: sid=%s", result.get("sid"))
    return {"success": True, "sid": result.get("sid")}

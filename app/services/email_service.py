"""
Email service using fastapi-mail with Gmail SMTP.

Gmail setup steps (do this once):
  1. Enable 2-Factor Authentication on your Gmail account
  2. Go to: Google Account → Security → App Passwords
  3. Create an app password for "Mail"
  4. Use that 16-character password as MAIL_PASSWORD in your .env
     (NOT your real Gmail password)

fastapi-mail 1.6.1 changes vs older versions:
  - ConnectionConfig uses MAIL_STARTTLS=True, MAIL_SSL_TLS=False for port 587
  - MAIL_SSL_TLS=True, MAIL_STARTTLS=False for port 465
"""
import logging

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from app.config import settings

logger = logging.getLogger(__name__)

# Build connection config once at module level — don't rebuild on every request
mail_config = ConnectionConfig(
    MAIL_USERNAME=settings.mail_username,
    MAIL_PASSWORD=settings.mail_password,
    MAIL_FROM=settings.mail_from,
    MAIL_PORT=settings.mail_port,
    MAIL_SERVER=settings.mail_server,
    MAIL_STARTTLS=True,    # required for port 587 (STARTTLS)
    MAIL_SSL_TLS=False,    # don't use SSL on port 587
    USE_CREDENTIALS=True,
    VALIDATE_CERTS=True,
)

fast_mail = FastMail(mail_config)


def _otp_html(otp: str, purpose_label: str) -> str:
    return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #1DA1F2;">Twiller Verification Code</h2>
          <p>Your verification code for {purpose_label} is:</p>
          <div style="background-color: #f0f0f0; padding: 20px; text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 2px; margin: 20px 0;">
            {otp}
          </div>
          <p>This code will expire in {settings.otp_expiry_minutes} minutes.</p>
          <p>If you didn't request this code, please ignore this email.</p>
          <hr>
          <p style="color: #666; font-size: 12px;">This is an automated message from Twiller.</p>
        </div>
    """


async def send_otp_email(email_to: str, otp: str, purpose_label: str) -> dict:
    """
    Send an OTP email. Called via FastAPI BackgroundTasks so the HTTP response
    is returned to the user immediately — they don't wait for SMTP to complete.

    Returns {"success": True} or {"success": False, "error": "..."}.
    Never raises: a failed send must not break the login flow.
    """
    try:
        message = MessageSchema(
            subject=f"Twiller - Verification Code for {purpose_label}",
            recipients=[email_to],
            body=_otp_html(otp, purpose_label),
            subtype=MessageType.html,
        )
        await fast_mail.send_message(message)
    except Exception as exc:
        logger.error("OTP email to %s failed: %s", email_to, exc)
        return {"success": False, "error": str(exc)}
    return {"success": True}

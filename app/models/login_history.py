import uuid
from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, Index, Uuid, Enum as SAEnum
from sqlalchemy.orm import relationship
from app.database import Base


LOGIN_STATUSES = ("success", "failed", "otp_required", "time_restricted")
AUTH_METHODS = ("direct", "otp_email", "otp_sms")


class LoginHistory(Base):
    """
    Audit trail of login attempts. One row per attempt.

    Rows are INSERT-only with a single exception: an `otp_required` row is
    flipped to `success` when the OTP for that same attempt is verified.
    Resending an OTP never writes a row.
    """
    __tablename__ = "login_history"
    __table_args__ = (
        Index("ix_login_history_user_time", "user_id", "login_time"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ip_address = Column(String(64), nullable=False, index=True)
    browser = Column(String(20), nullable=False)
    browser_version = Column(String(50), nullable=True)
    browser_full_name = Column(String(50), nullable=True)
    os = Column(String(30), nullable=False)
    os_version = Column(String(30), nullable=True)
    platform = Column(String(30), nullable=True)
    device = Column(String(20), nullable=False)
    device_vendor = Column(String(50), nullable=True)
    device_model = Column(String(100), nullable=True)
    user_agent = Column(Text, nullable=False)
    login_time = Column(TIMESTAMP(timezone=True), nullable=False)
    login_status = Column(SAEnum(*LOGIN_STATUSES, name="login_status"), nullable=False)
    auth_method = Column(SAEnum(*AUTH_METHODS, name="auth_method"), nullable=False)

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="login_history")

import uuid
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, UniqueConstraint, JSON, Uuid, Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


OTP_PURPOSES = ("login", "password_reset", "audio_upload", "language_switch", "phone_verify")


class PendingOTP(Base):
    """
    The single pending one-time code for a (user, purpose) pair.

    Security notes:
    - Raw OTP is NEVER stored, only the bcrypt hash.
    - One row per (user_id, purpose), enforced by a unique constraint. Issuing a
      new code overwrites the row in place, so the previous code dies at once
      (last-issued-wins) and concurrent flows for other purposes are untouched.
    - consumed_at is set on successful verification; a consumed row is dead
      even before expires_at.
    - context carries purpose-specific data (e.g. the requested language, or the
      phone number being verified).
    """
    __tablename__ = "pending_otps"
    __table_args__ = (
        UniqueConstraint("user_id", "purpose", name="uq_pending_otps_user_purpose"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    purpose = Column(SAEnum(*OTP_PURPOSES, name="otp_purpose"), nullable=False)
    channel = Column(SAEnum("email", "sms", name="otp_channel"), nullable=False)
    code_hash = Column(String, nullable=False)  # bcrypt hash of the raw 6-digit OTP
    context = Column(JSON, nullable=True)
    issued_at = Column(TIMESTAMP(timezone=True), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    consumed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="pending_otps")

import uuid
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class PendingLoginSession(Base):
    """
    Password-verified login waiting for its OTP.

    One row per user (a new login attempt replaces the previous one). The
    intermediate login token carries `jti`; the token is only honoured while a
    row with the same jti exists, so deleting the row on success discards the
    token even before its JWT expiry.
    """
    __tablename__ = "pending_login_sessions"

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    jti = Column(String(64), nullable=False, unique=True, default=lambda: uuid.uuid4().hex)
    channel = Column(String(10), nullable=False)
    # DeviceFingerprint.to_dict() of the attempt that started this session
    fingerprint = Column(JSON, nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="pending_login")

import uuid
from sqlalchemy import Boolean, Column, JSON, String, TIMESTAMP, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func
from app.database import Base


SUPPORTED_LANGUAGES = ("en", "fr", "es", "hi", "pt", "zh")
DEFAULT_NOTIFICATION_KEYWORDS = ("cricket", "science")


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    name = Column(String(50), nullable=False)
    username = Column(String(20), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(String(160), nullable=False, default="", server_default="")

    phone = Column(String(20), nullable=True)
    phone_verified = Column(Boolean, default=False, server_default=expression.false(), nullable=False)
    preferred_language = Column(String(5), default="en", server_default="en", nullable=False)

    # Set when an audio_upload OTP is verified; upload gate honours it for one hour
    audio_upload_verified_at = Column(TIMESTAMP(timezone=True), nullable=True)
    # Once-per-day limit on password reset requests
    password_reset_requested_at = Column(TIMESTAMP(timezone=True), nullable=True)

    # Tweet keyword alerts shown as browser notifications
    notifications_enabled = Column(Boolean, default=True, server_default=expression.true(), nullable=False)
    notification_keywords = Column(JSON, nullable=True)
    browser_notification_permission = Column(
        Boolean, default=False, server_default=expression.false(), nullable=False
    )

    # Timestamps
    last_login_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    pending_otps = relationship("PendingOTP", back_populates="user", cascade="all, delete-orphan")
    pending_login = relationship(
        "PendingLoginSession", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    login_history = relationship("LoginHistory", back_populates="user", cascade="all, delete-orphan")

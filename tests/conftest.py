"""
Shared fixtures.

Settings are read once at import time, so the environment is primed here
before anything under app/ is imported: in-memory SQLite, cheap bcrypt
rounds and no rate limiting.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_HOSTNAME", "localhost")
os.environ.setdefault("DATABASE_PASSWORD", "test")
os.environ.setdefault("DATABASE_NAME", "twiller_test")
os.environ.setdefault("DATABASE_USERNAME", "test")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-suite-only-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MAIL_USERNAME", "noreply@example.com")
os.environ.setdefault("MAIL_PASSWORD", "test")
os.environ.setdefault("MAIL_FROM", "noreply@example.com")

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app as fastapi_app
from app.services.auth_service import register_user
from tests.helpers import TEST_PASSWORD


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    return register_user(
        db,
        name="Asha Rao",
        username="asha",
        email="asha@example.com",
        password=TEST_PASSWORD,
    )


@pytest.fixture(autouse=True)
def outbox():
    """Captures outgoing OTPs instead of talking to SMTP / Twilio."""
    with patch("app.services.otp_service.send_otp_email", new_callable=AsyncMock) as email, \
            patch("app.services.otp_service.send_otp_sms", new_callable=AsyncMock) as sms:
        email.return_value = {"success": True}
        sms.return_value = {"success": True, "sid": "SM123"}
        yield {"email": email, "sms": sms}

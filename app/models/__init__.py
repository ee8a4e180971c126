# models/__init__.py
# Import all models here so that:
# 1. Alembic's env.py can import this single module and detect all tables.
# 2. SQLAlchemy relationship() calls resolve correctly (all classes in same metadata).
# Order matters: models with no foreign keys first, then dependents.

from app.models.user import User
from app.models.otp import PendingOTP
from app.models.pending_login import PendingLoginSession
from app.models.login_history import LoginHistory

__all__ = [
    "User",
    "PendingOTP",
    "PendingLoginSession",
    "LoginHistory",
]

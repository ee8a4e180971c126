"""
Shared slowapi limiter, keyed by client address.

Login, OTP and password-reset endpoints carry their own tighter
@limiter.limit(...) budgets; this is the brute-force guard for the
6-digit codes. Decorated endpoints must accept `request: Request`, and the
decorator goes under @router.<method>.

RATE_LIMIT_ENABLED=false switches every limit off (the test suite does this).
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    enabled=settings.rate_limit_enabled,
)

"""
Security utilities: password hashing and JWT token management.
Uses PyJWT (not python-jose) — actively maintained, no known CVEs as of 2026.

Two token types are issued:
  - "access"    → full session, 7 days
  - "login_otp" → intermediate token proving "password ok, OTP pending", 10 min.
                  Carries a jti naming the pending login session. Never accepted
                  where an access token is required.
"""
import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Optional
from app.config import settings

ACCESS_TOKEN_TYPE = "access"
LOGIN_OTP_TOKEN_TYPE = "login_otp"

# ── Password Hashing ──────────────────────────────────────────────────────────
# bcrypt is the industry standard for password hashing.
# deprecated="auto" means passlib will auto-upgrade old hashes on next login.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── JWT Token Creation ────────────────────────────────────────────────────────

def _encode(payload: dict) -> str:
    # PyJWT 2.x: jwt.encode() returns str directly — no need to call .decode().
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(user_id: str, now: Optional[datetime] = None) -> str:
    """Full session token (default 7 days). 'sub' carries the user id."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.access_token_expire_days),
    }
    return _encode(payload)


def create_login_otp_token(user_id: str, jti: str, now: Optional[datetime] = None) -> str:
    """Intermediate token for the OTP step of login (default 10 min)."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "jti": jti,
        "type": LOGIN_OTP_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.login_otp_token_expire_minutes),
    }
    return _encode(payload)


def _decode(token: str, expected_type: str) -> dict:
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("type") != expected_type:
        raise InvalidTokenError(f"Not an {expected_type} token")
    if not payload.get("sub"):
        raise InvalidTokenError("Token has no subject")
    return payload


def decode_access_token(token: str) -> dict:
    """
    Decodes and validates an access token.
    Raises jwt.exceptions.InvalidTokenError (or subclass) on any failure.
    The caller is responsible for converting this into an HTTPException.
    """
    return _decode(token, ACCESS_TOKEN_TYPE)


def decode_login_otp_token(token: str) -> dict:
    """Decodes an intermediate login token. Also requires the jti claim."""
    payload = _decode(token, LOGIN_OTP_TOKEN_TYPE)
    if not payload.get("jti"):
        raise InvalidTokenError("Login token has no jti")
    return payload

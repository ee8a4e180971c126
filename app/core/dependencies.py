"""
FastAPI dependencies used across routers.
Keep this file lean — only auth/DB dependencies go here.
Business logic belongs in services/.
"""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.exceptions import TokenInvalidException
from app.models.user import User
from app.services.auth_service import restore_session_from_token

# tokenUrl must match the actual login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validates the session token and returns the authenticated User.

    Checks performed (in order):
    1. Token is a valid JWT signed with our secret key and not expired
    2. Token type is 'access'; an intermediate 'login_otp' token is rejected
    3. 'sub' claim maps to a real user
    """
    user = restore_session_from_token(db, token)
    if user is None:
        raise TokenInvalidException()
    return user


def get_request_addresses(request: Request) -> dict:
    """Raw inputs for the device classifier, straight from the request."""
    return {
        "user_agent": request.headers.get("user-agent"),
        "forwarded_for": request.headers.get("x-forwarded-for"),
        "real_ip": request.headers.get("x-real-ip"),
        "direct_address": request.client.host if request.client else None,
    }

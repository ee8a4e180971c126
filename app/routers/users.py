"""
Users router: profile management.

Endpoints:
  GET  /users/me  → current user's full profile
  PUT  /users/me  → update name, bio, avatar URL
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.user import UserOut, UserUpdateRequest

router = APIRouter()


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    """
    Return the authenticated user's full profile.
    No DB call needed — get_current_user already fetched the user.
    """
    return current_user


@router.put("/me", response_model=UserOut)
def update_me(
    body: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update profile fields. Only provided fields are changed (PATCH-like behaviour
    even though this is a PUT — all fields in the request body are optional).
    Phone and language changes go through /otp instead.
    """
    if body.name is not None:
        current_user.name = body.name

    if body.bio is not None:
        current_user.bio = body.bio

    if body.avatar_url is not None:
        current_user.avatar_url = body.avatar_url.strip() or None

    db.commit()
    db.refresh(current_user)
    return current_user

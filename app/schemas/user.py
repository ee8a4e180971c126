"""
User schemas: public profile views and update requests.
"""
from pydantic import BaseModel, field_validator, ConfigDict
from typing import Optional
from datetime import datetime


class UserOut(BaseModel):
    """
    Public-safe user representation.
    hashed_password is never included — Pydantic only exposes fields declared here.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: str
    email: str
    avatar_url: Optional[str] = None
    bio: str = ""
    phone: Optional[str] = None
    phone_verified: bool = False
    preferred_language: str = "en"
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    # UUID → str conversion for JSON serialization
    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v or len(v) > 50:
            raise ValueError("Name must be between 1 and 50 characters")
        return v

    @field_validator("bio")
    @classmethod
    def bio_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 160:
            raise ValueError("Bio cannot exceed 160 characters")
        return v


class UserAuthResponse(BaseModel):
    """Returned alongside tokens after successful login/registration."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: str
    email: str
    avatar_url: Optional[str] = None
    bio: str = ""
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)

# shopeasy/users/schemas.py
"""
Response shapes for user records. Each use case has its own model and a pure
mapping function; none of them carries the password hash or reset state.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from ..utils.validators import normalize_contact
from .models import User


class UserProfile(BaseModel):
    """What a signed-in user sees about themselves."""
    id: UUID
    name: str
    email: str
    country: str
    contact: str
    profile_image: str
    is_admin: bool
    email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Admin list view of a user."""
    id: UUID
    name: str
    email: str
    country: str
    contact: str
    is_admin: bool
    is_active: bool
    email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    country: Optional[str] = None
    contact: Optional[str] = None
    profile_image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        if v is not None and not 2 <= len(v.strip()) <= 50:
            raise ValueError("Name must be between 2 and 50 characters")
        return v.strip() if v is not None else v

    @field_validator("contact")
    @classmethod
    def check_contact(cls, v):
        if v is None:
            return v
        normalized = normalize_contact(v)
        if normalized is None:
            raise ValueError("Contact must be 10-15 digits")
        return normalized


def to_user_profile(user: User) -> UserProfile:
    return UserProfile.model_validate(user)


def to_user_summary(user: User) -> UserSummary:
    return UserSummary.model_validate(user)

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ..users.schemas import UserProfile


class SignupRequest(BaseModel):
    # Presence is checked by the workflow so missing fields get one error listing them all
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    country: Optional[str] = None
    contact: Optional[str] = None


class VerifyOTPRequest(BaseModel):
    email: str
    otp: str


class ResendOTPRequest(BaseModel):
    email: str


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    user_id: UUID
    is_admin: bool = False
    jti: str
    expires_at: datetime


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserProfile


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    email: Optional[str] = None
    expires_in_minutes: Optional[int] = None

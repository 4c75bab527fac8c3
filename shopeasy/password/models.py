from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class CancelResetRequest(BaseModel):
    email: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ResetTokenStatus(BaseModel):
    success: bool = True
    message: str = "Reset token is valid"
    email: str
    name: str
    expires_in: int


class ResetStatus(BaseModel):
    success: bool = True
    has_active_reset: bool
    expires_at: Optional[datetime] = None

# shopeasy/auth/controller.py
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from starlette import status

from ..core.infrastructure.email_service import NotificationGateway, get_notifier
from ..core.rate_limiter import limiter
from ..database.core import DbSession
from ..logging import logger
from ..users.schemas import ProfileUpdate, to_user_profile
from ..users.service import UserService
from . import models, service
from .pending import PendingRegistrationCache, get_pending_registrations

router = APIRouter(prefix="/auth", tags=["auth"])


def get_registration_service(
    pending: Annotated[PendingRegistrationCache, Depends(get_pending_registrations)],
    notifier: Annotated[NotificationGateway, Depends(get_notifier)],
) -> service.RegistrationService:
    return service.RegistrationService(pending, notifier)


Registration = Annotated[service.RegistrationService, Depends(get_registration_service)]


@router.post("/signup", status_code=status.HTTP_200_OK)
@limiter.limit("20/hour")
async def signup(request: Request, body: models.SignupRequest, db: DbSession, registration: Registration):
    """Buffer the signup and email an OTP. No user row exists until /verify."""
    result = await registration.signup(db, body)
    return {
        "success": True,
        "message": result["message"],
        "email": result["email"],
        "expires_at": result["expires_at"],
    }


@router.post("/verify", response_model=models.AuthResponse)
@limiter.limit("10/hour")
async def verify_otp(request: Request, body: models.VerifyOTPRequest, db: DbSession, registration: Registration):
    result = await registration.verify_otp(db, body.email, body.otp)
    return models.AuthResponse(
        message="Email verified successfully",
        token=result["token"],
        user=result["user"],
    )


@router.post("/resend")
@limiter.limit("10/hour")
async def resend_otp(request: Request, body: models.ResendOTPRequest, registration: Registration):
    result = await registration.resend_otp(body.email)
    return {"success": True, "message": result["message"], "email": result["email"], "expires_at": result["expires_at"]}


@router.post("/login", response_model=models.AuthResponse)
@limiter.limit("50/hour")
async def login(request: Request, body: models.LoginRequest, db: DbSession):
    user = service.authenticate_user(db, body.email, body.password)
    return models.AuthResponse(
        message="Login successful",
        token=service.create_access_token(user),
        user=to_user_profile(user),
    )


@router.post("/logout")
async def logout(token_data: service.CurrentToken):
    """Denylist the presented token for the rest of its lifetime."""
    service.revoke_token(token_data)
    return {"success": True, "message": "User logged out successfully"}


@router.get("/profile")
async def get_profile(current_user: service.CurrentUser):
    return {"success": True, "user": to_user_profile(current_user)}


@router.patch("/profile")
async def update_profile(body: ProfileUpdate, current_user: service.CurrentUser, db: DbSession):
    user = UserService.update_profile(db, current_user, body)
    logger.info(f"User {user.id} updated their profile")
    return {"success": True, "message": "Profile updated successfully", "user": to_user_profile(user)}

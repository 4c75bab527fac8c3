# shopeasy/password/controller.py
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request

from ..auth.service import CurrentUser
from ..core.infrastructure.email_service import NotificationGateway, get_notifier
from ..core.rate_limiter import limiter
from ..database.core import DbSession
from . import models
from .service import PasswordResetService

router = APIRouter(prefix="/password", tags=["password"])


def get_password_reset_service(
    notifier: Annotated[NotificationGateway, Depends(get_notifier)],
) -> PasswordResetService:
    return PasswordResetService(notifier)


PasswordResets = Annotated[PasswordResetService, Depends(get_password_reset_service)]


def describe_device(request: Request) -> Optional[str]:
    user_agent = request.headers.get("user-agent", "unknown browser")
    ip = request.client.host if request.client else "unknown ip"
    return f"{user_agent} from {ip}"


@router.post("/forgot-password")
@limiter.limit("10/day")
async def forgot_password(request: Request, body: models.ForgotPasswordRequest, db: DbSession, resets: PasswordResets):
    result = await resets.request_reset(db, body.email)
    return {"success": True, **result}


@router.post("/reset-password")
async def reset_password(request: Request, body: models.ResetPasswordRequest, db: DbSession, resets: PasswordResets):
    result = await resets.reset_password(db, body.token, body.password, describe_device(request))
    return {"success": True, **result}


@router.get("/verify-reset-token/{token}", response_model=models.ResetTokenStatus)
async def verify_reset_token(token: str, db: DbSession, resets: PasswordResets):
    return models.ResetTokenStatus(**resets.verify_reset_token(db, token))


@router.get("/reset-status/{email}", response_model=models.ResetStatus)
async def reset_status(email: str, db: DbSession, resets: PasswordResets):
    return models.ResetStatus(**resets.reset_status(db, email))


@router.post("/cancel-reset")
async def cancel_reset(body: models.CancelResetRequest, db: DbSession, resets: PasswordResets):
    return {"success": True, **resets.cancel_reset(db, body.email)}


@router.post("/change")
async def change_password(request: Request, body: models.ChangePasswordRequest, current_user: CurrentUser, db: DbSession, resets: PasswordResets):
    result = await resets.change_password(db, current_user, body.current_password, body.new_password, describe_device(request))
    return {"success": True, **result}

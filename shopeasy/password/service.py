# shopeasy/password/service.py
"""
Password reset workflow.

Per user: no reset pending, reset requested, then consumed, expired or
cancelled. Only the sha256 of the emailed token is stored on the user row, so a
leaked database cannot be used to reset anyone's password.
"""

import math
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    EmailDeliveryError,
    ErrorCode,
    InvalidInputError,
    InvalidOrExpiredTokenError,
    RateLimitedError,
    UserNotFoundError,
    raise_missing_fields,
    raise_weak_password,
)
from ..core.infrastructure.email_service import NotificationGateway
from ..logging import logger
from ..users.models import User
from ..users.service import UserService
from ..utils.clock import utcnow
from ..utils.password_utils import get_password_hash, password_policy_error, verify_password
from ..utils.tokens import hash_token, issue_reset_token, is_reset_token_format
from ..utils.validators import is_valid_email, normalize_email

GENERIC_RESET_MESSAGE = "If an account exists for this email, a password reset link has been sent."


def _clear_reset_fields(user: User) -> None:
    user.reset_password_token = None
    user.reset_password_expires = None


def push_password_history(user: User, old_hash: str, changed_at) -> None:
    """Appends the replaced hash, keeping only the most recent entries."""
    history = list(user.password_history or [])
    history.append({"password_hash": old_hash, "changed_at": changed_at.isoformat()})
    # Reassign so the JSON column is flagged dirty
    user.password_history = history[-settings.PASSWORD_HISTORY_LIMIT:]


class PasswordResetService:

    def __init__(self, notifier: NotificationGateway, clock: Callable = utcnow):
        self.notifier = notifier
        self.clock = clock

    async def request_reset(self, db: Session, email: Optional[str]) -> dict:
        if not email:
            raise_missing_fields(["email"])
        if not is_valid_email(email):
            raise InvalidInputError("Please provide a valid email address")

        email = normalize_email(email)
        user = UserService.find_by_email(db, email)

        if not user or not user.email_verified:
            if settings.RESET_HIDE_ACCOUNT_EXISTENCE:
                logger.info(f"Password reset requested for unknown or unverified email {email}")
                return {"message": GENERIC_RESET_MESSAGE}
            if not user:
                raise UserNotFoundError("No account found with this email. Please sign up to create an account.")
            raise InvalidInputError(
                "Please verify your email before resetting password",
                code=ErrorCode.EMAIL_NOT_VERIFIED,
            )

        now = self.clock()
        if user.has_active_reset(now):
            retry_after = max(1, math.ceil((user.reset_password_expires - now).total_seconds()))
            logger.warning(f"Password reset for {email} refused; active token for another {retry_after}s")
            raise RateLimitedError(
                f"Please wait {math.ceil(retry_after / 60)} minutes before requesting another reset",
                retry_after=retry_after,
            )

        raw_token = issue_reset_token()
        user.reset_password_token = hash_token(raw_token)
        user.reset_password_expires = now + timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES)
        user.last_password_reset_request = now
        user.password_reset_requests = (user.password_reset_requests or 0) + 1
        db.commit()

        reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset/{raw_token}"
        try:
            await self.notifier.send_password_reset(user.email, reset_url)
        except EmailDeliveryError:
            _clear_reset_fields(user)
            db.commit()
            logger.error(f"Reset email to {email} failed; token withdrawn")
            raise

        logger.info(f"Password reset link issued for user {user.id}")
        result = {
            "message": GENERIC_RESET_MESSAGE if settings.RESET_HIDE_ACCOUNT_EXISTENCE else "Password reset email sent successfully"
        }
        if settings.is_development:
            result["reset_url"] = reset_url
        return result

    def _find_by_token(self, db: Session, raw_token: str) -> User:
        if not is_reset_token_format(raw_token):
            raise InvalidOrExpiredTokenError()
        user = (
            db.query(User)
            .filter(
                User.reset_password_token == hash_token(raw_token),
                User.reset_password_expires > self.clock(),
            )
            .first()
        )
        if not user:
            raise InvalidOrExpiredTokenError()
        return user

    async def reset_password(self, db: Session, raw_token: Optional[str], new_password: Optional[str], device_info: Optional[str] = None) -> dict:
        if not raw_token or not new_password:
            raise InvalidInputError(
                "Reset token and new password are required",
                code=ErrorCode.MISSING_REQUIRED_FIELD,
            )
        policy_error = password_policy_error(new_password)
        if policy_error:
            raise_weak_password(policy_error)

        user = self._find_by_token(db, raw_token)
        if verify_password(new_password, user.password_hash):
            raise InvalidInputError(
                "New password must be different from the current password",
                code=ErrorCode.SAME_PASSWORD,
            )

        now = self.clock()
        push_password_history(user, user.password_hash, now)
        user.password_hash = get_password_hash(new_password)
        _clear_reset_fields(user)
        user.password_reset_requests = 0
        user.password_changed_at = now
        db.commit()
        logger.info(f"Password reset completed for user {user.id}")

        try:
            await self.notifier.send_security_alert(user.email, device_info)
        except EmailDeliveryError as e:
            logger.error(f"Security alert to {user.email} failed: {e.technical_details}")

        return {"message": "Password reset successful. You can now login with your new password."}

    def verify_reset_token(self, db: Session, raw_token: str) -> dict:
        user = self._find_by_token(db, raw_token)
        if not user.email_verified:
            raise InvalidInputError(
                "Please verify your email before resetting password",
                code=ErrorCode.EMAIL_NOT_VERIFIED,
            )
        expires_in = int((user.reset_password_expires - self.clock()).total_seconds())
        return {"email": user.email, "name": user.name, "expires_in": expires_in}

    def cancel_reset(self, db: Session, email: Optional[str]) -> dict:
        if not email:
            raise_missing_fields(["email"])
        user = UserService.find_by_email(db, email)
        if user and (user.reset_password_token or user.reset_password_expires):
            _clear_reset_fields(user)
            db.commit()
            logger.info(f"Password reset cancelled for user {user.id}")
        return {"message": "Password reset cancelled successfully"}

    def reset_status(self, db: Session, email: str) -> dict:
        user = UserService.find_by_email(db, email)
        if not user or not user.has_active_reset(self.clock()):
            return {"has_active_reset": False, "expires_at": None}
        return {"has_active_reset": True, "expires_at": user.reset_password_expires}

    async def change_password(self, db: Session, user: User, current_password: str, new_password: str, device_info: Optional[str] = None) -> dict:
        """Password change for a signed-in user; same history rules as a reset."""
        if not UserService.compare_password(user, current_password):
            logger.warning(f"Invalid current password provided for user ID: {user.id}")
            raise InvalidInputError("Current password is incorrect", code=ErrorCode.INVALID_CREDENTIALS)
        policy_error = password_policy_error(new_password)
        if policy_error:
            raise_weak_password(policy_error)
        if verify_password(new_password, user.password_hash):
            raise InvalidInputError(
                "New password must be different from the current password",
                code=ErrorCode.SAME_PASSWORD,
            )

        now = self.clock()
        push_password_history(user, user.password_hash, now)
        user.password_hash = get_password_hash(new_password)
        user.password_changed_at = now
        _clear_reset_fields(user)
        db.commit()
        logger.info(f"Successfully changed password for user ID: {user.id}")

        try:
            await self.notifier.send_security_alert(user.email, device_info)
        except EmailDeliveryError as e:
            logger.error(f"Security alert to {user.email} failed: {e.technical_details}")

        return {"message": "Password changed successfully"}

# shopeasy/auth/service.py

from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional
from uuid import uuid4, UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    ConflictError,
    EmailDeliveryError,
    ErrorCode,
    ForbiddenError,
    InvalidInputError,
    InvalidOTPError,
    UnauthorizedError,
    UserNotFoundError,
    raise_missing_fields,
    raise_weak_password,
)
from ..core.infrastructure import redis_service
from ..core.infrastructure.email_service import NotificationGateway
from ..database.core import DbSession
from ..logging import logger
from ..users.models import User
from ..users.schemas import to_user_profile
from ..users.service import UserService
from ..utils.clock import utcnow
from ..utils.password_utils import get_password_hash, password_policy_error
from ..utils.tokens import issue_otp
from ..utils.validators import is_valid_email, normalize_contact, normalize_email
from . import models
from .pending import PendingRegistrationCache

bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_SCOPE = "access_token"


# --- Session tokens ---

def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Creates a signed session token with a unique ID (jti)."""
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    encode = {
        "sub": str(user.id),
        "is_admin": bool(user.is_admin),
        "exp": expire,
        "jti": str(uuid4()),
        "scope": TOKEN_SCOPE,
    }
    return jwt.encode(encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> models.TokenData:
    """Decodes a session token and checks the denylist."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Session expired. Please log in again.", code=ErrorCode.TOKEN_EXPIRED)
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT decode error: {e}")
        raise UnauthorizedError("Invalid token", code=ErrorCode.TOKEN_INVALID)

    if payload.get("scope") != TOKEN_SCOPE:
        raise UnauthorizedError("Invalid token scope", code=ErrorCode.TOKEN_INVALID)

    jti = payload.get("jti")
    sub = payload.get("sub")
    if not jti or not sub:
        raise UnauthorizedError("Malformed token", code=ErrorCode.TOKEN_INVALID)

    if redis_service.is_token_denylisted(jti):
        raise UnauthorizedError("Token has been revoked.", code=ErrorCode.TOKEN_REVOKED)

    try:
        user_id = UUID(sub)
    except ValueError:
        raise UnauthorizedError("Malformed token", code=ErrorCode.TOKEN_INVALID)

    return models.TokenData(
        user_id=user_id,
        is_admin=bool(payload.get("is_admin")),
        jti=jti,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc).replace(tzinfo=None),
    )


def get_token_data(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> models.TokenData:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access token required", code=ErrorCode.TOKEN_MISSING)
    return verify_token(credentials.credentials)


def get_current_user(
    token_data: Annotated[models.TokenData, Depends(get_token_data)],
    db: DbSession,
) -> User:
    user = UserService.find_by_id(db, token_data.user_id)
    if not user:
        raise UnauthorizedError("Invalid token: user not found", code=ErrorCode.TOKEN_INVALID)
    if not user.is_active:
        raise ForbiddenError("Account is deactivated", code=ErrorCode.ACCOUNT_DEACTIVATED)
    return user


def get_current_admin(user: Annotated[User, Depends(get_current_user)]) -> User:
    if not user.is_admin:
        logger.warning(f"Non-admin user {user.id} attempted an admin action")
        raise ForbiddenError("Admin access required", code=ErrorCode.ADMIN_REQUIRED)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
CurrentToken = Annotated[models.TokenData, Depends(get_token_data)]


def revoke_token(token_data: models.TokenData) -> None:
    remaining = token_data.expires_at - utcnow()
    if remaining.total_seconds() > 0:
        redis_service.add_token_to_denylist(token_data.jti, remaining)
    logger.info(f"User {token_data.user_id} logged out. Token JTI {token_data.jti} denylisted.")


# --- Login ---

def authenticate_user(db: Session, email: str, password: str, require_admin: bool = False) -> User:
    """
    Checks credentials and stamps last_login. Raises rather than returning None
    so each rejection carries its own error code.
    """
    if not email or not password:
        raise_missing_fields([f for f, v in (("email", email), ("password", password)) if not v])

    user = UserService.find_by_email(db, email)
    if not user:
        logger.warning(f"Login attempt for unknown email: {normalize_email(email)}")
        raise UserNotFoundError()
    if not UserService.compare_password(user, password):
        logger.warning(f"Invalid password for user {user.id}")
        raise UnauthorizedError("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)
    if not user.is_active:
        raise ForbiddenError("Account is deactivated", code=ErrorCode.ACCOUNT_DEACTIVATED)
    if require_admin and not user.is_admin:
        raise ForbiddenError("Admin access required", code=ErrorCode.ADMIN_REQUIRED)

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} logged in")
    return user


# --- Signup / OTP verification ---

class RegistrationService:
    """
    Signup state machine: no pending registration, OTP issued, then verified,
    expired or invalid. Pending data lives in the injected cache until the OTP
    is confirmed; only then is a user row written.
    """

    def __init__(self, pending: PendingRegistrationCache, notifier: NotificationGateway):
        self.pending = pending
        self.notifier = notifier

    async def signup(self, db: Session, request: models.SignupRequest) -> dict:
        missing = [f for f in ("name", "email", "password", "country", "contact") if not getattr(request, f)]
        if missing:
            raise_missing_fields(missing)

        email = normalize_email(request.email)
        if not is_valid_email(email):
            raise InvalidInputError("Please provide a valid email address", context={"email": email})
        name = request.name.strip()
        if not 2 <= len(name) <= 50:
            raise InvalidInputError("Name must be between 2 and 50 characters")
        contact = normalize_contact(request.contact)
        if contact is None:
            raise InvalidInputError("Contact must be 10-15 digits")

        if UserService.find_by_email(db, email):
            logger.warning(f"Signup attempt for already registered email: {email}")
            raise ConflictError(
                "User already exists with this email",
                code=ErrorCode.EMAIL_ALREADY_REGISTERED,
                context={"email": email},
            )

        policy_error = password_policy_error(request.password)
        if policy_error:
            raise_weak_password(policy_error)

        otp = issue_otp()
        entry = self.pending.put(
            email,
            {
                "otp": otp,
                "name": name,
                "password_hash": get_password_hash(request.password),
                "country": request.country.strip(),
                "contact": contact,
            },
        )

        try:
            await self.notifier.send_otp(email, otp)
        except EmailDeliveryError:
            self.pending.consume(email)
            logger.error(f"OTP delivery failed for {email}; pending registration removed")
            raise

        logger.info(f"OTP issued for pending registration {email}")
        return {
            "message": "OTP sent to your email. Please verify to complete registration.",
            "email": email,
            "expires_at": entry.expires_at,
        }

    async def verify_otp(self, db: Session, email: str, otp: str) -> dict:
        email = normalize_email(email)
        if not email or not otp:
            raise_missing_fields([f for f, v in (("email", email), ("otp", otp)) if not v])

        entry = self.pending.get(email)
        if entry.otp != str(otp).strip():
            logger.warning(f"Invalid OTP submitted for {email}")
            raise InvalidOTPError()

        user = UserService.create_user(
            db,
            name=entry.name,
            email=entry.email,
            password_hash=entry.password_hash,
            country=entry.country,
            contact=entry.contact,
            email_verified=True,
            last_login=utcnow(),
        )
        token = create_access_token(user)
        self.pending.consume(email)
        logger.info(f"Email verified, user {user.id} created")

        try:
            await self.notifier.send_welcome(user.email, user.name)
        except EmailDeliveryError as e:
            logger.error(f"Welcome email to {user.email} failed: {e.technical_details}")

        return {"token": token, "user": to_user_profile(user)}

    async def resend_otp(self, email: str) -> dict:
        email = normalize_email(email)
        if not email:
            raise_missing_fields(["email"])
        entry = self.pending.resend(email)
        # A failed send leaves the regenerated entry in place for another resend
        await self.notifier.send_otp(email, entry.otp)
        logger.info(f"OTP re-issued for {email}")
        return {
            "message": "New OTP sent to your email",
            "email": email,
            "expires_at": entry.expires_at,
        }

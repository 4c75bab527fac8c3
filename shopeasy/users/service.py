# shopeasy/users/service.py

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictError, ErrorCode, UserNotFoundError
from ..logging import logger
from ..utils.password_utils import get_password_hash, verify_password
from ..utils.validators import normalize_email
from .models import User
from .schemas import ProfileUpdate

# Columns a caller may never set through update_fields
PROTECTED_FIELDS = {"id", "password_hash", "created_at"}


class UserService:
    """Credential store over the users table."""

    @staticmethod
    def find_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def find_by_id(db: Session, user_id: UUID) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def get_or_404(db: Session, user_id: UUID) -> User:
        user = db.get(User, user_id)
        if not user:
            logger.warning(f"User not found with ID: {user_id}")
            raise UserNotFoundError()
        return user

    @staticmethod
    def create_user(db: Session, commit: bool = True, **fields: Any) -> User:
        """
        Persists a new user. A raw `password` is hashed here; an already hashed
        value may be passed as `password_hash` instead.
        """
        email = normalize_email(fields.pop("email", None))
        if UserService.find_by_email(db, email):
            raise ConflictError(
                "User already exists with this email",
                code=ErrorCode.EMAIL_ALREADY_REGISTERED,
                context={"email": email},
            )
        password = fields.pop("password", None)
        if password is not None:
            fields["password_hash"] = get_password_hash(password)

        user = User(email=email, **fields)
        db.add(user)
        if commit:
            db.commit()
            db.refresh(user)
        else:
            db.flush()
        logger.info(f"Created user {user.id} ({email})")
        return user

    @staticmethod
    def update_fields(db: Session, user_id: UUID, partial: Dict[str, Any]) -> User:
        user = UserService.get_or_404(db, user_id)
        for field, value in partial.items():
            if field in PROTECTED_FIELDS or not hasattr(User, field):
                continue
            setattr(user, field, value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def compare_password(user: User, raw_password: str) -> bool:
        return verify_password(raw_password, user.password_hash)

    @staticmethod
    def update_profile(db: Session, user: User, data: ProfileUpdate) -> User:
        partial = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in partial.items():
            setattr(user, field, value)
        db.commit()
        db.refresh(user)
        logger.info(f"Profile updated for user {user.id}: {sorted(partial)}")
        return user

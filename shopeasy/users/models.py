# shopeasy/users/models.py

from sqlalchemy import Column, String, Boolean, DateTime, Integer, JSON, Uuid
from sqlalchemy.orm import relationship
import uuid

from ..database.core import Base
from ..utils.clock import utcnow


class User(Base):
    """
    SQLAlchemy model representing a user in the database.

    The cart, wishlist and listings of the user are child tables; their
    product references are plain ids so a stale reference never blocks a write.
    """
    __tablename__ = 'users'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    country = Column(String(100), nullable=False)
    contact = Column(String(20), nullable=False)
    profile_image = Column(String, nullable=False, default="")

    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    email_verified = Column(Boolean, nullable=False, default=False)

    # Password reset state; only the sha256 of the raw token is stored
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expires = Column(DateTime, nullable=True)
    password_reset_requests = Column(Integer, nullable=False, default=0)
    last_password_reset_request = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)
    # [{"password_hash": str, "changed_at": iso str}], oldest first
    password_history = Column(JSON, nullable=False, default=list)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # --- Relationships ---
    cart_items = relationship("CartItem", back_populates="user", cascade="all, delete-orphan", order_by="CartItem.added_at")
    wishlist_items = relationship("WishlistItem", back_populates="user", cascade="all, delete-orphan", order_by="WishlistItem.added_at")
    listings = relationship("Listing", back_populates="user", cascade="all, delete-orphan", order_by="Listing.created_at")

    def has_active_reset(self, now) -> bool:
        return bool(self.reset_password_token) and self.reset_password_expires is not None and self.reset_password_expires > now

    def __repr__(self):
        return f"<User(email='{self.email}')>"

from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from ..database.core import Base
from ..utils.clock import utcnow


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_cart_user_product"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Uuid, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    added_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="cart_items")


class WishlistItem(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Uuid, nullable=False, index=True)
    added_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="wishlist_items")

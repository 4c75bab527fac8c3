from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, ForeignKey, JSON, Text, Uuid
from sqlalchemy.orm import relationship
import uuid

from ..database.core import Base
from ..utils.clock import utcnow

LISTING_STATUSES = ("active", "inactive", "sold", "pending")


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False, index=True)
    price = Column(Float, nullable=False)
    category = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    image = Column(String, nullable=False, default="")
    stock = Column(Integer, nullable=False, default=0)
    rating_rate = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    features = Column(JSON, nullable=False, default=list)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User")


class Listing(Base):
    """A product the user put up for sale."""
    __tablename__ = "listings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Uuid, nullable=False, index=True)
    status = Column(String, nullable=False, default="active")  # active, inactive, sold, pending
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="listings")

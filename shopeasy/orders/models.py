from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, JSON, Text, Uuid
from sqlalchemy.orm import relationship
import uuid

from ..database.core import Base
from ..utils.clock import utcnow

ORDER_STATUSES = ("Pending", "Processing", "Shipped", "Delivered", "Cancelled", "Returned")
PAYMENT_STATUSES = ("Pending", "Paid", "Failed", "Refunded")
PAYMENT_METHODS = ("COD", "Credit Card", "Debit Card", "PayPal", "Bank Transfer")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    order_number = Column(String, unique=True, nullable=False)
    # Snapshot of the address at checkout time
    shipping_address = Column(JSON, nullable=False)
    payment_method = Column(String, nullable=False, default="COD")
    payment_status = Column(String, nullable=False, default="Pending")
    order_status = Column(String, nullable=False, default="Pending")
    items_price = Column(Float, nullable=False, default=0.0)
    shipping_price = Column(Float, nullable=False, default=0.0)
    tax_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)

    # Shipping tracking
    carrier = Column(String, nullable=True)
    tracking_number = Column(String, nullable=True)
    shipped_date = Column(DateTime, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    delivered_date = Column(DateTime, nullable=True)

    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    # Plain reference: the product may later be deactivated or changed
    product_id = Column(Uuid, nullable=False, index=True)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    image = Column(String, nullable=False, default="")

    order = relationship("Order", back_populates="items")

# shopeasy/orders/schemas.py

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .models import Order, OrderItem

OrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered", "Cancelled", "Returned"]
PaymentStatus = Literal["Pending", "Paid", "Failed", "Refunded"]
PaymentMethod = Literal["COD", "Credit Card", "Debit Card", "PayPal", "Bank Transfer"]


class ShippingAddress(BaseModel):
    full_name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None


class LineItemRequest(BaseModel):
    product_id: UUID
    quantity: int


class PlaceOrderRequest(BaseModel):
    items: List[LineItemRequest]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "COD"
    notes: str = ""


class AdminPlaceOrderRequest(PlaceOrderRequest):
    user_id: UUID


class CheckoutRequest(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "COD"
    notes: str = ""


class OrderStatusUpdate(BaseModel):
    """Fields an admin may change. Shipped and delivered dates are stamped, never set."""
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None


class OrderItemOut(BaseModel):
    product_id: UUID
    name: str
    quantity: int
    price: float
    image: str


class ShippingDetails(BaseModel):
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    shipped_date: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    delivered_date: Optional[datetime] = None


class OrderSummary(BaseModel):
    id: UUID
    order_number: str
    order_status: str
    payment_status: str
    payment_method: str
    total_price: float
    item_count: int
    created_at: datetime


class OrderDetails(OrderSummary):
    user_id: UUID
    items: List[OrderItemOut]
    shipping_address: dict
    items_price: float
    shipping_price: float
    tax_price: float
    shipping: ShippingDetails
    notes: str
    updated_at: datetime


def to_order_item_out(item: OrderItem) -> OrderItemOut:
    return OrderItemOut(
        product_id=item.product_id,
        name=item.name,
        quantity=item.quantity,
        price=item.price,
        image=item.image or "",
    )


def to_order_summary(order: Order) -> OrderSummary:
    return OrderSummary(
        id=order.id,
        order_number=order.order_number,
        order_status=order.order_status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        total_price=order.total_price,
        item_count=sum(i.quantity for i in order.items),
        created_at=order.created_at,
    )


def to_order_details(order: Order) -> OrderDetails:
    return OrderDetails(
        **to_order_summary(order).model_dump(),
        user_id=order.user_id,
        items=[to_order_item_out(i) for i in order.items],
        shipping_address=dict(order.shipping_address or {}),
        items_price=order.items_price,
        shipping_price=order.shipping_price,
        tax_price=order.tax_price,
        shipping=ShippingDetails(
            carrier=order.carrier,
            tracking_number=order.tracking_number,
            shipped_date=order.shipped_date,
            estimated_delivery=order.estimated_delivery,
            delivered_date=order.delivered_date,
        ),
        notes=order.notes or "",
        updated_at=order.updated_at,
    )

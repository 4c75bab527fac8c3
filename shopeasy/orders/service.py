# shopeasy/orders/service.py

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..cart.service import CartService
from ..core.config import settings
from ..core.exceptions import (
    ConflictError,
    ErrorCode,
    InsufficientStockError,
    InvalidInputError,
    OrderNotFoundError,
    UserNotFoundError,
)
from ..logging import logger
from ..products.models import Product
from ..products.service import ProductService
from ..sagas.runner import SagaRunner, SagaStep, register_saga
from ..users.models import User
from ..utils.clock import utcnow
from ..utils.tokens import generate_order_number
from .models import Order, OrderItem
from .schemas import OrderStatusUpdate, ShippingAddress

PLACE_ORDER_SAGA = "place_order"
STOCK_CHANGED_NOTE = "Cancelled automatically: stock ran out while the order was being placed."


# --- place_order saga steps ---

def _unique_order_number(db: Session, now: datetime) -> str:
    for _ in range(settings.ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number(now)
        if not db.query(Order.id).filter(Order.order_number == number).first():
            return number
        logger.warning(f"Order number {number} already taken, drawing another")
    raise ConflictError(
        "Could not allocate an order number. Please try again.",
        code=ErrorCode.DUPLICATE_ORDER_NUMBER,
    )


def _create_order(db: Session, payload: Dict[str, Any]) -> None:
    order_id = UUID(payload["order_id"])
    if db.get(Order, order_id) is not None:
        return
    order = Order(
        id=order_id,
        user_id=UUID(payload["user_id"]),
        order_number=_unique_order_number(db, utcnow()),
        shipping_address=payload["shipping_address"],
        payment_method=payload["payment_method"],
        items_price=payload["items_price"],
        shipping_price=payload["shipping_price"],
        tax_price=payload["tax_price"],
        total_price=payload["total_price"],
        notes=payload.get("notes") or "",
    )
    order.items = [
        OrderItem(
            position=position,
            product_id=UUID(item["product_id"]),
            name=item["name"],
            quantity=item["quantity"],
            price=item["price"],
            image=item["image"],
        )
        for position, item in enumerate(payload["items"])
    ]
    db.add(order)
    db.flush()


def _cancel_created_order(db: Session, payload: Dict[str, Any]) -> None:
    order = db.get(Order, UUID(payload["order_id"]))
    if order is None or order.order_status == "Cancelled":
        return
    order.order_status = "Cancelled"
    order.notes = f"{order.notes}\n{STOCK_CHANGED_NOTE}" if order.notes else STOCK_CHANGED_NOTE


def _stock_step(product_id: UUID, quantity: int) -> SagaStep:
    def decrement(db: Session, payload: Dict[str, Any]) -> None:
        if not ProductService.increment_stock(db, product_id, -quantity):
            product = db.get(Product, product_id)
            logger.warning(f"Stock for {product_id} changed during checkout")
            raise InsufficientStockError(
                product_id,
                product.title if product else str(product_id),
                quantity,
                product.stock if product else 0,
            )

    def restore(db: Session, payload: Dict[str, Any]) -> None:
        ProductService.increment_stock(db, product_id, quantity)

    return SagaStep(f"decrement_stock:{product_id}", decrement, restore)


@register_saga(PLACE_ORDER_SAGA)
def build_place_order_steps(payload: Dict[str, Any]) -> List[SagaStep]:
    steps = [SagaStep("create_order", _create_order, _cancel_created_order)]
    for item in payload["items"]:
        steps.append(_stock_step(UUID(item["product_id"]), item["quantity"]))
    return steps


def _merge_line_items(line_items: List[Tuple[UUID, int]]) -> Dict[UUID, int]:
    merged: Dict[UUID, int] = {}
    for product_id, quantity in line_items:
        if not isinstance(quantity, int) or quantity < 1:
            raise InvalidInputError("Quantity must be at least 1", context={"product_id": str(product_id)})
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class OrderService:

    @staticmethod
    async def place_order(
        db: Session,
        user_id: UUID,
        line_items: List[Tuple[UUID, int]],
        shipping_address: ShippingAddress,
        payment_method: str = "COD",
        notes: str = "",
    ) -> Order:
        """
        Validates every line before writing anything, then runs the place_order
        saga: create the order, then one conditional stock decrement per product.
        """
        if not line_items:
            raise InvalidInputError("Order must contain at least one item")
        if not db.get(User, user_id):
            raise UserNotFoundError()

        quantities = _merge_line_items(line_items)
        items = []
        for product_id, quantity in quantities.items():
            product = ProductService.get_or_404(db, product_id, active_only=True)
            if quantity > product.stock:
                raise InsufficientStockError(product.id, product.title, quantity, product.stock)
            items.append({
                "product_id": str(product.id),
                "name": product.title,
                "quantity": quantity,
                "price": product.price,
                "image": product.image or "",
            })

        items_price = round(sum(i["quantity"] * i["price"] for i in items), 2)
        shipping_price = 0.0
        tax_price = 0.0
        order_id = uuid4()
        payload = {
            "order_id": str(order_id),
            "user_id": str(user_id),
            "items": items,
            "shipping_address": shipping_address.model_dump(),
            "payment_method": payment_method,
            "notes": notes or "",
            "items_price": items_price,
            "shipping_price": shipping_price,
            "tax_price": tax_price,
            "total_price": round(items_price + shipping_price + tax_price, 2),
        }

        SagaRunner(db).run(PLACE_ORDER_SAGA, payload, build_place_order_steps(payload))
        order = db.get(Order, order_id)
        logger.info(f"Order {order.order_number} placed by {user_id} for {order.total_price}")
        return order

    @staticmethod
    async def checkout_cart(
        db: Session,
        user: User,
        shipping_address: ShippingAddress,
        payment_method: str = "COD",
        notes: str = "",
    ) -> Order:
        rows = CartService.resolve(db, user)
        if not rows:
            raise InvalidInputError("Cart is empty")
        unavailable = [str(item.product_id) for item, product in rows if product is None or not product.is_active]
        if unavailable:
            raise InvalidInputError(
                "Some items in your cart are no longer available",
                context={"unavailable_products": unavailable},
            )
        order = await OrderService.place_order(
            db,
            user.id,
            [(item.product_id, item.quantity) for item, _ in rows],
            shipping_address,
            payment_method,
            notes,
        )
        CartService.clear(db, user)
        return order

    @staticmethod
    async def update_order_status(db: Session, order_id: UUID, update: OrderStatusUpdate) -> Order:
        order = await OrderService.get_order(db, order_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        now = utcnow()

        new_status = changes.get("order_status")
        if new_status == "Shipped" and order.order_status != "Shipped" and order.shipped_date is None:
            order.shipped_date = now
        if new_status == "Delivered" and order.order_status != "Delivered" and order.delivered_date is None:
            order.delivered_date = now

        for field, value in changes.items():
            setattr(order, field, value)
        db.commit()
        db.refresh(order)
        logger.info(f"Order {order.order_number} updated: {sorted(changes)}")
        return order

    @staticmethod
    async def get_order(db: Session, order_id: UUID) -> Order:
        order = db.get(Order, order_id)
        if not order:
            raise OrderNotFoundError()
        return order

    @staticmethod
    async def get_order_for_user(db: Session, user_id: UUID, order_id: UUID) -> Order:
        """A user can only see their own orders."""
        order = db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
        if not order:
            raise OrderNotFoundError()
        return order

    @staticmethod
    async def get_user_orders(db: Session, user_id: UUID, skip: int = 0, limit: int = 100) -> List[Order]:
        return (
            db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    @staticmethod
    async def list_orders(
        db: Session,
        order_status: Optional[str] = None,
        payment_status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        query = db.query(Order)
        if order_status:
            query = query.filter(Order.order_status == order_status)
        if payment_status:
            query = query.filter(Order.payment_status == payment_status)
        if start_date:
            query = query.filter(Order.created_at >= start_date)
        if end_date:
            query = query.filter(Order.created_at <= end_date)
        total = query.count()
        orders = query.order_by(Order.created_at.desc()).offset(skip).limit(limit).all()
        return orders, total

# shopeasy/orders/controller.py
from uuid import UUID

from fastapi import APIRouter, Query
from starlette import status

from ..auth.service import CurrentUser
from ..database.core import DbSession
from .schemas import CheckoutRequest, PlaceOrderRequest, to_order_details, to_order_summary
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def place_order(body: PlaceOrderRequest, current_user: CurrentUser, db: DbSession):
    order = await OrderService.place_order(
        db,
        current_user.id,
        [(item.product_id, item.quantity) for item in body.items],
        body.shipping_address,
        body.payment_method,
        body.notes,
    )
    return {"success": True, "message": "Order placed successfully", "order": to_order_details(order)}


@router.post("/checkout", status_code=status.HTTP_201_CREATED)
async def checkout(body: CheckoutRequest, current_user: CurrentUser, db: DbSession):
    """Place an order for everything in the cart, then empty the cart."""
    order = await OrderService.checkout_cart(db, current_user, body.shipping_address, body.payment_method, body.notes)
    return {"success": True, "message": "Order placed successfully", "order": to_order_details(order)}


@router.get("/")
async def my_orders(
    current_user: CurrentUser,
    db: DbSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    orders = await OrderService.get_user_orders(db, current_user.id, skip, limit)
    return {"success": True, "orders": [to_order_summary(o) for o in orders], "skip": skip, "limit": limit}


@router.get("/{order_id}")
async def get_order(order_id: UUID, current_user: CurrentUser, db: DbSession):
    order = await OrderService.get_order_for_user(db, current_user.id, order_id)
    return {"success": True, "order": to_order_details(order)}

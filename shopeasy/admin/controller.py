# shopeasy/admin/controller.py
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request
from starlette import status

from ..auth.service import CurrentAdmin, CurrentUser, create_access_token
from ..core.config import settings
from ..core.rate_limiter import limiter
from ..database.core import DbSession
from ..orders.schemas import AdminPlaceOrderRequest, OrderStatusUpdate, to_order_details, to_order_summary
from ..orders.service import OrderService
from ..products import cascade
from ..products.schemas import AdminProductCreate, ProductUpdate, to_admin_product
from ..products.service import ProductFilters, ProductService, page_count
from ..sagas.runner import list_incomplete, list_sagas
from ..sagas.schemas import SagaOut
from ..users.schemas import to_user_profile, to_user_summary
from ..users.service import UserService
from .schemas import AdminLoginRequest, AdminUserCreate, AdminUserUpdate
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login")
@limiter.limit("20/hour")
async def admin_login(request: Request, body: AdminLoginRequest, db: DbSession):
    user = AdminService.login(db, body.email, body.password)
    return {
        "success": True,
        "message": "Admin login successful",
        "token": create_access_token(user),
        "user": to_user_profile(user),
    }


@router.get("/check-status")
async def check_status(current_user: CurrentUser):
    return {"success": True, "is_admin": bool(current_user.is_admin), "user": to_user_profile(current_user)}


@router.get("/stats")
async def dashboard_stats(admin: CurrentAdmin, db: DbSession):
    return {"success": True, "stats": AdminService.dashboard_stats(db)}


@router.get("/analytics")
async def analytics(
    admin: CurrentAdmin,
    db: DbSession,
    period: str = "month",
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
):
    return {"success": True, "analytics": AdminService.analytics(db, period, start_date, end_date)}


# --- Users ---

@router.get("/users")
async def list_users(
    admin: CurrentAdmin,
    db: DbSession,
    search: Optional[str] = None,
    role: Optional[str] = None,
    active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    users, total = AdminService.list_users(db, search, role, active, page, limit)
    return {
        "success": True,
        "count": len(users),
        "total_users": total,
        "total_pages": page_count(total, limit),
        "current_page": page,
        "users": [to_user_summary(u) for u in users],
    }


@router.get("/users/{user_id}")
async def get_user(user_id: UUID, admin: CurrentAdmin, db: DbSession):
    return {"success": True, "user": AdminService.user_detail(db, user_id)}


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(body: AdminUserCreate, admin: CurrentAdmin, db: DbSession):
    user, generated_password = AdminService.create_user(db, body)
    response = {"success": True, "message": "User created successfully", "user": to_user_summary(user)}
    if generated_password:
        response["message"] += ". Password was auto-generated."
        response["generated_password"] = generated_password
    return response


@router.put("/users/{user_id}")
async def update_user(user_id: UUID, body: AdminUserUpdate, admin: CurrentAdmin, db: DbSession):
    user = AdminService.update_user(db, admin, user_id, body)
    return {"success": True, "message": "User updated successfully", "user": to_user_summary(user)}


@router.delete("/users/{user_id}")
async def delete_user(user_id: UUID, admin: CurrentAdmin, db: DbSession):
    AdminService.delete_user(db, admin, user_id)
    return {"success": True, "message": "User deleted successfully"}


# --- Products ---

@router.get("/products")
async def list_products(
    admin: CurrentAdmin,
    db: DbSession,
    search: Optional[str] = None,
    category: Optional[str] = None,
    product_status: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    is_active = {"active": True, "inactive": False}.get(product_status or "")
    filters = ProductFilters(category=category, search=search, is_active=is_active)
    products, total = ProductService.search(db, filters, page, limit)
    return {
        "success": True,
        "count": len(products),
        "total_products": total,
        "total_pages": page_count(total, limit),
        "current_page": page,
        "products": [to_admin_product(p) for p in products],
    }


@router.get("/products/low-stock")
async def low_stock_products(admin: CurrentAdmin, db: DbSession, threshold: Optional[int] = Query(None, ge=0)):
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    products = ProductService.low_stock(db, threshold)
    return {
        "success": True,
        "count": len(products),
        "threshold": threshold,
        "products": [to_admin_product(p) for p in products],
    }


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(body: AdminProductCreate, admin: CurrentAdmin, db: DbSession):
    owner = UserService.get_or_404(db, body.owner_id or admin.id)
    product, _ = ProductService.create_listing(db, owner, body)
    return {"success": True, "message": "Product created successfully", "product": to_admin_product(product)}


@router.put("/products/{product_id}")
async def update_product(product_id: UUID, body: ProductUpdate, admin: CurrentAdmin, db: DbSession):
    product = ProductService.get_or_404(db, product_id)
    product = ProductService.update_fields(db, product, body.model_dump(exclude_unset=True, exclude_none=True))
    return {"success": True, "message": "Product updated successfully", "product": to_admin_product(product)}


@router.delete("/products/{product_id}")
async def delete_product(product_id: UUID, admin: CurrentAdmin, db: DbSession):
    result = cascade.delete_product(db, product_id)
    if result["result"] == "deactivated":
        message = "Product deactivated (has existing orders)"
    else:
        message = "Product deleted successfully and cleaned up from all user data"
    return {"success": True, "message": message, **result}


# --- Orders ---

@router.get("/orders")
async def list_orders(
    admin: CurrentAdmin,
    db: DbSession,
    order_status: Optional[str] = Query(None, alias="status"),
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    orders, total = await OrderService.list_orders(
        db, order_status, payment_status, start_date, end_date, (page - 1) * limit, limit
    )
    return {
        "success": True,
        "count": len(orders),
        "total_orders": total,
        "total_pages": page_count(total, limit),
        "current_page": page,
        "orders": [to_order_summary(o) for o in orders],
    }


@router.get("/orders/{order_id}")
async def get_order(order_id: UUID, admin: CurrentAdmin, db: DbSession):
    order = await OrderService.get_order(db, order_id)
    return {"success": True, "order": to_order_details(order)}


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(body: AdminPlaceOrderRequest, admin: CurrentAdmin, db: DbSession):
    order = await OrderService.place_order(
        db,
        body.user_id,
        [(item.product_id, item.quantity) for item in body.items],
        body.shipping_address,
        body.payment_method,
        body.notes,
    )
    return {"success": True, "message": "Order created successfully", "order": to_order_details(order)}


@router.put("/orders/{order_id}")
async def update_order(order_id: UUID, body: OrderStatusUpdate, admin: CurrentAdmin, db: DbSession):
    order = await OrderService.update_order_status(db, order_id, body)
    return {"success": True, "message": "Order updated successfully", "order": to_order_details(order)}


# --- Sagas ---

@router.get("/sagas")
async def get_sagas(
    admin: CurrentAdmin,
    db: DbSession,
    saga_status: Optional[str] = Query(None, alias="status"),
    incomplete: bool = False,
):
    sagas = list_incomplete(db) if incomplete else list_sagas(db, saga_status)
    return {"success": True, "count": len(sagas), "sagas": [SagaOut.model_validate(s) for s in sagas]}


@router.post("/sagas/{saga_id}/resume")
async def resume(saga_id: UUID, admin: CurrentAdmin, db: DbSession):
    saga = AdminService.resume(db, saga_id)
    return {"success": True, "message": f"Saga {saga.status}", "saga": SagaOut.model_validate(saga)}

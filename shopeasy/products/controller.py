# shopeasy/products/controller.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query
from starlette import status

from ..auth.service import CurrentUser
from ..core.exceptions import ForbiddenError
from ..database.core import DbSession
from ..logging import logger
from . import cascade
from .schemas import (
    ProductCreate,
    ProductPage,
    ProductUpdate,
    to_listing_out,
    to_public_product,
)
from .service import ProductFilters, ProductService, page_count

router = APIRouter(prefix="/products", tags=["products"])
listings_router = APIRouter(prefix="/products/listings", tags=["listings"])


@router.get("/", response_model=ProductPage)
async def list_products(
    db: DbSession,
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
):
    filters = ProductFilters(category=category, search=search, min_price=min_price, max_price=max_price)
    products, total = ProductService.search(db, filters, page, limit)
    return ProductPage(
        data=[to_public_product(p) for p in products],
        total=total,
        page=page,
        total_pages=page_count(total, limit),
    )


@router.get("/category/{category}", response_model=ProductPage)
async def list_products_by_category(
    category: str,
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    filters = ProductFilters(category=category)
    products, total = ProductService.search(db, filters, page, limit)
    return ProductPage(
        data=[to_public_product(p) for p in products],
        total=total,
        page=page,
        total_pages=page_count(total, limit),
    )


@router.get("/{product_id}")
async def get_product(product_id: UUID, db: DbSession):
    product = ProductService.get_or_404(db, product_id, active_only=True)
    return {"success": True, "data": to_public_product(product)}


# --- Listings of the signed-in user ---

@listings_router.post("/", status_code=status.HTTP_201_CREATED)
async def create_listing(body: ProductCreate, current_user: CurrentUser, db: DbSession):
    product, _ = ProductService.create_listing(db, current_user, body)
    return {"success": True, "message": "Listing created successfully", "product": to_public_product(product)}


@listings_router.get("/mine")
async def my_listings(
    current_user: CurrentUser,
    db: DbSession,
    listing_status: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    rows = ProductService.list_user_listings(db, current_user, listing_status)
    start = (page - 1) * limit
    listings = [to_listing_out(listing, product) for listing, product in rows[start:start + limit]]
    return {
        "success": True,
        "listings": listings,
        "total": len(rows),
        "page": page,
        "total_pages": page_count(len(rows), limit),
    }


@listings_router.put("/{product_id}")
async def update_listing(product_id: UUID, body: ProductUpdate, current_user: CurrentUser, db: DbSession):
    product = ProductService.update_listing(db, current_user, product_id, body)
    return {"success": True, "message": "Listing updated successfully", "product": to_public_product(product)}


@listings_router.delete("/{product_id}")
async def delete_listing(product_id: UUID, current_user: CurrentUser, db: DbSession):
    product = ProductService.get_or_404(db, product_id)
    if product.owner_id != current_user.id:
        logger.warning(f"User {current_user.id} tried to delete product {product_id} they do not own")
        raise ForbiddenError("You can only delete your own listings")
    result = cascade.delete_product(db, product_id)
    message = "Listing deleted successfully" if result["result"] == "deleted" else "Listing has orders and was deactivated"
    return {"success": True, "message": message, **result}

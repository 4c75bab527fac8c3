# shopeasy/cart/controller.py
from uuid import UUID

from fastapi import APIRouter

from ..auth.service import CurrentUser
from ..database.core import DbSession
from .schemas import AddToCartRequest, AddToWishlistRequest, CartView, UpdateCartItemRequest, WishlistView
from .service import CartService, WishlistService

router = APIRouter(prefix="/cart", tags=["cart"])
wishlist_router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.get("/", response_model=CartView)
async def get_cart(current_user: CurrentUser, db: DbSession):
    return CartService.get_cart(db, current_user)


@router.post("/", response_model=CartView)
async def add_to_cart(body: AddToCartRequest, current_user: CurrentUser, db: DbSession):
    return CartService.add_item(db, current_user, body.product_id, body.quantity)


@router.put("/{product_id}", response_model=CartView)
async def update_cart_item(product_id: UUID, body: UpdateCartItemRequest, current_user: CurrentUser, db: DbSession):
    return CartService.update_item(db, current_user, product_id, body.quantity)


@router.delete("/{product_id}", response_model=CartView)
async def remove_from_cart(product_id: UUID, current_user: CurrentUser, db: DbSession):
    return CartService.remove_item(db, current_user, product_id)


@router.delete("/", response_model=CartView)
async def clear_cart(current_user: CurrentUser, db: DbSession):
    CartService.clear(db, current_user)
    return CartView(message="Cart cleared", cart=[], total_items=0, total_price=0.0)


@wishlist_router.get("/", response_model=WishlistView)
async def get_wishlist(current_user: CurrentUser, db: DbSession):
    return WishlistService.get_wishlist(db, current_user)


@wishlist_router.post("/", response_model=WishlistView)
async def add_to_wishlist(body: AddToWishlistRequest, current_user: CurrentUser, db: DbSession):
    return WishlistService.add_item(db, current_user, body.product_id)


@wishlist_router.delete("/{product_id}", response_model=WishlistView)
async def remove_from_wishlist(product_id: UUID, current_user: CurrentUser, db: DbSession):
    return WishlistService.remove_item(db, current_user, product_id)

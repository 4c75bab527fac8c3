from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..products.schemas import PublicProduct


class AddToCartRequest(BaseModel):
    product_id: UUID
    quantity: int = Field(1, ge=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int


class AddToWishlistRequest(BaseModel):
    product_id: UUID


class CartEntry(BaseModel):
    """
    A cart line. `available` is False when the product was deleted or
    deactivated; such lines carry no product data and count towards no total.
    """
    product_id: UUID
    quantity: int
    added_at: datetime
    available: bool
    product: Optional[PublicProduct] = None


class CartView(BaseModel):
    success: bool = True
    message: Optional[str] = None
    cart: List[CartEntry]
    total_items: int
    total_price: float


class WishlistEntry(BaseModel):
    product_id: UUID
    added_at: datetime
    available: bool
    product: Optional[PublicProduct] = None


class WishlistView(BaseModel):
    success: bool = True
    message: Optional[str] = None
    wishlist: List[WishlistEntry]

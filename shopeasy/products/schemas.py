# shopeasy/products/schemas.py

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Listing, Product


class ProductCreate(BaseModel):
    # Required fields are checked by the service so the error names what is missing
    title: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: str = ""
    image: str = ""
    stock: int = 0
    features: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    title: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    stock: Optional[int] = None
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class AdminProductCreate(ProductCreate):
    owner_id: Optional[UUID] = None


class Rating(BaseModel):
    rate: float
    count: int


class PublicProduct(BaseModel):
    """Catalog view of a product."""
    id: UUID
    title: str
    price: float
    category: str
    description: str
    image: str
    stock: int
    rating: Rating
    features: List[str]
    created_at: datetime


class AdminProduct(PublicProduct):
    owner_id: UUID
    is_active: bool
    updated_at: datetime


class ListingOut(BaseModel):
    product_id: UUID
    status: str
    created_at: datetime
    available: bool
    product: Optional[PublicProduct] = None


class ProductPage(BaseModel):
    success: bool = True
    data: List[PublicProduct]
    total: int
    page: int
    total_pages: int


def _product_fields(product: Product) -> dict:
    return dict(
        id=product.id,
        title=product.title,
        price=product.price,
        category=product.category,
        description=product.description or "",
        image=product.image or "",
        stock=product.stock,
        rating=Rating(rate=product.rating_rate or 0.0, count=product.rating_count or 0),
        features=list(product.features or []),
        created_at=product.created_at,
    )


def to_public_product(product: Product) -> PublicProduct:
    return PublicProduct(**_product_fields(product))


def to_admin_product(product: Product) -> AdminProduct:
    return AdminProduct(
        **_product_fields(product),
        owner_id=product.owner_id,
        is_active=product.is_active,
        updated_at=product.updated_at,
    )


def to_listing_out(listing: Listing, product: Optional[Product]) -> ListingOut:
    available = product is not None
    return ListingOut(
        product_id=listing.product_id,
        status=listing.status,
        created_at=listing.created_at,
        available=available,
        product=to_public_product(product) if available else None,
    )

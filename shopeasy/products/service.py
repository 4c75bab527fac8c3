# shopeasy/products/service.py

import math
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ..core.exceptions import (
    ErrorCode,
    ForbiddenError,
    InvalidInputError,
    ProductNotFoundError,
    UserNotFoundError,
)
from ..logging import logger
from ..users.models import User
from .models import LISTING_STATUSES, Listing, Product
from .schemas import ProductCreate, ProductUpdate

SORT_FIELDS = {
    "created_at": Product.created_at,
    "price": Product.price,
    "title": Product.title,
    "stock": Product.stock,
    "rating": Product.rating_rate,
}

# Never changed through an update; ratings come from reviews and ownership is fixed
IMMUTABLE_FIELDS = {"id", "owner_id", "rating_rate", "rating_count", "created_at"}


class ProductFilters:
    def __init__(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        is_active: Optional[bool] = True,
        owner_id: Optional[UUID] = None,
    ):
        self.category = category
        self.search = search
        self.min_price = min_price
        self.max_price = max_price
        self.is_active = is_active
        self.owner_id = owner_id


def _check_non_negative(price: Optional[float], stock: Optional[int]) -> None:
    if price is not None and price < 0:
        raise InvalidInputError("Price cannot be negative")
    if stock is not None and stock < 0:
        raise InvalidInputError("Stock cannot be negative")


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class ProductService:
    """Catalog store."""

    @staticmethod
    def find_by_id(db: Session, product_id: UUID) -> Optional[Product]:
        return db.get(Product, product_id)

    @staticmethod
    def find_many(db: Session, product_ids: Iterable[UUID]) -> Dict[UUID, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        return {p.id: p for p in db.query(Product).filter(Product.id.in_(ids)).all()}

    @staticmethod
    def get_or_404(db: Session, product_id: UUID, active_only: bool = False) -> Product:
        product = db.get(Product, product_id)
        if not product or (active_only and not product.is_active):
            raise ProductNotFoundError(product_id)
        return product

    @staticmethod
    def _filtered(db: Session, filters: ProductFilters):
        query = db.query(Product)
        if filters.is_active is not None:
            query = query.filter(Product.is_active.is_(filters.is_active))
        if filters.category and filters.category.lower() != "all":
            query = query.filter(Product.category.ilike(f"%{filters.category}%"))
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(
                    Product.title.ilike(pattern),
                    Product.description.ilike(pattern),
                    Product.category.ilike(pattern),
                )
            )
        if filters.min_price is not None:
            query = query.filter(Product.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(Product.price <= filters.max_price)
        if filters.owner_id is not None:
            query = query.filter(Product.owner_id == filters.owner_id)
        return query

    @staticmethod
    def find(db: Session, filters: ProductFilters, sort: str = "-created_at", skip: int = 0, limit: int = 50) -> List[Product]:
        """`sort` is a field name, prefixed with '-' for descending."""
        descending = sort.startswith("-")
        column = SORT_FIELDS.get(sort.lstrip("-"), Product.created_at)
        query = ProductService._filtered(db, filters)
        query = query.order_by(column.desc() if descending else column.asc())
        return query.offset(skip).limit(limit).all()

    @staticmethod
    def count(db: Session, filters: ProductFilters) -> int:
        return ProductService._filtered(db, filters).count()

    @staticmethod
    def search(db: Session, filters: ProductFilters, page: int = 1, limit: int = 50) -> Tuple[List[Product], int]:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        products = ProductService.find(db, filters, skip=(page - 1) * limit, limit=limit)
        return products, ProductService.count(db, filters)

    @staticmethod
    def create(db: Session, owner_id: UUID, data: ProductCreate, commit: bool = True) -> Product:
        missing = [f for f in ("title", "price", "category") if getattr(data, f) in (None, "")]
        if missing:
            raise InvalidInputError(
                "Title, price, and category are required fields",
                code=ErrorCode.MISSING_REQUIRED_FIELD,
                context={"missing_fields": missing},
            )
        _check_non_negative(data.price, data.stock)

        if not db.get(User, owner_id):
            raise UserNotFoundError()

        product = Product(
            title=data.title.strip(),
            price=float(data.price),
            category=data.category.strip(),
            description=data.description or "",
            image=data.image or "",
            stock=data.stock or 0,
            features=list(data.features or []),
            rating_rate=0.0,
            rating_count=0,
            owner_id=owner_id,
        )
        db.add(product)
        if commit:
            db.commit()
            db.refresh(product)
        else:
            db.flush()
        logger.info(f"Product {product.id} created by {owner_id}")
        return product

    @staticmethod
    def create_listing(db: Session, user: User, data: ProductCreate) -> Tuple[Product, Listing]:
        """Creates the product and the owner's active listing in one commit."""
        product = ProductService.create(db, user.id, data, commit=False)
        listing = Listing(user_id=user.id, product_id=product.id, status="active")
        db.add(listing)
        db.commit()
        db.refresh(product)
        db.refresh(listing)
        return product, listing

    @staticmethod
    def update_fields(db: Session, product: Product, partial: Dict[str, Any]) -> Product:
        _check_non_negative(partial.get("price"), partial.get("stock"))
        for field, value in partial.items():
            if value is None or field in IMMUTABLE_FIELDS or not hasattr(Product, field):
                continue
            setattr(product, field, value)
        db.commit()
        db.refresh(product)
        logger.info(f"Product {product.id} updated: {sorted(partial)}")
        return product

    @staticmethod
    def update_listing(db: Session, user: User, product_id: UUID, data: ProductUpdate) -> Product:
        product = ProductService.get_or_404(db, product_id)
        if product.owner_id != user.id:
            logger.warning(f"User {user.id} tried to edit product {product_id} they do not own")
            raise ForbiddenError("You can only edit your own listings")
        return ProductService.update_fields(db, product, data.model_dump(exclude_unset=True, exclude_none=True))

    @staticmethod
    def increment_stock(db: Session, product_id: UUID, delta: int) -> bool:
        """
        Adds `delta` to the stock in one UPDATE statement. A negative delta only
        applies while enough stock remains; returns whether the row changed.
        Does not commit.
        """
        stmt = update(Product).where(Product.id == product_id)
        if delta < 0:
            stmt = stmt.where(Product.stock >= -delta)
        result = db.execute(stmt.values(stock=Product.stock + delta).execution_options(synchronize_session=False))
        return result.rowcount == 1

    @staticmethod
    def low_stock(db: Session, threshold: int, limit: int = 50) -> List[Product]:
        return (
            db.query(Product)
            .filter(Product.stock < threshold, Product.is_active.is_(True))
            .order_by(Product.stock.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_user_listings(db: Session, user: User, status: Optional[str] = None) -> List[Tuple[Listing, Optional[Product]]]:
        if status and status != "all" and status not in LISTING_STATUSES:
            raise InvalidInputError(f"Unknown listing status '{status}'")
        listings = [l for l in user.listings if not status or status == "all" or l.status == status]
        products = ProductService.find_many(db, [l.product_id for l in listings])
        return [(l, products.get(l.product_id)) for l in listings]

# shopeasy/cart/service.py

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ..core.exceptions import InvalidInputError, NotFoundError
from ..logging import logger
from ..products.models import Product
from ..products.schemas import to_public_product
from ..products.service import ProductService
from ..users.models import User
from .models import CartItem, WishlistItem
from .schemas import CartEntry, CartView, WishlistEntry, WishlistView

MAX_QUANTITY_PER_ITEM = 100


def _usable(product: Optional[Product]) -> bool:
    return product is not None and product.is_active


class CartService:

    @staticmethod
    def resolve(db: Session, user: User) -> List[Tuple[CartItem, Optional[Product]]]:
        """Cart rows with their products; None for references that no longer resolve."""
        items = db.query(CartItem).filter(CartItem.user_id == user.id).order_by(CartItem.added_at).all()
        products = ProductService.find_many(db, [i.product_id for i in items])
        return [(i, products.get(i.product_id)) for i in items]

    @staticmethod
    def get_cart(db: Session, user: User, message: Optional[str] = None) -> CartView:
        entries = []
        total_items = 0
        total_price = 0.0
        for item, product in CartService.resolve(db, user):
            available = _usable(product)
            entries.append(CartEntry(
                product_id=item.product_id,
                quantity=item.quantity,
                added_at=item.added_at,
                available=available,
                product=to_public_product(product) if available else None,
            ))
            if available:
                total_items += item.quantity
                total_price += item.quantity * product.price
        return CartView(message=message, cart=entries, total_items=total_items, total_price=round(total_price, 2))

    @staticmethod
    def add_item(db: Session, user: User, product_id: UUID, quantity: int = 1) -> CartView:
        if quantity < 1:
            raise InvalidInputError("Quantity must be at least 1")
        ProductService.get_or_404(db, product_id, active_only=True)

        item = db.query(CartItem).filter(CartItem.user_id == user.id, CartItem.product_id == product_id).first()
        if item:
            new_quantity = item.quantity + quantity
        else:
            new_quantity = quantity
        if new_quantity > MAX_QUANTITY_PER_ITEM:
            raise InvalidInputError(f"Maximum quantity allowed is {MAX_QUANTITY_PER_ITEM}")

        if item:
            item.quantity = new_quantity
        else:
            db.add(CartItem(user_id=user.id, product_id=product_id, quantity=quantity))
        db.commit()
        logger.info(f"User {user.id} added {quantity} x {product_id} to cart")
        return CartService.get_cart(db, user, "Product added to cart")

    @staticmethod
    def update_item(db: Session, user: User, product_id: UUID, quantity: int) -> CartView:
        if quantity is None or quantity < 1:
            raise InvalidInputError("Quantity must be at least 1")
        if quantity > MAX_QUANTITY_PER_ITEM:
            raise InvalidInputError(f"Maximum quantity allowed is {MAX_QUANTITY_PER_ITEM}")
        item = db.query(CartItem).filter(CartItem.user_id == user.id, CartItem.product_id == product_id).first()
        if not item:
            raise NotFoundError("Item not found in cart")
        item.quantity = quantity
        db.commit()
        return CartService.get_cart(db, user, "Cart updated")

    @staticmethod
    def remove_item(db: Session, user: User, product_id: UUID) -> CartView:
        db.query(CartItem).filter(CartItem.user_id == user.id, CartItem.product_id == product_id).delete()
        db.commit()
        return CartService.get_cart(db, user, "Item removed from cart")

    @staticmethod
    def clear(db: Session, user: User, commit: bool = True) -> None:
        db.query(CartItem).filter(CartItem.user_id == user.id).delete()
        if commit:
            db.commit()


class WishlistService:

    @staticmethod
    def get_wishlist(db: Session, user: User, message: Optional[str] = None) -> WishlistView:
        items = db.query(WishlistItem).filter(WishlistItem.user_id == user.id).order_by(WishlistItem.added_at).all()
        products = ProductService.find_many(db, [i.product_id for i in items])
        entries = []
        for item in items:
            product = products.get(item.product_id)
            available = _usable(product)
            entries.append(WishlistEntry(
                product_id=item.product_id,
                added_at=item.added_at,
                available=available,
                product=to_public_product(product) if available else None,
            ))
        return WishlistView(message=message, wishlist=entries)

    @staticmethod
    def add_item(db: Session, user: User, product_id: UUID) -> WishlistView:
        ProductService.get_or_404(db, product_id, active_only=True)
        exists = db.query(WishlistItem).filter(WishlistItem.user_id == user.id, WishlistItem.product_id == product_id).first()
        if exists:
            return WishlistService.get_wishlist(db, user, "Product already in wishlist")
        db.add(WishlistItem(user_id=user.id, product_id=product_id))
        db.commit()
        return WishlistService.get_wishlist(db, user, "Product added to wishlist")

    @staticmethod
    def remove_item(db: Session, user: User, product_id: UUID) -> WishlistView:
        db.query(WishlistItem).filter(WishlistItem.user_id == user.id, WishlistItem.product_id == product_id).delete()
        db.commit()
        return WishlistService.get_wishlist(db, user, "Product removed from wishlist")

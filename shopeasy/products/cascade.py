# shopeasy/products/cascade.py
"""
Product deletion.

A product referenced by any order is only deactivated so order history keeps
resolving. Otherwise it is hard-deleted by the `delete_product` saga, which then
pulls the product from its owner's listings and from every cart and wishlist.
The pulls are not undone when a later one fails; the saga is left `failed` and
can be resumed. Until then readers see the leftover references as unavailable
items.
"""

from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.orm import Session

from ..cart.models import CartItem, WishlistItem
from ..core.exceptions import PartialCascadeFailure, ProductNotFoundError
from ..logging import logger
from ..orders.models import OrderItem
from ..sagas.runner import SagaRunner, SagaStep, register_saga
from .models import Listing, Product

DELETE_PRODUCT_SAGA = "delete_product"


def _product_id(payload: Dict[str, Any]) -> UUID:
    return UUID(payload["product_id"])


def _delete_product_row(db: Session, payload: Dict[str, Any]) -> None:
    product = db.get(Product, _product_id(payload))
    if product is not None:
        db.delete(product)


def _pull_owner_listing(db: Session, payload: Dict[str, Any]) -> None:
    db.query(Listing).filter(
        Listing.user_id == UUID(payload["owner_id"]),
        Listing.product_id == _product_id(payload),
    ).delete()


def _pull_from_carts(db: Session, payload: Dict[str, Any]) -> None:
    removed = db.query(CartItem).filter(CartItem.product_id == _product_id(payload)).delete()
    logger.info(f"Removed product {payload['product_id']} from {removed} carts")


def _pull_from_wishlists(db: Session, payload: Dict[str, Any]) -> None:
    removed = db.query(WishlistItem).filter(WishlistItem.product_id == _product_id(payload)).delete()
    logger.info(f"Removed product {payload['product_id']} from {removed} wishlists")


@register_saga(DELETE_PRODUCT_SAGA)
def build_delete_product_steps(payload: Dict[str, Any]) -> List[SagaStep]:
    return [
        SagaStep("delete_product", _delete_product_row),
        SagaStep("pull_owner_listing", _pull_owner_listing),
        SagaStep("pull_carts", _pull_from_carts),
        SagaStep("pull_wishlists", _pull_from_wishlists),
    ]


def has_order_references(db: Session, product_id: UUID) -> bool:
    return db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first() is not None


def delete_product(db: Session, product_id: UUID) -> Dict[str, Any]:
    """
    Returns {"result": "deactivated"} or {"result": "deleted", "saga_id": ...}.
    Raises PartialCascadeFailure when a step of the hard delete fails.
    """
    product = db.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(product_id)

    if has_order_references(db, product_id):
        product.is_active = False
        db.commit()
        logger.info(f"Product {product_id} has orders; deactivated instead of deleted")
        return {"result": "deactivated", "product_id": str(product_id)}

    payload = {"product_id": str(product.id), "owner_id": str(product.owner_id)}
    runner = SagaRunner(db)
    saga = runner.start(DELETE_PRODUCT_SAGA, payload)
    try:
        runner.execute(saga, build_delete_product_steps(payload))
    except Exception as e:
        logger.error(f"Delete cascade for product {product_id} stopped at '{saga.failed_step}'")
        raise PartialCascadeFailure(
            saga.id,
            saga.completed_steps or [],
            saga.failed_step,
            technical_details=saga.error,
        ) from e

    logger.info(f"Product {product_id} deleted and unlinked (saga {saga.id})")
    return {"result": "deleted", "product_id": str(product_id), "saga_id": str(saga.id)}

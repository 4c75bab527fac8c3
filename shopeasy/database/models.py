# Central models file to avoid circular imports.
# Every mapped class must be imported before the first query configures the mappers.

from .core import Base

from ..users.models import User
from ..cart.models import CartItem, WishlistItem
from ..products.models import Product, Listing
from ..orders.models import Order, OrderItem
from ..sagas.models import SagaLog

__all__ = [
    "Base",
    "User",
    "CartItem",
    "WishlistItem",
    "Product",
    "Listing",
    "Order",
    "OrderItem",
    "SagaLog",
]

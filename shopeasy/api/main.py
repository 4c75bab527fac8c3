# shopeasy/api/main.py

from fastapi import APIRouter

from ..admin.controller import router as admin_router
from ..auth.controller import router as auth_router
from ..cart.controller import router as cart_router, wishlist_router
from ..orders.controller import router as orders_router
from ..password.controller import router as password_router
from ..products.controller import router as products_router, listings_router

# Create main API router
api_router = APIRouter()

api_router.include_router(auth_router, tags=["Authentication"])
api_router.include_router(password_router, tags=["Password"])
# Listing routes first so /products/listings/... never reaches /products/{product_id}
api_router.include_router(listings_router, tags=["Listings"])
api_router.include_router(products_router, tags=["Products"])
api_router.include_router(cart_router, tags=["Cart"])
api_router.include_router(wishlist_router, tags=["Wishlist"])
api_router.include_router(orders_router, tags=["Orders"])
api_router.include_router(admin_router, tags=["Admin"])

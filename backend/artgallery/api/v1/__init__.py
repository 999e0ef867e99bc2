"""
API Version 1 Router.

Combines all API endpoints under /api/v1 prefix.
"""

from fastapi import APIRouter

from artgallery.api.v1.endpoints import (
    auth,
    cart,
    catalog,
    coupons,
    dashboard,
    orders,
    payments,
    shipping,
    subscribers,
    users,
    webhooks,
    wishlist,
)

router = APIRouter()

# Include endpoint routers
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(catalog.router, prefix="/catalog", tags=["Catalog"])
router.include_router(cart.router, prefix="/cart", tags=["Cart"])
router.include_router(wishlist.router, prefix="/wishlist", tags=["Wishlist"])
router.include_router(coupons.router, prefix="/coupons", tags=["Coupons"])
router.include_router(orders.router, prefix="/orders", tags=["Orders"])
router.include_router(payments.router, prefix="/payments", tags=["Payments"])
router.include_router(shipping.router, prefix="/shipping", tags=["Shipping"])
router.include_router(subscribers.router, prefix="/subscribers", tags=["Newsletter"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

"""
Shop Module - Storefront functionality.

Features:
- Artwork catalog with categories and authors
- Server-held shopping cart
- Wishlist and coupons
- Checkout totals and order management
- Newsletter subscribers and admin dashboard
"""

from artgallery.modules.shop.cart import CartService
from artgallery.modules.shop.coupons import CouponService
from artgallery.modules.shop.orders import OrderService
from artgallery.modules.shop.service import ShopService
from artgallery.modules.shop.subscribers import SubscriberService
from artgallery.modules.shop.wishlist import WishlistService

__all__ = [
    "CartService",
    "CouponService",
    "OrderService",
    "ShopService",
    "SubscriberService",
    "WishlistService",
]

"""
Shared Dependencies for Routers.

Services are built per request around the request's database session;
vendor clients are process-wide singletons.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.modules.accounts import AccountService
from artgallery.modules.fedex import get_fedex_client
from artgallery.modules.notifications import get_mailer
from artgallery.modules.payments import get_razorpay_client, get_stripe_service
from artgallery.modules.shop.cart import CartService, get_cart_service
from artgallery.modules.shop.orders import OrderService


async def get_order_service(
    db: AsyncSession = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
) -> OrderService:
    return OrderService(
        db,
        cart,
        fedex=get_fedex_client(),
        mailer=get_mailer(),
        stripe=get_stripe_service(),
        razorpay=get_razorpay_client(),
    )


async def get_account_service(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db, mailer=get_mailer(), fedex=get_fedex_client())

"""
Shipping API Endpoints.

FedEx rate quotes, address validation and tracking. FedEx failures that
reach this layer are turned into 400 responses by the FedEx error handler.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from artgallery.api.v1.deps import get_order_service
from artgallery.api.v1.endpoints.orders import ShippingAddress
from artgallery.core.security import get_current_user, require_admin
from artgallery.models.user import User
from artgallery.modules.fedex import FedExClient, get_fedex_client
from artgallery.modules.payments import get_stripe_config
from artgallery.modules.shop.orders import OrderService

router = APIRouter()


class RatesRequest(BaseModel):
    """Quote the cart to a saved or inline address."""

    shipping_address_id: int | None = None
    shipping_address: ShippingAddress | None = None


class ValidateAddressRequest(BaseModel):
    street_line1: str = ""
    street_line2: str | None = None
    city: str = ""
    state_code: str = ""
    zip_code: str = ""
    country_code: str = Field("US", min_length=2, max_length=2)


@router.post("/rates")
async def get_rates(
    request: RatesRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """FedEx quotes for the cart, plus the flat rate as a fallback option."""
    options = await orders.shipping_options(
        user,
        address_id=request.shipping_address_id,
        shipping_address=request.shipping_address.model_dump()
        if request.shipping_address
        else None,
    )
    return {"success": True, **options}


@router.post("/validate-address")
async def validate_address(
    request: ValidateAddressRequest,
    user: User = Depends(get_current_user),
    fedex: FedExClient = Depends(get_fedex_client),
) -> dict[str, Any]:
    """Validate a US address; FedEx outages ask for manual verification."""
    return await fedex.validate_address(request.model_dump())


@router.get("/track/{tracking_number}")
async def track_shipment(
    tracking_number: str,
    fedex: FedExClient = Depends(get_fedex_client),
) -> dict[str, Any]:
    return await fedex.track(tracking_number)


@router.get("/config")
async def shipping_config(
    admin: User = Depends(require_admin),
    fedex: FedExClient = Depends(get_fedex_client),
) -> dict[str, Any]:
    """Configuration report for the FedEx and Stripe integrations."""
    return {
        "success": True,
        "fedex": fedex.config.validate(),
        "stripe": get_stripe_config().validate(),
    }

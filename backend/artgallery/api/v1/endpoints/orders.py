"""
Order API Endpoints.

Checkout, order history, cancellation, tracking and admin management.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from artgallery.api.v1.deps import get_order_service
from artgallery.core.security import get_current_user, require_admin
from artgallery.models.shop import OrderStatus, PaymentMethod
from artgallery.models.user import User
from artgallery.modules.shop.orders import (
    ORDER_PLACED_MESSAGE,
    OrderService,
    serialize_order,
)

router = APIRouter()


# ==================== Schemas ====================


class ShippingAddress(BaseModel):
    """Address given inline at checkout."""

    label: str = "Home"
    street_line1: str = Field(..., min_length=1)
    street_line2: str | None = None
    city: str = Field(..., min_length=1)
    state_code: str = Field(..., min_length=2, max_length=2)
    zip_code: str = Field(..., pattern=r"^\d{5}(-\d{4})?$")
    country_code: str = "US"
    phone_number: str = Field(..., pattern=r"^\+?[\d\s\-()]{10,}$")
    is_residential: bool = True


class CreateOrderRequest(BaseModel):
    """Create new order from the cart."""

    shipping_address_id: int | None = None
    shipping_address: ShippingAddress | None = None
    shipping_method: str = "ground"
    fedex_service_type: str | None = None
    coupon_code: str | None = None
    payment_method: PaymentMethod = PaymentMethod.RAZORPAY
    notes: str | None = None
    is_gift: bool = False
    gift_message: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class UpdateStatusRequest(BaseModel):
    status: OrderStatus
    message: str | None = None


class ShippingUpdateRequest(BaseModel):
    message: str = Field(..., min_length=1)
    status: str | None = None
    location: str | None = None
    event_code: str | None = None


class TrackingNumberRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1)


# ==================== Customer ====================


@router.post("", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """
    Place an order from the cart.

    Prices, shipping and discount are computed on the server; the cart is
    cleared and stock is reserved.
    """
    order = await orders.create_order(
        user,
        address_id=request.shipping_address_id,
        shipping_address=request.shipping_address.model_dump()
        if request.shipping_address
        else None,
        shipping_method=request.shipping_method,
        fedex_service_type=request.fedex_service_type,
        coupon_code=request.coupon_code,
        payment_method=request.payment_method,
        notes=request.notes,
        is_gift=request.is_gift,
        gift_message=request.gift_message,
    )
    return {"success": True, "message": ORDER_PLACED_MESSAGE, "order": serialize_order(order)}


@router.get("/my-orders")
async def get_my_orders(
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """Get user's orders, newest first."""
    items = await orders.list_user_orders(user.id)
    return {"success": True, "orders": [serialize_order(o, detailed=False) for o in items]}


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order = await orders.get_order_for_user(order_id, user)
    return {"success": True, "order": serialize_order(order)}


@router.put("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    request: CancelOrderRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order = await orders.cancel_order(order_id, user, request.reason)
    return {
        "success": True,
        "message": "Order cancelled successfully",
        "order": serialize_order(order),
    }


@router.get("/{order_id}/track")
async def track_order(
    order_id: int,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """Refresh the order from FedEx tracking."""
    result = await orders.track(order_id, user)
    return {
        "success": True,
        "order": serialize_order(result["order"]),
        "tracking": result["tracking"],
    }


# ==================== Admin ====================


@router.get("/admin/all")
async def admin_list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: OrderStatus | None = Query(None),
    search: str | None = Query(None, description="Order number or customer email"),
    sort: str = Query("created_desc"),
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    result = await orders.admin_list(
        page=page, limit=limit, status=status, search=search, sort=sort
    )
    return {
        "success": True,
        "orders": [
            {
                **serialize_order(o, detailed=False),
                "customer": {"name": o.user.name, "email": o.user.email} if o.user else None,
            }
            for o in result["orders"]
        ],
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "stats": result["stats"],
    }


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    request: UpdateStatusRequest,
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order = await orders.update_status(order_id, request.status, admin, request.message)
    return {
        "success": True,
        "message": f"Order status updated to {order.status.value}",
        "order": serialize_order(order),
    }


@router.post("/{order_id}/shipping-updates")
async def add_shipping_update(
    order_id: int,
    request: ShippingUpdateRequest,
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order, added = await orders.add_shipping_update(
        order_id,
        request.message,
        status=request.status,
        location=request.location,
        event_code=request.event_code,
    )
    return {
        "success": True,
        "message": "Shipping update added" if added else "Duplicate update skipped",
        "added": added,
        "order": serialize_order(order),
    }


@router.put("/{order_id}/tracking")
async def set_tracking_number(
    order_id: int,
    request: TrackingNumberRequest,
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order = await orders.set_tracking_number(order_id, request.tracking_number)
    return {"success": True, "order": serialize_order(order)}

"""
Payment API Endpoints.

Razorpay checkout modal flow and Stripe payment intents / checkout sessions.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from artgallery.api.v1.deps import get_order_service
from artgallery.core.config import settings
from artgallery.core.security import get_current_user
from artgallery.models.shop import PaymentMethod
from artgallery.models.user import User
from artgallery.modules.shop.orders import OrderService, serialize_order

router = APIRouter()


# ==================== Schemas ====================


class OrderPaymentRequest(BaseModel):
    order_id: int


class VerifyPaymentRequest(BaseModel):
    order_id: int
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentFailedRequest(BaseModel):
    order_id: int
    error: dict[str, Any] | None = None


class CheckoutSessionRequest(BaseModel):
    order_id: int
    success_url: str | None = None
    cancel_url: str | None = None


# ==================== Razorpay ====================


@router.post("/create-order")
async def create_razorpay_order(
    request: OrderPaymentRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """Open a Razorpay order for the stored order total."""
    rp_order = await orders.create_razorpay_order(request.order_id, user)
    return {"success": True, **rp_order}


@router.post("/verify-payment")
async def verify_payment(
    request: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order = await orders.verify_razorpay_payment(
        request.order_id,
        user,
        request.razorpay_order_id,
        request.razorpay_payment_id,
        request.razorpay_signature,
    )
    return {
        "success": True,
        "message": "Payment verified successfully",
        "order": serialize_order(order),
    }


@router.post("/payment-failed")
async def payment_failed(
    request: PaymentFailedRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """Record a failed or abandoned checkout modal."""
    order = await orders.get_order_for_user(request.order_id, user)
    description = (request.error or {}).get("description")
    await orders.mark_failed(order, description)
    return {"success": True, "message": "Payment failure recorded"}


@router.get("/status/{order_id}")
async def payment_status(
    order_id: int,
    live: bool = False,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """Stored payment fields; ``live=true`` also asks Stripe for the intent state."""
    order = await orders.get_order_for_user(order_id, user)
    payment: dict[str, Any] = {
        "order_id": order.id,
        "order_number": order.order_number,
        "payment_status": order.payment_status.value,
        "payment_method": order.payment_method.value,
        "razorpay_order_id": order.razorpay_order_id,
        "razorpay_payment_id": order.razorpay_payment_id,
        "stripe_payment_intent_id": order.stripe_payment_intent_id,
        "paid_at": order.paid_at.isoformat() if order.paid_at else None,
        "total_amount": float(order.total_amount),
    }
    if live and order.stripe_payment_intent_id:
        payment["stripe"] = await orders.stripe.payment_status(order.stripe_payment_intent_id)

    return {"success": True, "payment": payment}


# ==================== Stripe ====================


@router.post("/stripe/create-intent")
async def create_payment_intent(
    request: OrderPaymentRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    order = await orders.get_payable_order(request.order_id, user)
    intent = await orders.stripe.create_payment_intent(order)

    order.stripe_payment_intent_id = intent["id"]
    order.payment_method = PaymentMethod.STRIPE
    await orders.db.flush()

    return {"success": True, **intent}


@router.post("/stripe/checkout-session")
async def create_checkout_session(
    request: CheckoutSessionRequest,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """
    Create Stripe checkout session.

    Returns URL to redirect user for payment.
    """
    order = await orders.get_payable_order(request.order_id, user)
    session = await orders.stripe.create_checkout_session(
        order,
        success_url=request.success_url
        or f"{settings.frontend_url}/orders/{order.id}?payment=success",
        cancel_url=request.cancel_url
        or f"{settings.frontend_url}/checkout?payment=cancelled",
        customer_email=user.email,
    )

    order.stripe_session_id = session["session_id"]
    order.payment_method = PaymentMethod.STRIPE
    await orders.db.flush()

    return {"success": True, **session}

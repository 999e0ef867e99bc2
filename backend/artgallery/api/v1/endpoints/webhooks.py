"""
Webhook Endpoints.

Handles incoming webhooks from payment gateways:
- Stripe (payment intents, checkout sessions, refunds)
- Razorpay (captured and failed payments)

Both verify the signature over the raw body and answer 400 when it does
not match. Events for unknown orders are acknowledged and ignored.
"""

from typing import Any

import orjson
from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger

from artgallery.api.v1.deps import get_order_service
from artgallery.models.shop import Order
from artgallery.modules.shop.orders import OrderService

router = APIRouter()


async def _stripe_order(orders: OrderService, obj: dict[str, Any]) -> Order | None:
    metadata = obj.get("metadata") or {}
    payment_intent = obj.get("payment_intent") or (
        obj.get("id") if obj.get("object") == "payment_intent" else None
    )

    order = None
    if metadata.get("order_id"):
        order = await orders.get_by_reference(order_number=metadata["order_id"])
    if order is None and payment_intent:
        order = await orders.get_by_reference(stripe_payment_intent_id=payment_intent)
    return order


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """
    Stripe Webhook Endpoint.

    Headers Required:
    - Stripe-Signature
    """
    body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing Stripe signature")

    event = await orders.stripe.verify_webhook(body, signature)
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid signature")

    event_type = event["type"]
    obj = event["data"]
    logger.info(f"Received Stripe webhook: {event_type}")

    order = await _stripe_order(orders, obj)
    if order is None:
        logger.warning(f"Stripe {event_type} for unknown order")
        return {"received": True}

    if event_type == "payment_intent.succeeded":
        await orders.mark_paid(order, stripe_payment_intent_id=obj.get("id"))
    elif event_type == "checkout.session.completed":
        await orders.mark_paid(
            order,
            stripe_session_id=obj.get("id"),
            stripe_payment_intent_id=obj.get("payment_intent")
            or order.stripe_payment_intent_id,
        )
    elif event_type == "payment_intent.payment_failed":
        error = obj.get("last_payment_error") or {}
        await orders.mark_failed(order, error.get("message"))
    elif event_type == "charge.refunded":
        await orders.mark_refunded(order)
    else:
        logger.debug(f"Unhandled Stripe event: {event_type}")

    return {"received": True}


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    """
    Razorpay Webhook Endpoint.

    Headers Required:
    - X-Razorpay-Signature: HMAC-SHA256 of the raw body
    """
    body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature")

    if not orders.razorpay.verify_webhook_signature(body, signature):
        logger.warning("Invalid Razorpay webhook signature")
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail="Invalid payload") from e

    event_type = payload.get("event", "")
    payment = ((payload.get("payload") or {}).get("payment") or {}).get("entity") or {}
    logger.info(f"Received Razorpay webhook: {event_type}")

    order = None
    if payment.get("order_id"):
        order = await orders.get_by_reference(razorpay_order_id=payment["order_id"])
    if order is None:
        logger.warning(f"Razorpay {event_type} for unknown order")
        return {"status": "ok"}

    if event_type == "payment.captured":
        await orders.mark_paid(order, razorpay_payment_id=payment.get("id"))
    elif event_type == "payment.failed":
        await orders.mark_failed(order, payment.get("error_description"))
    else:
        logger.debug(f"Unhandled Razorpay event: {event_type}")

    return {"status": "ok"}


@router.get("/health")
async def webhook_health() -> dict[str, str]:
    """Health check for webhook endpoints."""
    return {"status": "ok"}

"""
Stripe payments for storefront orders.

Payment intents and hosted checkout sessions are built from the amounts
stored on the order, never from the cart. Every Stripe object carries the
order number in its metadata so webhooks can find the order again.
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Any

import orjson
import stripe
from loguru import logger

from artgallery.core.errors import PaymentError
from artgallery.models.shop import Order
from artgallery.modules.payments.stripe_config import (
    StripeConfig,
    format_amount_for_display,
    format_amount_for_stripe,
    get_stripe_config,
)


def _stripe_call(action: str, method: Callable[..., Any], **params: Any) -> Any:
    """Run a Stripe API method, turning gateway failures into PaymentError."""
    try:
        return method(**params)
    except stripe.StripeError as e:
        logger.error(f"Stripe failed to {action}: {e}")
        raise PaymentError(f"Stripe error: {e.user_message or e}") from e


class StripePaymentService:
    """Stripe gateway bound to one StripeConfig."""

    def __init__(self, config: StripeConfig | None = None) -> None:
        self.config = config or get_stripe_config()
        stripe.api_key = self.config.secret_key

    # ==================== Checkout objects ====================

    def _line_items(self, order: Order) -> list[dict[str, Any]]:
        product_data_extra = {"tax_code": self.config.tax_code} if self.config.tax_enabled else {}
        return [
            {
                "price_data": {
                    "currency": self.config.currency,
                    "unit_amount": format_amount_for_stripe(item.price_at_order),
                    "product_data": {"name": item.name, **product_data_extra},
                },
                "quantity": item.quantity,
            }
            for item in order.items
        ]

    def _shipping_option(self, order: Order) -> dict[str, Any]:
        cents = (
            format_amount_for_stripe(order.shipping_cost)
            if order.shipping_cost is not None
            else self.config.default_shipping_rate
        )
        return {
            "shipping_rate_data": {
                "type": "fixed_amount",
                "display_name": order.fedex_service_type or "Standard shipping",
                "fixed_amount": {"amount": cents, "currency": self.config.currency},
            }
        }

    async def create_payment_intent(self, order: Order) -> dict[str, Any]:
        """
        Open a payment intent for the order's stored total.

        Returns:
            Intent id, client secret, status and the publishable key the
            browser needs to confirm the payment.
        """
        intent = _stripe_call(
            "create payment intent",
            stripe.PaymentIntent.create,
            amount=format_amount_for_stripe(order.total_amount),
            currency=self.config.currency,
            description=f"Order {order.order_number}",
            metadata=self.config.metadata(order.order_number, order.user_id),
            automatic_payment_methods={"enabled": True},
        )
        logger.info(f"Payment intent {intent.id} opened for {order.order_number}")

        return {
            "id": intent.id,
            "client_secret": intent.client_secret,
            "status": intent.status,
            "publishable_key": self.config.publishable_key,
        }

    async def create_checkout_session(
        self,
        order: Order,
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> dict[str, Any]:
        """
        Open a hosted checkout page for the order.

        Shipping is charged as a fixed-amount option and the coupon
        discount as a one-off Stripe coupon, so the page total equals the
        order total.
        """
        metadata = self.config.metadata(order.order_number, order.user_id)
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": self._line_items(order),
            "shipping_options": [self._shipping_option(order)],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email

        if order.discount_amount and order.discount_amount > 0:
            discount = _stripe_call(
                "create discount",
                stripe.Coupon.create,
                amount_off=format_amount_for_stripe(order.discount_amount),
                currency=self.config.currency,
                duration="once",
                name=order.coupon_code or "Discount",
            )
            params["discounts"] = [{"coupon": discount.id}]

        checkout = _stripe_call("create checkout session", stripe.checkout.Session.create, **params)
        logger.info(f"Checkout session {checkout.id} opened for {order.order_number}")

        return {"session_id": checkout.id, "url": checkout.url}

    # ==================== Webhooks ====================

    async def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any] | None:
        """Return ``{id, type, data}`` for a correctly signed event, else None."""
        if not self.config.webhook_secret:
            logger.warning("Stripe webhook received but no webhook secret is configured")
            return None

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.config.webhook_secret)
        except stripe.SignatureVerificationError:
            logger.warning("Stripe webhook signature mismatch")
            return None
        except ValueError as e:
            logger.error(f"Malformed Stripe webhook body: {e}")
            return None

        # Signature checked; hand the plain JSON object to the handlers
        body = orjson.loads(payload)
        return {"id": event.id, "type": body["type"], "data": body["data"]["object"]}

    # ==================== Refunds and status ====================

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: Decimal | None = None,
        reason: str = "requested_by_customer",
    ) -> dict[str, Any]:
        """Refund a captured intent; a None amount refunds it in full."""
        params: dict[str, Any] = {"payment_intent": payment_intent_id, "reason": reason}
        if amount:
            params["amount"] = format_amount_for_stripe(amount)

        refund = _stripe_call("refund payment", stripe.Refund.create, **params)
        logger.info(f"Refund {refund.id} ({refund.status}) for {payment_intent_id}")

        return {
            "id": refund.id,
            "status": refund.status,
            "amount": format_amount_for_display(refund.amount),
        }

    async def payment_status(self, payment_intent_id: str) -> dict[str, Any]:
        intent = _stripe_call(
            "retrieve payment intent", stripe.PaymentIntent.retrieve, id=payment_intent_id
        )
        return {
            "id": intent.id,
            "status": intent.status,
            "amount": format_amount_for_display(intent.amount),
            "currency": intent.currency,
        }


# Singleton instance
_stripe_service: StripePaymentService | None = None


def get_stripe_service() -> StripePaymentService:
    """Get or create Stripe service singleton."""
    global _stripe_service
    if _stripe_service is None:
        _stripe_service = StripePaymentService()
    return _stripe_service

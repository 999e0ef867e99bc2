"""
Razorpay integration.

Handles:
- Creating Razorpay orders for the checkout modal
- Checkout signature verification (HMAC-SHA256)
- Webhook signature verification
- Refunds

Razorpay API Documentation:
https://razorpay.com/docs/api/

Security Note:
Payment callbacks and webhooks MUST be verified before an order is marked
paid. Never trust the client's claim that a payment succeeded.
"""

import hashlib
import hmac
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx
from loguru import logger

from artgallery.core.config import settings
from artgallery.core.errors import PaymentError


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RazorpayClient:
    """
    Client for the Razorpay Orders and Payments APIs.

    Usage:
        razorpay = RazorpayClient()
        rp_order = await razorpay.create_order(amount=149900, receipt="receipt_ORD1234567")

        if razorpay.verify_payment_signature(order_id, payment_id, signature):
            ...
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.key_id = key_id if key_id is not None else settings.razorpay_key_id
        self.key_secret = key_secret if key_secret is not None else settings.razorpay_key_secret
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.razorpay_webhook_secret
        )
        self.currency = settings.razorpay_currency
        self._transport = transport

        if not self.key_id or not self.key_secret:
            logger.warning("Razorpay keys not configured")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=settings.razorpay_api_url,
            auth=(self.key_id, self.key_secret),
            timeout=15.0,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Razorpay HTTP error on {path}: {e.response.status_code}")
            description = _error_description(e.response)
            raise PaymentError(f"Razorpay error: {description}") from e
        except httpx.RequestError as e:
            logger.error(f"Razorpay request error: {e}")
            raise PaymentError("Razorpay is unreachable") from e

    async def create_order(
        self,
        amount: int,
        receipt: str,
        notes: dict[str, str] | None = None,
        currency: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a Razorpay order.

        Args:
            amount: Amount in the smallest currency unit (paise)
            receipt: Merchant receipt reference
            notes: Key/value notes stored with the order
            currency: Defaults to the configured Razorpay currency
        """
        return await self._post(
            "/orders",
            {
                "amount": amount,
                "currency": currency or self.currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )

    async def refund(self, payment_id: str, amount: int | None = None) -> dict[str, Any]:
        """Refund a captured payment, fully unless ``amount`` is given."""
        payload: dict[str, Any] = {}
        if amount is not None:
            payload["amount"] = amount
        return await self._post(f"/payments/{payment_id}/refund", payload)

    def verify_payment_signature(
        self,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        signature: str | None,
    ) -> bool:
        """Check the signature returned by the checkout modal."""
        if not signature or not self.key_secret:
            return False

        message = f"{razorpay_order_id}|{razorpay_payment_id}".encode("utf-8")
        expected = _hmac_sha256(self.key_secret, message)
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        """Check the X-Razorpay-Signature header against the raw body."""
        if not self.webhook_secret:
            logger.error("RAZORPAY_WEBHOOK_SECRET not configured")
            return False
        if not signature:
            logger.warning("Missing Razorpay-Signature header")
            return False

        expected = _hmac_sha256(self.webhook_secret, payload)
        return hmac.compare_digest(expected, signature)


def _error_description(response: httpx.Response) -> str:
    try:
        return response.json().get("error", {}).get("description") or response.text
    except ValueError:
        return response.text or f"HTTP {response.status_code}"


def amount_in_subunits(amount: Any) -> int:
    """Rupees to paise, rounded to the nearest unit."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# Singleton instance
_razorpay_client: RazorpayClient | None = None


def get_razorpay_client() -> RazorpayClient:
    """Get or create Razorpay client singleton."""
    global _razorpay_client
    if _razorpay_client is None:
        _razorpay_client = RazorpayClient()
    return _razorpay_client

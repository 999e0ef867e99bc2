"""Tests for the Razorpay client, Stripe configuration and the Stripe service."""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
import stripe

from artgallery.core.errors import PaymentError
from artgallery.models.shop import Order, OrderItem
from artgallery.modules.payments.razorpay import RazorpayClient, amount_in_subunits
from artgallery.modules.payments.stripe_config import (
    StripeConfig,
    format_amount_for_display,
    format_amount_for_stripe,
)
from artgallery.modules.payments.stripe_service import StripePaymentService


def _sign(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


@pytest.fixture
def razorpay():
    return RazorpayClient(key_id="rzp_test_key", key_secret="key-secret", webhook_secret="hook-secret")


class TestRazorpaySignatures:
    def test_valid_payment_signature(self, razorpay):
        signature = _sign("key-secret", b"order_123|pay_456")
        assert razorpay.verify_payment_signature("order_123", "pay_456", signature)

    def test_tampered_payment_signature(self, razorpay):
        signature = _sign("key-secret", b"order_123|pay_456")
        assert not razorpay.verify_payment_signature("order_123", "pay_789", signature)

    def test_missing_payment_signature(self, razorpay):
        assert not razorpay.verify_payment_signature("order_123", "pay_456", None)

    def test_webhook_signature(self, razorpay):
        body = b'{"event":"payment.captured"}'
        assert razorpay.verify_webhook_signature(body, _sign("hook-secret", body))
        assert not razorpay.verify_webhook_signature(body, _sign("other", body))
        assert not razorpay.verify_webhook_signature(body, None)

    def test_webhook_without_secret(self):
        client = RazorpayClient(key_id="k", key_secret="s", webhook_secret="")
        body = b"{}"
        assert not client.verify_webhook_signature(body, _sign("", body))


class TestRazorpayOrders:
    async def test_create_order(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "order_ABC", "amount": 149900, "status": "created"})

        client = RazorpayClient(
            key_id="rzp_test_key",
            key_secret="key-secret",
            webhook_secret="",
            transport=httpx.MockTransport(handler),
        )

        rp_order = await client.create_order(149900, "receipt_ORD1234567", notes={"order_id": "ORD1234567"})

        assert rp_order["id"] == "order_ABC"
        assert seen[0].url.path.endswith("/orders")
        body = json.loads(seen[0].content)
        assert body["amount"] == 149900
        assert body["receipt"] == "receipt_ORD1234567"
        assert body["notes"] == {"order_id": "ORD1234567"}
        assert seen[0].headers["Authorization"].startswith("Basic ")

    async def test_gateway_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"description": "Amount exceeds maximum"}})

        client = RazorpayClient(
            key_id="k", key_secret="s", webhook_secret="", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(PaymentError, match="Amount exceeds maximum") as exc_info:
            await client.create_order(100, "receipt_1")
        assert exc_info.value.status_code == 502

    def test_amount_in_subunits(self):
        assert amount_in_subunits("1499.005") == 149901
        assert amount_in_subunits(10) == 1000


class TestStripeConfig:
    def test_valid_keys(self):
        config = StripeConfig(secret_key="sk_test_abc", publishable_key="pk_test_abc", webhook_secret="whsec_1")
        result = config.validate()

        assert result["is_valid"] is True
        assert result["warnings"] == []
        assert result["is_test_mode"] is True

    def test_missing_webhook_secret_is_a_warning(self):
        config = StripeConfig(secret_key="sk_live_abc", publishable_key="pk_live_abc")
        result = config.validate()

        assert result["is_valid"] is True
        assert len(result["warnings"]) == 1
        assert config.is_live_mode

    def test_invalid_keys(self):
        result = StripeConfig(secret_key="abc", publishable_key="").validate()

        assert result["is_valid"] is False
        assert "STRIPE_SECRET_KEY appears invalid (should start with sk_)" in result["errors"]
        assert "STRIPE_PUBLISHABLE_KEY is not configured" in result["errors"]

    def test_metadata(self):
        assert StripeConfig().metadata("ORD1234567", 7) == {
            "order_id": "ORD1234567",
            "user_id": "7",
            "source": "artgallery_website",
            "version": "1.0",
        }

    def test_amount_helpers(self):
        assert format_amount_for_stripe(19.99) == 1999
        assert format_amount_for_stripe(0.005) == 1
        assert format_amount_for_display(1999) == "19.99"
        assert format_amount_for_display(1500) == "15.00"


class TestStripeService:
    @pytest.fixture
    def service(self):
        return StripePaymentService(
            StripeConfig(
                secret_key="sk_test_abc",
                publishable_key="pk_test_abc",
                webhook_secret="whsec_test",
            )
        )

    @pytest.fixture
    def order(self):
        return Order(
            order_number="ORD1234567",
            user_id=7,
            subtotal=Decimal("240.00"),
            shipping_cost=Decimal("15.00"),
            discount_amount=Decimal("24.00"),
            total_amount=Decimal("231.00"),
            coupon_code="SAVE10",
            fedex_service_type="FEDEX_GROUND",
            items=[
                OrderItem(name="Blue Horizon", quantity=2, price_at_order=Decimal("120.00")),
            ],
        )

    @pytest.fixture
    def calls(self, monkeypatch):
        calls: dict[str, dict] = {}

        def record(name, result):
            def fake(**params):
                calls[name] = params
                return result

            return fake

        monkeypatch.setattr(
            stripe.PaymentIntent,
            "create",
            record("intent", SimpleNamespace(id="pi_1", client_secret="pi_1_secret", status="requires_payment_method")),
        )
        monkeypatch.setattr(stripe.Coupon, "create", record("coupon", SimpleNamespace(id="co_1")))
        monkeypatch.setattr(
            stripe.checkout.Session,
            "create",
            record("session", SimpleNamespace(id="cs_1", url="https://checkout.stripe.com/c/cs_1")),
        )
        monkeypatch.setattr(
            stripe.Refund, "create", record("refund", SimpleNamespace(id="re_1", status="succeeded", amount=23100))
        )
        return calls

    async def test_payment_intent_uses_order_total(self, service, order, calls):
        intent = await service.create_payment_intent(order)

        assert intent["client_secret"] == "pi_1_secret"
        assert intent["publishable_key"] == "pk_test_abc"
        assert calls["intent"]["amount"] == 23100
        assert calls["intent"]["currency"] == "usd"
        assert calls["intent"]["metadata"]["order_id"] == "ORD1234567"

    async def test_checkout_session(self, service, order, calls):
        checkout = await service.create_checkout_session(
            order, "https://shop/success", "https://shop/cancel", customer_email="ada@example.com"
        )

        assert checkout == {"session_id": "cs_1", "url": "https://checkout.stripe.com/c/cs_1"}
        params = calls["session"]
        line = params["line_items"][0]
        assert line["quantity"] == 2
        assert line["price_data"]["unit_amount"] == 12000
        assert line["price_data"]["product_data"]["tax_code"] == "txcd_99999999"
        shipping = params["shipping_options"][0]["shipping_rate_data"]
        assert shipping["fixed_amount"]["amount"] == 1500
        assert shipping["display_name"] == "FEDEX_GROUND"
        assert params["discounts"] == [{"coupon": "co_1"}]
        assert calls["coupon"]["amount_off"] == 2400
        assert params["payment_intent_data"]["metadata"]["order_id"] == "ORD1234567"
        assert params["customer_email"] == "ada@example.com"

    async def test_checkout_without_discount(self, service, order, calls):
        order.discount_amount = Decimal("0")

        await service.create_checkout_session(order, "s", "c")

        assert "coupon" not in calls
        assert "discounts" not in calls["session"]

    async def test_gateway_error(self, service, order, monkeypatch):
        def declined(**params):
            raise stripe.CardError("Your card was declined.", None, "card_declined")

        monkeypatch.setattr(stripe.PaymentIntent, "create", declined)

        with pytest.raises(PaymentError, match="card was declined") as exc_info:
            await service.create_payment_intent(order)
        assert exc_info.value.status_code == 502

    async def test_refund(self, service, calls):
        refund = await service.create_refund("pi_1", amount=Decimal("231.00"))

        assert refund == {"id": "re_1", "status": "succeeded", "amount": "231.00"}
        assert calls["refund"] == {
            "payment_intent": "pi_1",
            "reason": "requested_by_customer",
            "amount": 23100,
        }

    async def test_webhook_signature(self, service):
        payload = json.dumps(
            {
                "id": "evt_1",
                "object": "event",
                "type": "payment_intent.succeeded",
                "data": {"object": {"id": "pi_1", "metadata": {"order_id": "ORD1234567"}}},
            }
        ).encode()
        timestamp = int(time.time())
        signature = _sign("whsec_test", f"{timestamp}.".encode() + payload)

        event = await service.verify_webhook(payload, f"t={timestamp},v1={signature}")

        assert event == {
            "id": "evt_1",
            "type": "payment_intent.succeeded",
            "data": {"id": "pi_1", "metadata": {"order_id": "ORD1234567"}},
        }

    async def test_webhook_bad_signature(self, service):
        payload = b'{"id": "evt_1", "object": "event"}'
        assert await service.verify_webhook(payload, f"t={int(time.time())},v1=deadbeef") is None

    async def test_webhook_without_secret(self):
        service = StripePaymentService(StripeConfig(secret_key="sk_test_abc"))
        assert await service.verify_webhook(b"{}", "t=1,v1=x") is None

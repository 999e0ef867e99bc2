"""Tests for checkout and the order lifecycle."""

import hashlib
import hmac
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from artgallery.core.errors import (
    CouponError,
    FedExAPIError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from artgallery.models.shop import (
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductStatus,
)
from artgallery.models.user import UserRole
from artgallery.modules.payments.razorpay import RazorpayClient
from artgallery.modules.shop.orders import (
    ORDER_PLACED_MESSAGE,
    PAYMENT_RECEIVED_MESSAGE,
    OrderService,
    serialize_order,
)


@pytest.fixture
def orders(session, cart):
    return OrderService(session, cart)


@pytest.fixture
async def buyer(make_user, make_address):
    user = await make_user()
    await make_address(user)
    return user


async def _fill_cart(cart, session, user, *lines):
    for product, quantity in lines:
        await cart.add_item(session, user.id, product.id, quantity)


def _fedex_quote(*rates):
    return {
        "rates": [
            {"service_type": service, "price": price, "transit_days": days, "is_estimated": False}
            for service, price, days in rates
        ],
        "currency": "USD",
        "from_warehouse": "Main Warehouse",
        "is_estimated": False,
    }


class TestCreateOrder:
    async def test_creates_order_from_cart(self, orders, cart, session, buyer, make_product, author):
        painting = await make_product(mrp_price=Decimal("60.00"), stock=3, author_id=author.id)
        print_ = await make_product(mrp_price=Decimal("25.50"), stock=10)
        await _fill_cart(cart, session, buyer, (painting, 2), (print_, 1))

        order = await orders.create_order(buyer)

        assert order.order_number.startswith("ORD")
        assert order.subtotal == Decimal("145.50")
        assert order.shipping_cost == Decimal("15.00")
        assert order.total_amount == Decimal("160.50")
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.shipping_address["zip_code"] == "10118"
        assert [item.quantity for item in order.items] == [2, 1]
        assert order.items[0].author == "Frida Painter"
        assert order.items[0].price_at_order == Decimal("60.00")

    async def test_reserves_stock_and_clears_cart(self, orders, cart, session, buyer, make_product):
        product = await make_product(stock=3)
        await _fill_cart(cart, session, buyer, (product, 2))

        await orders.create_order(buyer)

        assert product.stock == 1
        assert await cart.get_items(buyer.id) == []

    async def test_initial_shipping_update(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer)

        assert [u.message for u in order.shipping_updates] == [ORDER_PLACED_MESSAGE]

    async def test_free_shipping_above_threshold(self, orders, cart, session, buyer, make_product):
        product = await make_product(mrp_price=Decimal("450.00"))
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer)

        assert order.shipping_cost == Decimal("0.00")
        assert order.total_amount == Decimal("450.00")

    async def test_offer_price_is_charged(self, orders, cart, session, buyer, make_product):
        product = await make_product(
            mrp_price=Decimal("300.00"), discount_price=Decimal("180.00"), offer_active=True
        )
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer)

        assert order.subtotal == Decimal("180.00")
        assert order.items[0].price_at_order == Decimal("180.00")

    async def test_coupon_applied_and_counted(
        self, orders, cart, session, buyer, make_product, make_coupon
    ):
        coupon = await make_coupon("SAVE10")
        product = await make_product(mrp_price=Decimal("150.00"))
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer, coupon_code="save10")

        assert order.coupon_code == "SAVE10"
        assert order.discount_amount == Decimal("15.00")
        assert order.total_amount == Decimal("150.00")
        assert coupon.used_count == 1

    async def test_rejected_coupon_keeps_cart(
        self, orders, cart, session, buyer, make_product, make_coupon
    ):
        await make_coupon("BIG", min_order_amount=Decimal("500"))
        product = await make_product(stock=2)
        await _fill_cart(cart, session, buyer, (product, 1))

        with pytest.raises(CouponError):
            await orders.create_order(buyer, coupon_code="BIG")

        assert product.stock == 2
        assert len(await cart.get_items(buyer.id)) == 1

    async def test_empty_cart(self, orders, buyer):
        with pytest.raises(ValidationError, match="Cart is empty"):
            await orders.create_order(buyer)

    async def test_product_became_unavailable(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        product.status = ProductStatus.ARCHIVED
        await session.flush()

        with pytest.raises(ValidationError, match="no longer available"):
            await orders.create_order(buyer)

    async def test_insufficient_stock(self, orders, cart, session, buyer, make_product):
        product = await make_product(stock=2)
        await _fill_cart(cart, session, buyer, (product, 2))
        product.stock = 1
        await session.flush()

        with pytest.raises(ValidationError, match="Insufficient stock"):
            await orders.create_order(buyer)

    async def test_address_required(self, orders, cart, session, make_user, make_product):
        user = await make_user(email="nobody@example.com")
        product = await make_product()
        await _fill_cart(cart, session, user, (product, 1))

        with pytest.raises(ValidationError, match="Shipping address is required"):
            await orders.create_order(user)

    async def test_foreign_address(self, orders, cart, session, buyer, make_user, make_address, make_product):
        other = await make_user(email="other@example.com")
        address = await make_address(other)
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))

        with pytest.raises(NotFoundError):
            await orders.create_order(buyer, address_id=address.id)

    async def test_inline_shipping_address(self, orders, cart, session, make_user, make_product):
        user = await make_user(email="inline@example.com")
        product = await make_product()
        await _fill_cart(cart, session, user, (product, 1))

        address = {"street_line1": "1 Ocean Dr", "city": "Miami", "state_code": "FL", "zip_code": "33139"}
        order = await orders.create_order(user, shipping_address=address)

        assert order.shipping_address == address


class TestFedExShipping:
    async def test_selected_service_price(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.get_rates.return_value = _fedex_quote(
            ("FEDEX_GROUND", 14.2, 4), ("FEDEX_2_DAY", 38.75, 2)
        )
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product(mrp_price=Decimal("120.00"))
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer, fedex_service_type="FEDEX_2_DAY")

        assert order.shipping_cost == Decimal("38.75")
        assert order.fedex_service_type == "FEDEX_2_DAY"
        assert order.transit_days == "2"
        assert order.total_amount == Decimal("158.75")

    async def test_free_shipping_threshold_wins(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.get_rates.return_value = _fedex_quote(("FEDEX_2_DAY", 38.75, 2))
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product(mrp_price=Decimal("900.00"))
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer, fedex_service_type="FEDEX_2_DAY")

        assert order.shipping_cost == Decimal("0.00")

    async def test_quote_failure_falls_back_to_flat(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.get_rates.side_effect = FedExAPIError("Service unavailable")
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product(mrp_price=Decimal("50.00"))
        await _fill_cart(cart, session, buyer, (product, 1))

        order = await orders.create_order(buyer, fedex_service_type="FEDEX_GROUND")

        assert order.shipping_cost == Decimal("15.00")

    async def test_unquoted_service(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.get_rates.return_value = _fedex_quote(("FEDEX_GROUND", 14.2, 4))
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))

        with pytest.raises(ValidationError, match="FIRST_OVERNIGHT"):
            await orders.create_order(buyer, fedex_service_type="FIRST_OVERNIGHT")

    async def test_shipping_options(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.get_rates.return_value = _fedex_quote(("FEDEX_GROUND", 14.2, 4))
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product(mrp_price=Decimal("80.00"), weight=3.0)
        await _fill_cart(cart, session, buyer, (product, 2))

        options = await orders.shipping_options(buyer)

        assert options["subtotal"] == 160.0
        assert options["free_shipping"] is False
        assert options["fallback"]["price"] == 15.0
        assert options["rates"][0]["service_type"] == "FEDEX_GROUND"
        destination, packages = fedex.get_rates.await_args.args
        assert destination["zip_code"] == "10118"
        assert packages[0]["weight"] == 6

    async def test_shipping_options_propagates_fedex_errors(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.get_rates.side_effect = FedExAPIError({"errors": [{"code": "X"}]})
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))

        with pytest.raises(FedExAPIError):
            await orders.shipping_options(buyer)


class TestCancelOrder:
    async def test_cancel_restocks(self, orders, cart, session, buyer, make_product):
        product = await make_product(stock=4)
        await _fill_cart(cart, session, buyer, (product, 3))
        order = await orders.create_order(buyer)

        cancelled = await orders.cancel_order(order.id, buyer, reason="Changed my mind")

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancellation_reason == "Changed my mind"
        assert cancelled.cancelled_at is not None
        assert product.stock == 4
        assert cancelled.shipping_updates[-1].message == "Order cancelled: Changed my mind"
        assert cancelled.status_history[-1].status == "cancelled"

    async def test_cannot_cancel_shipped(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        order.status = OrderStatus.SHIPPED
        await session.flush()

        with pytest.raises(ValidationError, match="cannot be cancelled"):
            await orders.cancel_order(order.id, buyer)

    async def test_other_users_order(self, orders, cart, session, buyer, make_user, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        stranger = await make_user(email="stranger@example.com")

        with pytest.raises(PermissionDeniedError):
            await orders.cancel_order(order.id, stranger)

    async def test_paid_stripe_order_is_refunded(self, session, cart, buyer, make_product):
        stripe = AsyncMock()
        orders = OrderService(session, cart, stripe=stripe)
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.mark_paid(order, stripe_payment_intent_id="pi_123")

        cancelled = await orders.cancel_order(order.id, buyer)

        stripe.create_refund.assert_awaited_once_with("pi_123")
        assert cancelled.payment_status == PaymentStatus.REFUNDED


class TestAdmin:
    @pytest.fixture
    async def admin(self, make_user):
        return await make_user(email="admin@example.com", role=UserRole.ADMIN)

    @pytest.fixture
    async def order(self, orders, cart, session, buyer, make_product):
        product = await make_product(stock=5)
        await _fill_cart(cart, session, buyer, (product, 1))
        return await orders.create_order(buyer)

    async def test_update_status(self, orders, order, admin):
        updated = await orders.update_status(order.id, OrderStatus.PROCESSING, admin)

        assert updated.status == OrderStatus.PROCESSING
        assert updated.status_history[-1].changed_by == admin.id
        assert updated.shipping_updates[-1].message == (
            "Order is being processed and prepared for shipment"
        )

    async def test_same_status_rejected(self, orders, order, admin):
        with pytest.raises(ValidationError, match="already has status"):
            await orders.update_status(order.id, OrderStatus.PENDING, admin)

    async def test_admin_cancel_restocks(self, orders, order, admin, session):
        product_id = order.items[0].product_id
        await orders.update_status(order.id, OrderStatus.CANCELLED, admin, message="Out of stock")

        product = await session.get(Product, product_id)
        assert product.stock == 5
        assert order.cancellation_reason == "Out of stock"
        assert order.shipping_updates[-1].message == "Order cancelled: Out of stock"

    async def test_cancelled_order_is_final(self, orders, order, admin, session):
        product = await session.get(Product, order.items[0].product_id)
        await orders.update_status(order.id, OrderStatus.CANCELLED, admin)

        with pytest.raises(ValidationError, match="cannot change status"):
            await orders.update_status(order.id, OrderStatus.PROCESSING, admin)

        assert order.status == OrderStatus.CANCELLED
        assert product.stock == 5

    async def test_admin_cannot_cancel_delivered(self, orders, order, admin, session):
        product = await session.get(Product, order.items[0].product_id)
        await orders.update_status(order.id, OrderStatus.DELIVERED, admin)

        with pytest.raises(ValidationError, match="cannot be cancelled"):
            await orders.update_status(order.id, OrderStatus.CANCELLED, admin)

        assert order.status == OrderStatus.DELIVERED
        assert product.stock == 4

    async def test_admin_cancel_refunds_paid_order(self, session, cart, order, admin):
        stripe = AsyncMock()
        orders = OrderService(session, cart, stripe=stripe)
        await orders.mark_paid(order, stripe_payment_intent_id="pi_admin")

        await orders.update_status(order.id, OrderStatus.CANCELLED, admin, message="Damaged")

        stripe.create_refund.assert_awaited_once_with("pi_admin")
        assert order.payment_status == PaymentStatus.REFUNDED
        assert order.status == OrderStatus.CANCELLED

    async def test_shipping_update_deduplicated(self, orders, order):
        _, added = await orders.add_shipping_update(order.id, "Left the studio", event_code="PU")
        _, again = await orders.add_shipping_update(order.id, "Left the studio", event_code="PU")

        assert added is True
        assert again is False

    async def test_tracking_number(self, orders, order):
        updated = await orders.set_tracking_number(order.id, " 794600000000 ")
        assert updated.tracking_number == "794600000000"
        assert updated.tracking_url.endswith("trknbr=794600000000")

    async def test_admin_list(self, orders, order, buyer):
        await orders.mark_paid(order, razorpay_payment_id="pay_1")

        listing = await orders.admin_list(search="buyer@")

        assert listing["total"] == 1
        assert listing["orders"][0].id == order.id
        assert listing["stats"]["total_revenue"] == float(order.total_amount)
        assert listing["stats"]["average_order_value"] == float(order.total_amount)

    async def test_admin_list_filters_status(self, orders, order):
        listing = await orders.admin_list(status=OrderStatus.DELIVERED)
        assert listing["total"] == 0
        assert listing["orders"] == []


class TestTracking:
    async def test_track_adds_events_and_status(self, session, cart, buyer, make_product):
        fedex = AsyncMock()
        fedex.track.return_value = {
            "order_status": "shipped",
            "is_mock": False,
            "events": [
                {
                    "timestamp": "2024-06-02T09:00:00Z",
                    "event_type": "IT",
                    "description": "In transit to destination",
                    "location": "Memphis, TN",
                },
                {
                    "timestamp": "2024-06-01T09:00:00-05:00",
                    "event_type": "PU",
                    "description": "Picked up",
                    "location": "Collierville, TN",
                },
            ],
        }
        orders = OrderService(session, cart, fedex=fedex)
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.set_tracking_number(order.id, "794600000000")

        result = await orders.track(order.id, buyer)
        again = await orders.track(order.id, buyer)

        order = result["order"]
        assert order.status == OrderStatus.SHIPPED
        codes = [u.event_code for u in order.shipping_updates]
        assert codes == [None, "PU", "IT"]
        assert order.shipping_updates[1].timestamp.hour == 14
        assert again["order"] is order

    async def test_track_without_number(self, session, cart, buyer, make_product):
        orders = OrderService(session, cart, fedex=AsyncMock())
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)

        with pytest.raises(ValidationError, match="no tracking number"):
            await orders.track(order.id, buyer)


class TestPayments:
    async def test_mark_paid_confirms_order(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)

        assert await orders.mark_paid(order, stripe_payment_intent_id="pi_1") is True
        assert await orders.mark_paid(order, stripe_payment_intent_id="pi_1") is False

        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.CONFIRMED
        assert order.paid_at is not None
        assert order.stripe_payment_intent_id == "pi_1"
        assert order.shipping_updates[-1].message == PAYMENT_RECEIVED_MESSAGE

    async def test_mark_failed_only_pending(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)

        assert await orders.mark_failed(order, "Card declined") is True
        assert order.payment_status == PaymentStatus.FAILED
        assert "Card declined" in order.shipping_updates[-1].message
        assert await orders.mark_failed(order) is False

    async def test_payment_for_cancelled_order_is_refunded(self, session, cart, buyer, make_product):
        stripe = AsyncMock()
        orders = OrderService(session, cart, stripe=stripe)
        product = await make_product(stock=2)
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.cancel_order(order.id, buyer)

        assert await orders.mark_paid(order, stripe_payment_intent_id="pi_late") is False

        stripe.create_refund.assert_awaited_once_with("pi_late")
        assert order.status == OrderStatus.CANCELLED
        assert order.payment_status == PaymentStatus.REFUNDED
        assert product.stock == 2

        # Redelivered webhook
        assert await orders.mark_paid(order, stripe_payment_intent_id="pi_late") is False
        stripe.create_refund.assert_awaited_once()

    async def test_payable_order(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)

        assert (await orders.get_payable_order(order.id, buyer)).id == order.id

        order.payment_status = PaymentStatus.FAILED
        assert (await orders.get_payable_order(order.id, buyer)).id == order.id

    async def test_cancelled_order_not_payable(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.cancel_order(order.id, buyer)

        with pytest.raises(ValidationError, match="cancelled"):
            await orders.get_payable_order(order.id, buyer)

    async def test_refunded_order_not_payable(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.mark_paid(order)
        await orders.mark_refunded(order)

        with pytest.raises(ValidationError, match="refunded"):
            await orders.get_payable_order(order.id, buyer)

    async def test_paid_order_not_payable(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.mark_paid(order)

        with pytest.raises(ValidationError, match="already paid"):
            await orders.get_payable_order(order.id, buyer)

    async def test_mark_refunded(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        await orders.mark_paid(order)

        await orders.mark_refunded(order)

        assert order.payment_status == PaymentStatus.REFUNDED
        assert order.status == OrderStatus.REFUNDED

    async def test_find_by_reference(self, orders, cart, session, buyer, make_product):
        product = await make_product()
        await _fill_cart(cart, session, buyer, (product, 1))
        order = await orders.create_order(buyer)
        order.razorpay_order_id = "order_RP1"
        await session.flush()

        assert await orders.get_by_reference(order_number=order.order_number) is order
        assert await orders.get_by_reference(razorpay_order_id="order_RP1") is order
        assert await orders.get_by_reference(stripe_payment_intent_id="pi_none") is None
        assert await orders.get_by_reference() is None


class TestRazorpayCheckout:
    @pytest.fixture
    def razorpay(self):
        client = RazorpayClient(key_id="rzp_test_key", key_secret="key-secret", webhook_secret="")
        client.create_order = AsyncMock(
            return_value={"id": "order_RP9", "amount": 16050, "currency": "INR"}
        )
        client.refund = AsyncMock(return_value={"id": "rfnd_1", "status": "processed"})
        return client

    @pytest.fixture
    async def order(self, session, cart, buyer, make_product, razorpay):
        orders = OrderService(session, cart, razorpay=razorpay)
        product = await make_product(mrp_price=Decimal("145.50"))
        await _fill_cart(cart, session, buyer, (product, 1))
        return await orders.create_order(buyer)

    async def test_create_razorpay_order(self, session, cart, buyer, order, razorpay):
        orders = OrderService(session, cart, razorpay=razorpay)

        checkout = await orders.create_razorpay_order(order.id, buyer)

        razorpay.create_order.assert_awaited_once()
        assert razorpay.create_order.await_args.kwargs["amount"] == 16050
        assert checkout["id"] == "order_RP9"
        assert checkout["key"] == "rzp_test_key"
        assert order.razorpay_order_id == "order_RP9"

    async def test_verify_payment(self, session, cart, buyer, order, razorpay):
        orders = OrderService(session, cart, razorpay=razorpay)
        await orders.create_razorpay_order(order.id, buyer)
        signature = hmac.new(b"key-secret", b"order_RP9|pay_77", hashlib.sha256).hexdigest()

        paid = await orders.verify_razorpay_payment(order.id, buyer, "order_RP9", "pay_77", signature)

        assert paid.payment_status == PaymentStatus.PAID
        assert paid.razorpay_payment_id == "pay_77"

    async def test_signature_mismatch_marks_failed(self, session, cart, buyer, order, razorpay):
        orders = OrderService(session, cart, razorpay=razorpay)
        await orders.create_razorpay_order(order.id, buyer)

        with pytest.raises(ValidationError, match="Payment verification failed"):
            await orders.verify_razorpay_payment(order.id, buyer, "order_RP9", "pay_77", "forged")

        assert order.payment_status == PaymentStatus.FAILED

    async def test_cancelled_order_cannot_open_checkout(self, session, cart, buyer, order, razorpay):
        orders = OrderService(session, cart, razorpay=razorpay)
        await orders.cancel_order(order.id, buyer)

        with pytest.raises(ValidationError, match="cancelled"):
            await orders.create_razorpay_order(order.id, buyer)

        razorpay.create_order.assert_not_awaited()

    async def test_payment_verified_after_cancel_is_refunded(
        self, session, cart, buyer, order, razorpay
    ):
        orders = OrderService(session, cart, razorpay=razorpay)
        await orders.create_razorpay_order(order.id, buyer)
        await orders.cancel_order(order.id, buyer)
        product = await session.get(Product, order.items[0].product_id)
        signature = hmac.new(b"key-secret", b"order_RP9|pay_77", hashlib.sha256).hexdigest()

        with pytest.raises(ValidationError, match="refunded"):
            await orders.verify_razorpay_payment(order.id, buyer, "order_RP9", "pay_77", signature)

        razorpay.refund.assert_awaited_once_with("pay_77")
        assert order.status == OrderStatus.CANCELLED
        assert order.payment_status == PaymentStatus.REFUNDED
        assert product.stock == 5

    async def test_order_reference_mismatch(self, session, cart, buyer, order, razorpay):
        orders = OrderService(session, cart, razorpay=razorpay)
        await orders.create_razorpay_order(order.id, buyer)

        with pytest.raises(ValidationError, match="does not match"):
            await orders.verify_razorpay_payment(order.id, buyer, "order_OTHER", "pay_77", "sig")


def test_serialize_order_summary():
    order = Order(
        id=1,
        order_number="ORD1234567",
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_method=PaymentMethod.STRIPE,
        subtotal=Decimal("10.00"),
        shipping_cost=Decimal("15.00"),
        discount_amount=Decimal("0.00"),
        total_amount=Decimal("25.00"),
        items=[],
    )
    data = serialize_order(order, detailed=False)

    assert data["order_number"] == "ORD1234567"
    assert data["total_amount"] == 25.0
    assert data["items_count"] == 0
    assert data["can_be_cancelled"] is True
    assert "items" not in data

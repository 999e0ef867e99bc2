"""
Order Service - Checkout and order lifecycle.

Handles:
- Order creation from the server-held cart
- Shipping cost (FedEx quote or flat rule) and coupon discounts
- Cancellation with restocking and refunds
- Admin status changes, shipping updates and tracking
- Payment outcomes reported by the gateways
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from artgallery.core.errors import (
    FedExAPIError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from artgallery.models.shop import (
    Coupon,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    fallback_order_number,
    generate_order_number,
)
from artgallery.models.user import Address, User
from artgallery.modules.fedex.client import FedExClient
from artgallery.modules.fedex.config import get_service_info
from artgallery.modules.notifications.mailer import Mailer
from artgallery.modules.payments.razorpay import RazorpayClient, amount_in_subunits
from artgallery.modules.payments.stripe_service import StripePaymentService
from artgallery.modules.shop.cart import CartService
from artgallery.modules.shop.pricing import (
    checkout_totals,
    compute_coupon_discount,
    current_price,
    flat_shipping_cost,
    select_shipping_rate,
    to_money,
)

ORDER_PLACED_MESSAGE = "Order placed successfully"
PAYMENT_RECEIVED_MESSAGE = "Payment received. Order confirmed and being processed."

# Shipping update appended automatically when an admin changes the status
STATUS_MESSAGES = {
    OrderStatus.CONFIRMED: "Order has been confirmed and is being prepared for processing",
    OrderStatus.PROCESSING: "Order is being processed and prepared for shipment",
    OrderStatus.READY_TO_SHIP: "Order is packed and ready to ship",
    OrderStatus.SHIPPED: "Order has been shipped and is on its way to you",
    OrderStatus.OUT_FOR_DELIVERY: "Order is out for delivery",
    OrderStatus.DELIVERED: "Order has been successfully delivered",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.RETURNED: "Order has been returned",
    OrderStatus.REFUNDED: "Order has been refunded",
}

ADMIN_SORTS = {
    "total_asc": Order.total_amount.asc(),
    "total_desc": Order.total_amount.desc(),
    "created_asc": Order.created_at.asc(),
    "created_desc": Order.created_at.desc(),
}


def _order_query():
    return select(Order).options(
        selectinload(Order.items),
        selectinload(Order.shipping_updates),
        selectinload(Order.status_history),
        selectinload(Order.user),
    )


def _naive_utc(value: str | None) -> datetime:
    """FedEx ISO timestamp to naive UTC; now when missing or malformed."""
    if not value:
        return datetime.utcnow()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.utcnow()
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class OrderService:
    """
    Service for placing and managing orders.

    Usage:
        orders = OrderService(db, cart, fedex=fedex, mailer=mailer)
        order = await orders.create_order(user, address_id=1)
    """

    def __init__(
        self,
        db: AsyncSession,
        cart: CartService,
        fedex: FedExClient | None = None,
        mailer: Mailer | None = None,
        stripe: StripePaymentService | None = None,
        razorpay: RazorpayClient | None = None,
    ) -> None:
        self.db = db
        self.cart = cart
        self.fedex = fedex
        self.mailer = mailer
        self.stripe = stripe
        self.razorpay = razorpay

    # ==================== Lookup ====================

    async def get_order(self, order_id: int) -> Order:
        result = await self.db.execute(_order_query().where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def get_order_for_user(self, order_id: int, user: User) -> Order:
        """Fetch an order the user owns, or any order for admins."""
        order = await self.get_order(order_id)
        if order.user_id != user.id and not user.is_admin:
            raise PermissionDeniedError("Not authorized to access this order")
        return order

    async def get_by_reference(
        self,
        order_number: str | None = None,
        razorpay_order_id: str | None = None,
        stripe_payment_intent_id: str | None = None,
    ) -> Order | None:
        """Find an order by a gateway reference."""
        query = _order_query()
        if order_number:
            query = query.where(Order.order_number == order_number)
        elif razorpay_order_id:
            query = query.where(Order.razorpay_order_id == razorpay_order_id)
        elif stripe_payment_intent_id:
            query = query.where(Order.stripe_payment_intent_id == stripe_payment_intent_id)
        else:
            return None
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_user_orders(self, user_id: int) -> list[Order]:
        query = (
            _order_query()
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== Checkout ====================

    async def _new_order_number(self) -> str:
        for _ in range(10):
            candidate = generate_order_number()
            taken = await self.db.scalar(
                select(Order.id).where(Order.order_number == candidate)
            )
            if not taken:
                return candidate
        return fallback_order_number()

    async def _resolve_address(
        self,
        user: User,
        address_id: int | None,
        address: dict[str, Any] | None,
    ) -> dict[str, Any]:
        if address_id is not None:
            saved = await self.db.scalar(
                select(Address).where(Address.id == address_id, Address.user_id == user.id)
            )
            if not saved:
                raise NotFoundError("Shipping address not found")
            return saved.to_shipping_dict()

        if address:
            return address

        default = await self.db.scalar(
            select(Address).where(Address.user_id == user.id, Address.is_default.is_(True))
        )
        if not default:
            raise ValidationError("Shipping address is required")
        return default.to_shipping_dict()

    async def get_coupon(self, code: str) -> Coupon | None:
        return await self.db.scalar(select(Coupon).where(Coupon.code == code.strip().upper()))

    async def _load_cart_products(
        self,
        user_id: int,
        lock: bool = True,
    ) -> list[tuple[Product, int]]:
        """Cart lines with their product rows, validated for availability."""
        items = await self.cart.get_items(user_id)
        if not items:
            raise ValidationError("Cart is empty")

        ids = [item["product_id"] for item in items]
        query = select(Product).options(selectinload(Product.author)).where(Product.id.in_(ids))
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        products = {product.id: product for product in result.scalars().all()}

        lines = []
        for item in items:
            product = products.get(item["product_id"])
            if not product or not product.is_active:
                raise ValidationError("A product in your cart is no longer available")
            if product.stock < item["quantity"]:
                raise ValidationError(f"Insufficient stock for {product.name}")
            lines.append((product, item["quantity"]))
        return lines

    async def quote_shipping(
        self,
        lines: list[tuple[Product, int]],
        destination: dict[str, Any],
        subtotal: Decimal,
        service_type: str | None,
    ) -> tuple[Decimal, str | None, str | None]:
        """
        Shipping cost for an order.

        Returns:
            (cost, fedex service type, transit days)
        """
        if not service_type or self.fedex is None:
            return flat_shipping_cost(subtotal), service_type, None

        packages = [product.fedex_package(quantity) for product, quantity in lines]
        try:
            quote = await self.fedex.get_rates(destination, packages)
        except FedExAPIError as e:
            logger.warning(f"FedEx quote failed, using flat shipping: {e}")
            return flat_shipping_cost(subtotal), service_type, None

        rate = select_shipping_rate(quote["rates"], service_type)
        transit = rate.get("transit_days")
        transit_days = str(transit) if transit else get_service_info(service_type).transit_days

        # Free-shipping threshold applies to every service
        if flat_shipping_cost(subtotal) == 0:
            return Decimal("0.00"), service_type, transit_days
        return to_money(rate["price"]), service_type, transit_days

    async def shipping_options(
        self,
        user: User,
        address_id: int | None = None,
        shipping_address: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        FedEx quotes for the current cart plus the flat-rate option.

        Raises:
            FedExAPIError: FedEx could not quote the shipment
        """
        lines = await self._load_cart_products(user.id, lock=False)
        destination = await self._resolve_address(user, address_id, shipping_address)
        subtotal = to_money(
            sum((current_price(product) * quantity for product, quantity in lines), Decimal("0"))
        )
        flat = flat_shipping_cost(subtotal)

        result: dict[str, Any] = {
            "subtotal": float(subtotal),
            "free_shipping": flat == 0,
            "fallback": {
                "service_type": None,
                "service_name": "Standard Shipping",
                "price": float(flat),
                "is_flat_rate": True,
            },
            "rates": [],
            "from_warehouse": None,
            "is_estimated": False,
        }
        if self.fedex is None:
            return result

        packages = [product.fedex_package(quantity) for product, quantity in lines]
        quote = await self.fedex.get_rates(destination, packages)
        result.update(
            rates=quote["rates"],
            from_warehouse=quote["from_warehouse"],
            is_estimated=quote["is_estimated"],
        )
        return result

    async def create_order(
        self,
        user: User,
        address_id: int | None = None,
        shipping_address: dict[str, Any] | None = None,
        shipping_method: str = "ground",
        fedex_service_type: str | None = None,
        coupon_code: str | None = None,
        payment_method: PaymentMethod = PaymentMethod.RAZORPAY,
        notes: str | None = None,
        is_gift: bool = False,
        gift_message: str | None = None,
    ) -> Order:
        """
        Turn the user's cart into an order.

        Prices are taken from the catalog at this moment, stock is reserved
        and the cart is cleared.

        Raises:
            ValidationError: Empty cart, unavailable product or missing address
            CouponError: Coupon rejected
        """
        lines = await self._load_cart_products(user.id)
        destination = await self._resolve_address(user, address_id, shipping_address)

        subtotal = sum(
            (current_price(product) * quantity for product, quantity in lines),
            Decimal("0"),
        )

        coupon = None
        discount = Decimal("0")
        if coupon_code:
            coupon = await self.get_coupon(coupon_code)
            discount = compute_coupon_discount(coupon, subtotal)

        shipping, service_type, transit_days = await self.quote_shipping(
            lines, destination, subtotal, fedex_service_type
        )
        totals = checkout_totals(subtotal, shipping, discount)

        order = Order(
            order_number=await self._new_order_number(),
            user_id=user.id,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            subtotal=totals["subtotal"],
            shipping_cost=totals["shipping"],
            discount_amount=totals["discount"],
            coupon_code=coupon.code if coupon else None,
            total_amount=totals["total"],
            shipping_address=destination,
            shipping_method=shipping_method,
            fedex_service_type=service_type,
            transit_days=transit_days,
            notes=notes,
            is_gift=is_gift,
            gift_message=gift_message,
            items=[
                OrderItem(
                    product_id=product.id,
                    name=product.name,
                    image=product.images[0] if product.images else None,
                    author=product.author.name if product.author else None,
                    medium=product.medium,
                    quantity=quantity,
                    price_at_order=current_price(product),
                )
                for product, quantity in lines
            ],
            shipping_updates=[],
            status_history=[],
        )
        order.add_shipping_update(OrderStatus.PENDING.value, ORDER_PLACED_MESSAGE)

        for product, quantity in lines:
            product.stock -= quantity
        if coupon:
            coupon.used_count = (coupon.used_count or 0) + 1

        self.db.add(order)
        await self.db.flush()

        await self.cart.clear(user.id)
        logger.info(f"Order {order.order_number} created for user {user.id}: {order.total_amount}")

        if self.mailer:
            await self.mailer.send_order_confirmation(order, user.email, user.name)

        return order

    # ==================== Cancellation ====================

    async def _restock(self, order: Order) -> None:
        ids = [item.product_id for item in order.items if item.product_id]
        if not ids:
            return
        result = await self.db.execute(select(Product).where(Product.id.in_(ids)))
        products = {product.id: product for product in result.scalars().all()}
        for item in order.items:
            product = products.get(item.product_id)
            if product:
                product.stock += item.quantity

    async def _refund(self, order: Order) -> None:
        if order.payment_status != PaymentStatus.PAID:
            return

        if order.stripe_payment_intent_id and self.stripe:
            await self.stripe.create_refund(order.stripe_payment_intent_id)
        elif order.razorpay_payment_id and self.razorpay:
            await self.razorpay.refund(order.razorpay_payment_id)
        else:
            logger.warning(f"No gateway refund available for order {order.order_number}")
            return

        order.payment_status = PaymentStatus.REFUNDED
        logger.info(f"Refunded order {order.order_number}")

    async def _cancel(self, order: Order, reason: str | None, changed_by: int | None) -> None:
        if not order.can_be_cancelled:
            raise ValidationError(f"Order cannot be cancelled in status {order.status.value}")

        await self._refund(order)
        await self._restock(order)

        order.update_status(OrderStatus.CANCELLED, note=reason, changed_by=changed_by)
        order.cancelled_at = datetime.utcnow()
        order.cancellation_reason = reason
        order.add_shipping_update(
            OrderStatus.CANCELLED.value,
            f"Order cancelled: {reason}" if reason else STATUS_MESSAGES[OrderStatus.CANCELLED],
        )

    async def cancel_order(
        self,
        order_id: int,
        user: User,
        reason: str | None = None,
    ) -> Order:
        """Cancel an order that has not shipped yet."""
        order = await self.get_order_for_user(order_id, user)
        await self._cancel(order, reason, user.id)
        await self.db.flush()
        logger.info(f"Order {order.order_number} cancelled by user {user.id}")
        return order

    # ==================== Admin ====================

    async def admin_list(
        self,
        page: int = 1,
        limit: int = 20,
        status: OrderStatus | None = None,
        search: str | None = None,
        sort: str = "created_desc",
    ) -> dict[str, Any]:
        """Paginated orders with revenue statistics for the filter."""
        filters = []
        if status:
            filters.append(Order.status == status)
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    Order.order_number.ilike(pattern),
                    User.email.ilike(pattern),
                    User.name.ilike(pattern),
                )
            )

        query = (
            _order_query()
            .join(User, Order.user_id == User.id)
            .where(*filters)
            .order_by(ADMIN_SORTS.get(sort, ADMIN_SORTS["created_desc"]), Order.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.db.execute(query)
        orders = list(result.scalars().all())

        stats_query = (
            select(
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0),
            )
            .join(User, Order.user_id == User.id)
            .where(*filters)
        )
        total, _ = (await self.db.execute(stats_query)).one()

        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Order.total_amount), 0))
            .join(User, Order.user_id == User.id)
            .where(*filters, Order.payment_status == PaymentStatus.PAID)
        )
        paid_count = await self.db.scalar(
            select(func.count(Order.id))
            .join(User, Order.user_id == User.id)
            .where(*filters, Order.payment_status == PaymentStatus.PAID)
        )

        revenue = to_money(revenue or 0)
        return {
            "orders": orders,
            "total": total,
            "page": page,
            "total_pages": (total + limit - 1) // limit if limit else 0,
            "stats": {
                "total_orders": total,
                "total_revenue": float(revenue),
                "average_order_value": float(to_money(revenue / paid_count)) if paid_count else 0.0,
            },
        }

    async def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        admin: User,
        message: str | None = None,
    ) -> Order:
        """
        Change an order's status as an admin.

        Records the change in the history and appends the matching customer
        message as a shipping update. Cancelling goes through the same
        refund and restock path as a customer cancellation, and a cancelled
        order is final.
        """
        order = await self.get_order(order_id)
        previous = order.status

        if status == previous:
            raise ValidationError(f"Order already has status {status.value}")
        if previous == OrderStatus.CANCELLED:
            raise ValidationError("Cancelled orders cannot change status")

        if status == OrderStatus.CANCELLED:
            await self._cancel(order, message, admin.id)
        else:
            order.update_status(status, note=message, changed_by=admin.id)
            text = message or STATUS_MESSAGES.get(status)
            if text:
                order.add_shipping_update(status.value, text)

        await self.db.flush()
        logger.info(f"Order {order.order_number}: {previous.value} -> {status.value}")
        return order

    async def add_shipping_update(
        self,
        order_id: int,
        message: str,
        status: str | None = None,
        location: str | None = None,
        event_code: str | None = None,
    ) -> tuple[Order, bool]:
        order = await self.get_order(order_id)
        added = order.add_shipping_update(
            status or order.status.value,
            message,
            location=location,
            event_code=event_code,
        )
        await self.db.flush()
        return order, added

    async def set_tracking_number(self, order_id: int, tracking_number: str) -> Order:
        order = await self.get_order(order_id)
        order.tracking_number = tracking_number.strip()
        await self.db.flush()
        return order

    # ==================== Tracking ====================

    async def track(self, order_id: int, user: User) -> dict[str, Any]:
        """
        Refresh an order from FedEx tracking.

        New scan events become shipping updates and the order status follows
        the FedEx status.
        """
        order = await self.get_order_for_user(order_id, user)
        if not order.tracking_number:
            raise ValidationError("Order has no tracking number yet")
        if self.fedex is None:
            raise ValidationError("Tracking is not available")

        tracking = await self.fedex.track(order.tracking_number)

        seen = {(u.event_code, u.message, u.location) for u in order.shipping_updates}
        for event in reversed(tracking["events"]):
            key = (event["event_type"], event["description"], event["location"])
            if key in seen:
                continue
            seen.add(key)
            order.add_shipping_update(
                tracking["order_status"],
                event["description"],
                location=event["location"],
                event_code=event["event_type"],
                timestamp=_naive_utc(event["timestamp"]),
            )

        new_status = OrderStatus(tracking["order_status"])
        if not tracking.get("is_mock") and order.status not in (
            OrderStatus.CANCELLED,
            OrderStatus.REFUNDED,
        ):
            order.update_status(new_status, note="FedEx tracking update")

        await self.db.flush()
        return {"order": order, "tracking": tracking}

    # ==================== Payments ====================

    async def get_payable_order(self, order_id: int, user: User) -> Order:
        """
        Load an order the user may still pay for.

        Raises:
            PermissionDeniedError: Not the user's order
            ValidationError: Cancelled, already paid or refunded
        """
        order = await self.get_order(order_id)
        if order.user_id != user.id:
            raise PermissionDeniedError("Not authorized to pay for this order")
        if order.status == OrderStatus.CANCELLED:
            raise ValidationError("Order has been cancelled")
        if order.payment_status == PaymentStatus.PAID:
            raise ValidationError("Order is already paid")
        if order.payment_status not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
            raise ValidationError(f"Order payment is {order.payment_status.value}")
        return order

    async def mark_paid(self, order: Order, **references: Any) -> bool:
        """
        Record a successful payment.

        A payment that lands on a cancelled order is refunded instead of
        confirming the order.

        Returns:
            False if the order was already paid or refunded, or had been
            cancelled
        """
        if order.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            return False

        for field, value in references.items():
            setattr(order, field, value)

        order.payment_status = PaymentStatus.PAID
        order.paid_at = datetime.utcnow()

        if order.status == OrderStatus.CANCELLED:
            logger.warning(f"Payment received for cancelled order {order.order_number}; refunding")
            await self._refund(order)
            await self.db.flush()
            return False

        if order.status == OrderStatus.PENDING:
            order.update_status(OrderStatus.CONFIRMED, note="Payment received")
        order.add_shipping_update(OrderStatus.CONFIRMED.value, PAYMENT_RECEIVED_MESSAGE)
        await self.db.flush()

        logger.info(f"Order {order.order_number} paid")
        if self.mailer and order.user:
            await self.mailer.send_payment_confirmation(order, order.user.email, order.user.name)
        return True

    async def mark_failed(self, order: Order, description: str | None = None) -> bool:
        """Record a failed or abandoned payment for a pending order."""
        if order.payment_status != PaymentStatus.PENDING:
            return False

        order.payment_status = PaymentStatus.FAILED
        order.add_shipping_update(
            order.status.value,
            f"Payment failed or was cancelled by user: {description or 'User closed modal'}",
        )
        await self.db.flush()
        logger.warning(f"Payment failed for order {order.order_number}")
        return True

    async def mark_refunded(self, order: Order) -> None:
        order.payment_status = PaymentStatus.REFUNDED
        order.update_status(OrderStatus.REFUNDED, note="Refund issued")
        order.add_shipping_update(OrderStatus.REFUNDED.value, STATUS_MESSAGES[OrderStatus.REFUNDED])
        await self.db.flush()

    # ==================== Razorpay ====================

    async def create_razorpay_order(self, order_id: int, user: User) -> dict[str, Any]:
        """Open a Razorpay order for the checkout modal."""
        order = await self.get_payable_order(order_id, user)

        rp_order = await self.razorpay.create_order(
            amount=amount_in_subunits(order.total_amount),
            receipt=f"receipt_{order.order_number}",
            notes={"order_id": str(order.id), "user_id": str(user.id)},
        )
        order.razorpay_order_id = rp_order["id"]
        order.payment_method = PaymentMethod.RAZORPAY
        await self.db.flush()

        return {
            "id": rp_order["id"],
            "amount": rp_order["amount"],
            "currency": rp_order["currency"],
            "key": self.razorpay.key_id,
            "order_id": order.id,
            "order_number": order.order_number,
        }

    async def verify_razorpay_payment(
        self,
        order_id: int,
        user: User,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        razorpay_signature: str,
    ) -> Order:
        """
        Confirm a payment reported by the checkout modal.

        Raises:
            ValidationError: Signature mismatch (the order is marked failed),
                or the order was cancelled (the captured payment is refunded)
        """
        order = await self.get_order(order_id)
        if order.user_id != user.id:
            raise PermissionDeniedError("Not authorized to pay for this order")
        if order.razorpay_order_id != razorpay_order_id:
            raise ValidationError("Razorpay order does not match this order")

        if not self.razorpay.verify_payment_signature(
            razorpay_order_id, razorpay_payment_id, razorpay_signature
        ):
            order.payment_status = PaymentStatus.FAILED
            # Persist the failure; the request session rolls back on error
            await self.db.commit()
            logger.warning(f"Invalid Razorpay signature for order {order.order_number}")
            raise ValidationError("Payment verification failed")

        await self.mark_paid(
            order,
            razorpay_payment_id=razorpay_payment_id,
            razorpay_signature=razorpay_signature,
        )
        if order.status == OrderStatus.CANCELLED:
            # Keep the refund record; the request session rolls back on error
            await self.db.commit()
            raise ValidationError("Order has been cancelled; the payment was refunded")
        return order


def serialize_order(order: Order, detailed: bool = True) -> dict[str, Any]:
    """Order as returned by the API."""
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "payment_method": order.payment_method.value,
        "subtotal": float(order.subtotal),
        "shipping_cost": float(order.shipping_cost),
        "discount_amount": float(order.discount_amount),
        "coupon_code": order.coupon_code,
        "total_amount": float(order.total_amount),
        "items_count": order.items_count,
        "can_be_cancelled": order.can_be_cancelled,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }
    if not detailed:
        return data

    data.update(
        {
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "image": item.image,
                    "author": item.author,
                    "medium": item.medium,
                    "quantity": item.quantity,
                    "price_at_order": float(item.price_at_order),
                    "line_total": float(item.line_total),
                }
                for item in order.items
            ],
            "shipping_address": order.shipping_address,
            "shipping_method": order.shipping_method,
            "carrier": order.carrier,
            "fedex_service_type": order.fedex_service_type,
            "transit_days": order.transit_days,
            "tracking_number": order.tracking_number,
            "tracking_url": order.tracking_url,
            "shipping_updates": [
                {
                    "status": update.status,
                    "message": update.message,
                    "location": update.location,
                    "event_code": update.event_code,
                    "timestamp": update.timestamp.isoformat() if update.timestamp else None,
                }
                for update in order.shipping_updates
            ],
            "status_history": [
                {
                    "status": change.status,
                    "note": change.note,
                    "timestamp": change.timestamp.isoformat() if change.timestamp else None,
                }
                for change in order.status_history
            ],
            "notes": order.notes,
            "is_gift": order.is_gift,
            "gift_message": order.gift_message,
            "paid_at": order.paid_at.isoformat() if order.paid_at else None,
            "cancelled_at": order.cancelled_at.isoformat() if order.cancelled_at else None,
            "cancellation_reason": order.cancellation_reason,
        }
    )
    return data

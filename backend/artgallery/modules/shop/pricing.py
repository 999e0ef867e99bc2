"""
Pricing rules for the storefront.

Pure functions shared by the cart, checkout and order services:
current artwork price, coupon discounts, shipping cost and totals.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from artgallery.core.config import settings
from artgallery.core.errors import CouponError, ValidationError
from artgallery.models.shop import Coupon, DiscountType, Product

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Convert to a Decimal rounded to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def offer_is_live(product: Product, now: datetime | None = None) -> bool:
    """Whether the product's offer applies at ``now``."""
    if not product.offer_active:
        return False
    now = now or datetime.utcnow()
    if product.offer_valid_from and now < product.offer_valid_from:
        return False
    if product.offer_valid_until and now > product.offer_valid_until:
        return False
    return True


def current_price(product: Product, now: datetime | None = None) -> Decimal:
    """
    Price a customer pays for one unit right now.

    The discount price applies only while the offer is live and it is
    actually lower than the MRP.
    """
    if (
        offer_is_live(product, now)
        and product.discount_price is not None
        and product.discount_price < product.mrp_price
    ):
        return to_money(product.discount_price)
    return to_money(product.mrp_price)


def compute_coupon_discount(
    coupon: Coupon | None,
    subtotal: Decimal,
    now: datetime | None = None,
) -> Decimal:
    """
    Validate a coupon against a subtotal and return the discount.

    Raises:
        CouponError: Coupon is unknown, expired, exhausted or the subtotal
            is below its minimum
    """
    now = now or datetime.utcnow()
    subtotal = to_money(subtotal)

    if coupon is None or not coupon.is_active or coupon.expiry_date <= now:
        raise CouponError("Invalid or expired coupon code", status_code=404)

    if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
        raise CouponError("Coupon usage limit reached")

    minimum = to_money(coupon.min_order_amount or 0)
    if subtotal < minimum:
        raise CouponError(
            f"Minimum order amount of ${minimum} required for this coupon"
        )

    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * Decimal(str(coupon.discount_value)) / 100
        if coupon.max_discount_amount is not None:
            discount = min(discount, Decimal(str(coupon.max_discount_amount)))
    else:
        discount = Decimal(str(coupon.discount_value))

    return to_money(min(discount, subtotal))


def flat_shipping_cost(subtotal: Decimal) -> Decimal:
    """Flat shipping: free above the threshold, fixed fee otherwise."""
    if to_money(subtotal) > settings.free_shipping_threshold:
        return Decimal("0.00")
    return to_money(settings.flat_shipping_cost)


def select_shipping_rate(
    rates: list[dict[str, Any]],
    service_type: str | None = None,
) -> dict[str, Any]:
    """
    Pick a quoted rate.

    Args:
        rates: Quotes as returned by the FedEx client
        service_type: Requested FedEx service; cheapest quote when omitted

    Raises:
        ValidationError: No quotes, or the requested service was not quoted
    """
    if not rates:
        raise ValidationError("No shipping rates available")

    if service_type is None:
        return min(rates, key=lambda rate: rate["price"])

    for rate in rates:
        if rate["service_type"] == service_type:
            return rate

    raise ValidationError(f"Shipping service {service_type} is not available")


def checkout_totals(
    subtotal: Decimal,
    shipping: Decimal,
    discount: Decimal = Decimal("0"),
) -> dict[str, Decimal]:
    """Combine the parts of a checkout into a non-negative total."""
    subtotal = to_money(subtotal)
    shipping = to_money(shipping)
    discount = to_money(discount)
    total = max(subtotal + shipping - discount, Decimal("0.00"))

    return {
        "subtotal": subtotal,
        "shipping": shipping,
        "discount": discount,
        "total": to_money(total),
    }

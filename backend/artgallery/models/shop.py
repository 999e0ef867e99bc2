"""
Shop models for the gallery storefront.

Includes:
- Categories and authors (artists)
- Artworks (products) with offer pricing and shipping data
- Coupons
- Orders, line items, shipping updates and status history
- Price inquiries and newsletter subscribers
"""

import math
import random
import time
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from artgallery.core.database import Base

if TYPE_CHECKING:
    from artgallery.models.user import User


class ProductStatus(str, PyEnum):
    """Artwork visibility."""

    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class OrderStatus(str, PyEnum):
    """Order fulfilment status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(str, PyEnum):
    RAZORPAY = "razorpay"
    STRIPE = "stripe"
    COD = "cod"
    CARD = "card"


class DiscountType(str, PyEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class InquiryPurpose(str, PyEnum):
    PERSONAL_COLLECTION = "personal_collection"
    GIFT = "gift"
    CORPORATE = "corporate"
    INVESTMENT = "investment"
    OTHER = "other"


class InquiryStatus(str, PyEnum):
    PENDING = "pending"
    CONTACTED = "contacted"
    RESOLVED = "resolved"


# Statuses after which an order can no longer be cancelled
NON_CANCELLABLE_STATUSES = frozenset(
    {
        OrderStatus.SHIPPED,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.RETURNED,
    }
)

_LBS_PER_UNIT = {
    "lb": 1.0,
    "oz": 1 / 16,
    "kg": 2.20462,
    "g": 0.00220462,
}

# FedEx domestic dimensional weight divisor (cubic inches per pound)
DIM_WEIGHT_DIVISOR = 139


class Category(Base):
    """Artwork category."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    products: Mapped[list["Product"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Author(Base):
    """Artist whose works are sold in the gallery."""

    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150))
    slug: Mapped[str] = mapped_column(String(150), unique=True, index=True)
    bio: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    products: Mapped[list["Product"]] = relationship(back_populates="author")

    def __repr__(self) -> str:
        return f"<Author {self.name}>"


class Product(Base):
    """Artwork for sale."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    medium: Mapped[str | None] = mapped_column(String(100))
    dimensions: Mapped[str | None] = mapped_column(String(100))
    images: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Pricing
    mrp_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    discount_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    ask_for_price: Mapped[bool] = mapped_column(Boolean, default=False)

    # Offer window
    offer_active: Mapped[bool] = mapped_column(Boolean, default=False)
    offer_discount_percentage: Mapped[int | None] = mapped_column(Integer)
    offer_valid_from: Mapped[datetime | None] = mapped_column(DateTime)
    offer_valid_until: Mapped[datetime | None] = mapped_column(DateTime)

    # Inventory
    stock: Mapped[int] = mapped_column(Integer, default=1)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=2)

    # Shipping
    weight: Mapped[float] = mapped_column(default=5.0)
    weight_unit: Mapped[str] = mapped_column(String(2), default="lb")
    length: Mapped[float] = mapped_column(default=12.0)
    width: Mapped[float] = mapped_column(default=12.0)
    height: Mapped[float] = mapped_column(default=6.0)
    dimension_unit: Mapped[str] = mapped_column(String(2), default="in")
    is_fragile: Mapped[bool] = mapped_column(Boolean, default=True)
    requires_signature: Mapped[bool] = mapped_column(Boolean, default=False)
    packaging_type: Mapped[str] = mapped_column(String(30), default="YOUR_PACKAGING")

    # Status
    status: Mapped[ProductStatus] = mapped_column(
        Enum(ProductStatus), default=ProductStatus.ACTIVE
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)

    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"))
    author_id: Mapped[int | None] = mapped_column(ForeignKey("authors.id"))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    category: Mapped["Category | None"] = relationship(back_populates="products")
    author: Mapped["Author | None"] = relationship(back_populates="products")

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0

    @property
    def is_low_stock(self) -> bool:
        """True when some stock remains but at or below the threshold."""
        return 0 < (self.stock or 0) <= self.low_stock_threshold

    @property
    def weight_in_lbs(self) -> float:
        return round(self.weight * _LBS_PER_UNIT.get(self.weight_unit, 1.0), 2)

    def dimensions_in_inches(self) -> tuple[float, float, float]:
        factor = 1 / 2.54 if self.dimension_unit == "cm" else 1.0
        return (
            round(self.length * factor, 2),
            round(self.width * factor, 2),
            round(self.height * factor, 2),
        )

    @property
    def dimensional_weight(self) -> float:
        length, width, height = self.dimensions_in_inches()
        return round(length * width * height / DIM_WEIGHT_DIVISOR, 2)

    @property
    def billable_weight(self) -> float:
        return max(self.weight_in_lbs, self.dimensional_weight)

    def fedex_package(self, quantity: int = 1) -> dict[str, Any]:
        """Package description for FedEx rate requests."""
        length, width, height = self.dimensions_in_inches()
        return {
            "weight": math.ceil(self.weight_in_lbs * quantity),
            "length": math.ceil(length),
            "width": math.ceil(width),
            "height": math.ceil(height),
            "insured_value": float(self.mrp_price) * quantity,
            "requires_signature": self.requires_signature,
            "packaging_type": self.packaging_type,
        }

    def __repr__(self) -> str:
        return f"<Product {self.sku}: {self.name}>"


class Coupon(Base):
    """Discount code."""

    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    discount_type: Mapped[DiscountType] = mapped_column(Enum(DiscountType))
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    min_order_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    max_discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    expiry_date: Mapped[datetime] = mapped_column(DateTime)
    usage_limit: Mapped[int | None] = mapped_column(Integer)
    used_count: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @validates("code")
    def _normalize_code(self, key: str, value: str) -> str:
        return value.strip().upper()

    @validates("discount_value")
    def _validate_value(self, key: str, value: Decimal) -> Decimal:
        if Decimal(str(value)) < 0:
            raise ValueError("Discount value cannot be negative")
        return value

    def __repr__(self) -> str:
        return f"<Coupon {self.code}>"


def generate_order_number() -> str:
    """Random order number: ``ORD`` + 7 digits."""
    return f"ORD{random.randint(1_000_000, 9_999_999)}"


def fallback_order_number() -> str:
    """Order number from the last ten digits of the millisecond clock."""
    return f"ORD{str(int(time.time() * 1000))[-10:]}"


class Order(Base):
    """Customer order."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    # Status
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus), default=OrderStatus.PENDING
    )

    # Pricing
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    coupon_code: Mapped[str | None] = mapped_column(String(50))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod), default=PaymentMethod.RAZORPAY
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING
    )
    razorpay_order_id: Mapped[str | None] = mapped_column(String(100), index=True)
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(100))
    razorpay_signature: Mapped[str | None] = mapped_column(String(255))
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), index=True)
    stripe_session_id: Mapped[str | None] = mapped_column(String(255))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Shipping
    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSON)
    shipping_method: Mapped[str] = mapped_column(String(30), default="ground")
    carrier: Mapped[str] = mapped_column(String(20), default="fedex")
    fedex_service_type: Mapped[str | None] = mapped_column(String(50))
    transit_days: Mapped[str | None] = mapped_column(String(20))
    tracking_number: Mapped[str | None] = mapped_column(String(100))

    # Extras
    notes: Mapped[str | None] = mapped_column(Text)
    is_gift: Mapped[bool] = mapped_column(Boolean, default=False)
    gift_message: Mapped[str | None] = mapped_column(Text)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan"
    )
    shipping_updates: Mapped[list["ShippingUpdate"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ShippingUpdate.id",
    )
    status_history: Mapped[list["OrderStatusChange"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusChange.id",
    )

    @property
    def can_be_cancelled(self) -> bool:
        return self.status not in NON_CANCELLABLE_STATUSES

    @property
    def tracking_url(self) -> str | None:
        if not self.tracking_number:
            return None
        return f"https://www.fedex.com/fedextrack/?trknbr={self.tracking_number}"

    @property
    def items_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def add_shipping_update(
        self,
        status: str,
        message: str,
        location: str | None = None,
        event_code: str | None = None,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Append a shipping update unless it repeats the latest one.

        Returns:
            True if the update was added
        """
        if self.shipping_updates:
            last = self.shipping_updates[-1]
            if last.event_code == event_code and last.message == message:
                return False

        self.shipping_updates.append(
            ShippingUpdate(
                status=status,
                message=message,
                location=location,
                event_code=event_code,
                timestamp=timestamp or datetime.utcnow(),
            )
        )
        return True

    def update_status(
        self,
        status: OrderStatus,
        note: str | None = None,
        changed_by: int | None = None,
    ) -> bool:
        """
        Move the order to a new status and record it in the history.

        Returns:
            False if the order already had that status
        """
        if self.status == status:
            return False

        self.status = status
        self.status_history.append(
            OrderStatusChange(
                status=status.value,
                note=note,
                changed_by=changed_by,
                timestamp=datetime.utcnow(),
            )
        )
        return True

    def __repr__(self) -> str:
        return f"<Order {self.order_number}>"


class OrderItem(Base):
    """Line item in an order."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL")
    )

    # Snapshot at time of order
    name: Mapped[str] = mapped_column(String(255))
    image: Mapped[str | None] = mapped_column(String(500))
    author: Mapped[str | None] = mapped_column(String(150))
    medium: Mapped[str | None] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    price_at_order: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    order: Mapped["Order"] = relationship(back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return self.price_at_order * self.quantity


class ShippingUpdate(Base):
    """Customer-visible shipping event."""

    __tablename__ = "shipping_updates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(30))
    message: Mapped[str] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(255))
    event_code: Mapped[str | None] = mapped_column(String(10))
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    order: Mapped["Order"] = relationship(back_populates="shipping_updates")


class OrderStatusChange(Base):
    """Audit record of an order status transition."""

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(30))
    note: Mapped[str | None] = mapped_column(Text)
    changed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    order: Mapped["Order"] = relationship(back_populates="status_history")


class PriceInquiry(Base):
    """Request for the price of an ask-for-price artwork."""

    __tablename__ = "price_inquiries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"))
    full_name: Mapped[str] = mapped_column(String(150))
    email: Mapped[str] = mapped_column(String(255))
    mobile: Mapped[str] = mapped_column(String(20))
    message: Mapped[str | None] = mapped_column(Text)
    budget: Mapped[str | None] = mapped_column(String(50))
    purpose: Mapped[InquiryPurpose] = mapped_column(
        Enum(InquiryPurpose), default=InquiryPurpose.PERSONAL_COLLECTION
    )
    status: Mapped[InquiryStatus] = mapped_column(
        Enum(InquiryStatus), default=InquiryStatus.PENDING
    )
    admin_notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    product: Mapped["Product"] = relationship()


class Subscriber(Base):
    """Newsletter subscriber."""

    __tablename__ = "subscribers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    source: Mapped[str] = mapped_column(String(50), default="website")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

"""
User accounts, saved addresses and wishlists.
"""

import re
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Table,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from artgallery.core.database import Base

if TYPE_CHECKING:
    from artgallery.models.shop import Order, Product


ZIP_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

US_STATE_CODES = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
        "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
        "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
        "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
        "DC", "PR", "VI", "GU", "AS", "MP",
    }
)


class UserRole(str, PyEnum):
    """Account role."""

    USER = "user"
    ADMIN = "admin"


wishlist_items = Table(
    "wishlist_items",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(20), unique=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.USER)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # One-time codes for e-mail verification and password reset
    otp_code: Mapped[str | None] = mapped_column(String(6))
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    addresses: Mapped[list["Address"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    orders: Mapped[list["Order"]] = relationship(back_populates="user")
    wishlist: Mapped[list["Product"]] = relationship(secondary=wishlist_items)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Address(Base):
    """Saved US shipping address."""

    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    label: Mapped[str] = mapped_column(String(50), default="Home")
    street_line1: Mapped[str] = mapped_column(String(255))
    street_line2: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str] = mapped_column(String(100))
    state_code: Mapped[str] = mapped_column(String(2))
    zip_code: Mapped[str] = mapped_column(String(10))
    country_code: Mapped[str] = mapped_column(String(2), default="US")
    phone_number: Mapped[str] = mapped_column(String(20))
    is_residential: Mapped[bool] = mapped_column(Boolean, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)

    # FedEx validation results
    fedex_validated: Mapped[bool] = mapped_column(Boolean, default=False)
    fedex_classification: Mapped[str | None] = mapped_column(String(20))
    normalized_address: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user: Mapped["User"] = relationship(back_populates="addresses")

    @validates("state_code")
    def _validate_state(self, key: str, value: str) -> str:
        value = value.upper()
        if value not in US_STATE_CODES:
            raise ValueError(f"Invalid US state code: {value}")
        return value

    @validates("zip_code")
    def _validate_zip(self, key: str, value: str) -> str:
        if not ZIP_CODE_PATTERN.match(value):
            raise ValueError(f"Invalid ZIP code: {value}")
        return value

    def to_shipping_dict(self) -> dict[str, Any]:
        """Snapshot stored on orders and sent to FedEx."""
        return {
            "label": self.label,
            "street_line1": self.street_line1,
            "street_line2": self.street_line2,
            "city": self.city,
            "state_code": self.state_code,
            "zip_code": self.zip_code,
            "country_code": self.country_code,
            "phone_number": self.phone_number,
            "is_residential": self.is_residential,
        }

"""
Coupon Service - Discount codes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.errors import ConflictError, NotFoundError
from artgallery.models.shop import Coupon
from artgallery.modules.shop.pricing import compute_coupon_discount, to_money


class CouponService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_code(self, code: str) -> Coupon | None:
        return await self.db.scalar(select(Coupon).where(Coupon.code == code.strip().upper()))

    async def apply(
        self,
        code: str,
        subtotal: Decimal,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Preview a coupon against a subtotal without consuming it.

        Raises:
            CouponError: Coupon rejected
        """
        coupon = await self.get_by_code(code)
        discount = compute_coupon_discount(coupon, subtotal, now)
        subtotal = to_money(subtotal)

        return {
            "code": coupon.code,
            "discount_type": coupon.discount_type.value,
            "discount_value": float(coupon.discount_value),
            "discount": float(discount),
            "final_amount": float(subtotal - discount),
        }

    async def list_coupons(self) -> list[Coupon]:
        result = await self.db.execute(select(Coupon).order_by(Coupon.created_at.desc()))
        return list(result.scalars().all())

    async def create(self, code: str, **fields: Any) -> Coupon:
        if await self.get_by_code(code):
            raise ConflictError("Coupon code already exists")
        coupon = Coupon(code=code, **fields)
        self.db.add(coupon)
        await self.db.flush()
        return coupon

    async def update(self, coupon_id: int, **fields: Any) -> Coupon:
        coupon = await self.db.get(Coupon, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")

        new_code = fields.get("code")
        if new_code and new_code.strip().upper() != coupon.code:
            if await self.get_by_code(new_code):
                raise ConflictError("Coupon code already exists")

        for key, value in fields.items():
            setattr(coupon, key, value)
        await self.db.flush()
        return coupon

    async def delete(self, coupon_id: int) -> None:
        coupon = await self.db.get(Coupon, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")
        await self.db.delete(coupon)
        await self.db.flush()


def serialize_coupon(coupon: Coupon) -> dict[str, Any]:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "discount_type": coupon.discount_type.value,
        "discount_value": float(coupon.discount_value),
        "min_order_amount": float(coupon.min_order_amount or 0),
        "max_discount_amount": float(coupon.max_discount_amount)
        if coupon.max_discount_amount is not None
        else None,
        "expiry_date": coupon.expiry_date.isoformat(),
        "usage_limit": coupon.usage_limit,
        "used_count": coupon.used_count,
        "is_active": coupon.is_active,
    }

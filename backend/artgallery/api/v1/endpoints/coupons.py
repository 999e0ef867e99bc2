"""
Coupon API Endpoints.

Customers preview a code against their cart; admins manage codes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.core.security import get_current_user, require_admin
from artgallery.models.shop import DiscountType
from artgallery.models.user import User
from artgallery.modules.shop.cart import CartService, get_cart_service
from artgallery.modules.shop.coupons import CouponService, serialize_coupon

router = APIRouter()


# ==================== Schemas ====================


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1)
    subtotal: Decimal | None = Field(None, ge=0, description="Defaults to the cart total")


class CouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., ge=0)
    min_order_amount: Decimal = Field(Decimal("0"), ge=0)
    max_discount_amount: Decimal | None = Field(None, ge=0)
    expiry_date: datetime
    usage_limit: int | None = Field(None, ge=1)
    is_active: bool = True


class CouponUpdateRequest(BaseModel):
    code: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    min_order_amount: Decimal | None = Field(None, ge=0)
    max_discount_amount: Decimal | None = Field(None, ge=0)
    expiry_date: datetime | None = None
    usage_limit: int | None = Field(None, ge=1)
    is_active: bool | None = None


# ==================== Customer ====================


@router.post("/apply")
async def apply_coupon(
    request: ApplyCouponRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    """Preview a coupon; the code is consumed only when an order is placed."""
    subtotal = request.subtotal
    if subtotal is None:
        subtotal = Decimal(str((await cart.get_cart(db, user.id))["total"]))

    result = await CouponService(db).apply(request.code, subtotal)
    return {"success": True, "message": "Coupon applied successfully", **result}


# ==================== Admin ====================


@router.get("")
async def list_coupons(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    coupons = await CouponService(db).list_coupons()
    return {"success": True, "coupons": [serialize_coupon(c) for c in coupons]}


@router.post("", status_code=201)
async def create_coupon(
    request: CouponRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    fields = request.model_dump()
    coupon = await CouponService(db).create(fields.pop("code"), **fields)
    return {"success": True, "coupon": serialize_coupon(coupon)}


@router.put("/{coupon_id}")
async def update_coupon(
    coupon_id: int,
    request: CouponUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    coupon = await CouponService(db).update(coupon_id, **request.model_dump(exclude_unset=True))
    return {"success": True, "coupon": serialize_coupon(coupon)}


@router.delete("/{coupon_id}")
async def delete_coupon(
    coupon_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await CouponService(db).delete(coupon_id)
    return {"success": True, "message": "Coupon deleted successfully"}

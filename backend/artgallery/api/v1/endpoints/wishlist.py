"""
Wishlist API Endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.core.security import get_current_user
from artgallery.models.user import User
from artgallery.modules.shop.service import serialize_product
from artgallery.modules.shop.wishlist import WishlistService

router = APIRouter()


@router.get("")
async def get_wishlist(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    products = await WishlistService(db).get_items(user.id)
    return {"success": True, "wishlist": [serialize_product(p) for p in products]}


@router.post("/{product_id}", status_code=201)
async def add_to_wishlist(
    product_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await WishlistService(db).add(user.id, product_id)
    return {"success": True, "message": "Product added to wishlist"}


@router.delete("/{product_id}")
async def remove_from_wishlist(
    product_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await WishlistService(db).remove(user.id, product_id)
    return {"success": True, "message": "Product removed from wishlist"}


@router.get("/check/{product_id}")
async def check_wishlist(
    product_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return {
        "success": True,
        "in_wishlist": await WishlistService(db).contains(user.id, product_id),
    }

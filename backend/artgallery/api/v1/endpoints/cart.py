"""
Cart API Endpoints.

The cart lives on the server and is keyed by the authenticated user.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.core.security import get_current_user
from artgallery.models.user import User
from artgallery.modules.shop.cart import CartService, get_cart_service

router = APIRouter()


class AddToCartRequest(BaseModel):
    """Add item to cart."""

    product_id: int
    quantity: int = Field(1, ge=1)


class UpdateCartRequest(BaseModel):
    """Update cart item quantity."""

    quantity: int = Field(..., ge=1)


@router.get("")
async def get_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    """Get user's shopping cart."""
    return {"success": True, "cart": await cart.get_cart(db, user.id)}


@router.post("")
async def add_to_cart(
    request: AddToCartRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    contents = await cart.add_item(db, user.id, request.product_id, request.quantity)
    return {"success": True, "message": "Item added to cart", "cart": contents}


@router.put("/{product_id}")
async def update_cart_item(
    product_id: int,
    request: UpdateCartRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    contents = await cart.update_quantity(db, user.id, product_id, request.quantity)
    return {"success": True, "cart": contents}


@router.delete("/{product_id}")
async def remove_from_cart(
    product_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    contents = await cart.remove_item(db, user.id, product_id)
    return {"success": True, "message": "Item removed from cart", "cart": contents}


@router.delete("")
async def clear_cart(
    user: User = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    """Clear entire cart."""
    await cart.clear(user.id)
    return {"success": True, "message": "Cart cleared"}

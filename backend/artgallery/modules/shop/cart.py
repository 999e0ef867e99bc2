"""
Cart Service - Server-held shopping cart with Redis.

Only product ids and quantities are stored; prices and availability are
resolved from the catalog every time the cart is read, so the client always
sees current prices.
"""

import json
from decimal import Decimal
from typing import Any

import redis.asyncio as redis
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from artgallery.core.config import settings
from artgallery.core.errors import NotFoundError, ValidationError
from artgallery.models.shop import Product
from artgallery.modules.shop.pricing import current_price, to_money


class CartService:
    """
    Shopping cart service using Redis for storage.

    Usage:
        cart = CartService()
        await cart.add_item(db, user_id, product_id, quantity=1)
        summary = await cart.get_cart(db, user_id)
    """

    CART_TTL = 60 * 60 * 24 * 7  # 7 days

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self._redis = redis_client

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
        )

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()

    def _cart_key(self, user_id: int) -> str:
        return f"cart:{user_id}"

    # ==================== Storage ====================

    async def get_items(self, user_id: int) -> list[dict[str, int]]:
        """Raw stored items: ``[{product_id, quantity}]``."""
        if not self._redis:
            await self.connect()

        cart_data = await self._redis.get(self._cart_key(user_id))
        if not cart_data:
            return []

        try:
            return json.loads(cart_data)
        except json.JSONDecodeError:
            logger.warning(f"Invalid cart data for user {user_id}")
            return []

    async def _save_items(self, user_id: int, items: list[dict[str, int]]) -> None:
        if not self._redis:
            await self.connect()

        key = self._cart_key(user_id)
        if not items:
            await self._redis.delete(key)
            return
        await self._redis.setex(key, self.CART_TTL, json.dumps(items))

    async def clear(self, user_id: int) -> None:
        """Clear all items from cart."""
        await self._save_items(user_id, [])

    # ==================== Catalog lookups ====================

    async def _load_products(
        self,
        db: AsyncSession,
        product_ids: list[int],
    ) -> dict[int, Product]:
        if not product_ids:
            return {}
        query = (
            select(Product)
            .options(selectinload(Product.author))
            .where(Product.id.in_(product_ids))
        )
        result = await db.execute(query)
        return {product.id: product for product in result.scalars().all()}

    async def _get_active_product(self, db: AsyncSession, product_id: int) -> Product:
        products = await self._load_products(db, [product_id])
        product = products.get(product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found")
        return product

    # ==================== Operations ====================

    async def get_cart(self, db: AsyncSession, user_id: int) -> dict[str, Any]:
        """
        Resolve the cart against the catalog.

        Items whose product disappeared, was deactivated or sold out are
        dropped, and the stored cart is rewritten without them.
        """
        items = await self.get_items(user_id)
        products = await self._load_products(db, [i["product_id"] for i in items])

        lines = []
        kept = []
        total = Decimal("0")

        for item in items:
            product = products.get(item["product_id"])
            if not product or not product.is_active or not product.in_stock:
                continue

            quantity = min(item["quantity"], product.stock)
            price = current_price(product)
            line_total = price * quantity
            total += line_total

            kept.append({"product_id": product.id, "quantity": quantity})
            lines.append(
                {
                    "product": serialize_cart_product(product),
                    "quantity": quantity,
                    "price": float(price),
                    "line_total": float(line_total),
                }
            )

        if kept != items:
            logger.info(f"Cart for user {user_id} pruned to {len(kept)} items")
            await self._save_items(user_id, kept)

        return {
            "items": lines,
            "total": float(to_money(total)),
            "items_count": sum(line["quantity"] for line in lines),
        }

    async def add_item(
        self,
        db: AsyncSession,
        user_id: int,
        product_id: int,
        quantity: int = 1,
    ) -> dict[str, Any]:
        """
        Add an artwork to the cart, merging with an existing line.

        Raises:
            NotFoundError: Product missing or inactive
            ValidationError: Quantity would exceed stock
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        product = await self._get_active_product(db, product_id)
        items = await self.get_items(user_id)

        existing = next((i for i in items if i["product_id"] == product_id), None)
        new_quantity = quantity + (existing["quantity"] if existing else 0)

        if new_quantity > product.stock:
            raise ValidationError(f"Only {product.stock} items available in stock")

        if existing:
            existing["quantity"] = new_quantity
        else:
            items.append({"product_id": product_id, "quantity": quantity})

        await self._save_items(user_id, items)
        return await self.get_cart(db, user_id)

    async def update_quantity(
        self,
        db: AsyncSession,
        user_id: int,
        product_id: int,
        quantity: int,
    ) -> dict[str, Any]:
        """Set the quantity of a cart line."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        items = await self.get_items(user_id)
        existing = next((i for i in items if i["product_id"] == product_id), None)
        if not existing:
            raise NotFoundError("Item not found in cart")

        product = await self._get_active_product(db, product_id)
        if quantity > product.stock:
            raise ValidationError(f"Only {product.stock} items available in stock")

        existing["quantity"] = quantity
        await self._save_items(user_id, items)
        return await self.get_cart(db, user_id)

    async def remove_item(
        self,
        db: AsyncSession,
        user_id: int,
        product_id: int,
    ) -> dict[str, Any]:
        """Remove item from cart."""
        items = await self.get_items(user_id)
        remaining = [i for i in items if i["product_id"] != product_id]
        await self._save_items(user_id, remaining)
        return await self.get_cart(db, user_id)


def serialize_cart_product(product: Product) -> dict[str, Any]:
    """Product fields the cart and checkout views need."""
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "image": product.images[0] if product.images else None,
        "author": product.author.name if product.author else None,
        "medium": product.medium,
        "mrp_price": float(product.mrp_price),
        "discount_price": float(product.discount_price)
        if product.discount_price is not None
        else None,
        "stock": product.stock,
    }


# Singleton instance
_cart_service: CartService | None = None


async def get_cart_service() -> CartService:
    """Get or create cart service singleton."""
    global _cart_service
    if _cart_service is None:
        _cart_service = CartService()
        await _cart_service.connect()
    return _cart_service

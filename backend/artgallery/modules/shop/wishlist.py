"""
Wishlist Service - Saved artworks per user.
"""

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from artgallery.core.errors import ConflictError, NotFoundError
from artgallery.models.shop import Product, ProductStatus
from artgallery.models.user import wishlist_items


class WishlistService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _contains(self, user_id: int, product_id: int) -> bool:
        found = await self.db.scalar(
            select(wishlist_items.c.product_id).where(
                wishlist_items.c.user_id == user_id,
                wishlist_items.c.product_id == product_id,
            )
        )
        return found is not None

    async def get_items(self, user_id: int) -> list[Product]:
        """Active artworks on the user's wishlist."""
        query = (
            select(Product)
            .join(wishlist_items, wishlist_items.c.product_id == Product.id)
            .options(selectinload(Product.category), selectinload(Product.author))
            .where(
                wishlist_items.c.user_id == user_id,
                Product.status == ProductStatus.ACTIVE,
            )
            .order_by(Product.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add(self, user_id: int, product_id: int) -> None:
        product = await self.db.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found")
        if await self._contains(user_id, product_id):
            raise ConflictError("Product already in wishlist")

        await self.db.execute(
            insert(wishlist_items).values(user_id=user_id, product_id=product_id)
        )

    async def remove(self, user_id: int, product_id: int) -> None:
        if not await self._contains(user_id, product_id):
            raise NotFoundError("Product not in wishlist")

        await self.db.execute(
            delete(wishlist_items).where(
                wishlist_items.c.user_id == user_id,
                wishlist_items.c.product_id == product_id,
            )
        )

    async def contains(self, user_id: int, product_id: int) -> bool:
        return await self._contains(user_id, product_id)

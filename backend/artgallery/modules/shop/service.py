"""
Shop Service - Catalog management.
"""

import secrets
from decimal import Decimal
from typing import Any

from slugify import slugify
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from artgallery.core.errors import ConflictError, NotFoundError, ValidationError
from artgallery.models.shop import (
    Author,
    Category,
    InquiryStatus,
    PriceInquiry,
    Product,
    ProductStatus,
)
from artgallery.modules.shop.pricing import current_price, offer_is_live

PRODUCT_SORTS = {
    "newest": Product.created_at.desc(),
    "oldest": Product.created_at.asc(),
    "price_asc": Product.mrp_price.asc(),
    "price_desc": Product.mrp_price.desc(),
    "name": Product.name.asc(),
}


class ShopService:
    """
    Service for managing categories, authors, artworks and price inquiries.

    Usage:
        shop = ShopService(db_session)
        products = await shop.get_products(category_slug="oil-paintings")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize shop service with database session."""
        self.db = db

    async def _unique_slug(self, model: Any, text: str, exclude_id: int | None = None) -> str:
        base_slug = slugify(text)[:200] or "item"
        slug = base_slug

        counter = 1
        while True:
            query = select(model.id).where(model.slug == slug)
            if exclude_id is not None:
                query = query.where(model.id != exclude_id)
            if not await self.db.scalar(query):
                return slug
            slug = f"{base_slug}-{counter}"
            counter += 1

    async def _unique_sku(self) -> str:
        while True:
            sku = f"ART-{secrets.token_hex(4).upper()}"
            if not await self.db.scalar(select(Product.id).where(Product.sku == sku)):
                return sku

    # ==================== Categories ====================

    async def get_categories(self, include_inactive: bool = False) -> list[Category]:
        """Get all categories."""
        query = select(Category).order_by(Category.name)
        if not include_inactive:
            query = query.where(Category.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_category(self, slug: str) -> Category:
        category = await self.db.scalar(select(Category).where(Category.slug == slug))
        if not category:
            raise NotFoundError("Category not found")
        return category

    async def create_category(self, name: str, **fields: Any) -> Category:
        if await self.db.scalar(select(Category.id).where(Category.name == name)):
            raise ConflictError("Category already exists")
        category = Category(name=name, slug=await self._unique_slug(Category, name), **fields)
        self.db.add(category)
        await self.db.flush()
        return category

    async def update_category(self, category_id: int, **fields: Any) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category not found")
        if "name" in fields and fields["name"] != category.name:
            category.slug = await self._unique_slug(Category, fields["name"], category.id)
        for key, value in fields.items():
            setattr(category, key, value)
        await self.db.flush()
        return category

    async def delete_category(self, category_id: int) -> None:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category not found")
        in_use = await self.db.scalar(
            select(func.count(Product.id)).where(Product.category_id == category_id)
        )
        if in_use:
            raise ValidationError("Category has products and cannot be deleted")
        await self.db.delete(category)
        await self.db.flush()

    # ==================== Authors ====================

    async def get_authors(self, include_inactive: bool = False) -> list[Author]:
        query = select(Author).order_by(Author.name)
        if not include_inactive:
            query = query.where(Author.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_author(self, slug: str) -> Author:
        author = await self.db.scalar(select(Author).where(Author.slug == slug))
        if not author:
            raise NotFoundError("Author not found")
        return author

    async def create_author(self, name: str, **fields: Any) -> Author:
        author = Author(name=name, slug=await self._unique_slug(Author, name), **fields)
        self.db.add(author)
        await self.db.flush()
        return author

    async def update_author(self, author_id: int, **fields: Any) -> Author:
        author = await self.db.get(Author, author_id)
        if not author:
            raise NotFoundError("Author not found")
        if "name" in fields and fields["name"] != author.name:
            author.slug = await self._unique_slug(Author, fields["name"], author.id)
        for key, value in fields.items():
            setattr(author, key, value)
        await self.db.flush()
        return author

    async def delete_author(self, author_id: int) -> None:
        author = await self.db.get(Author, author_id)
        if not author:
            raise NotFoundError("Author not found")
        in_use = await self.db.scalar(
            select(func.count(Product.id)).where(Product.author_id == author_id)
        )
        if in_use:
            raise ValidationError("Author has artworks and cannot be deleted")
        await self.db.delete(author)
        await self.db.flush()

    # ==================== Products ====================

    async def get_products(
        self,
        category_slug: str | None = None,
        author_slug: str | None = None,
        search: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        featured_only: bool = False,
        status: ProductStatus | None = ProductStatus.ACTIVE,
        sort: str = "newest",
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Product], int]:
        """
        Get artworks with filters.

        Returns:
            (page of products, total matching)
        """
        filters = []
        if status is not None:
            filters.append(Product.status == status)
        if category_slug:
            filters.append(Product.category.has(Category.slug == category_slug))
        if author_slug:
            filters.append(Product.author.has(Author.slug == author_slug))
        if featured_only:
            filters.append(Product.is_featured.is_(True))
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    Product.name.ilike(pattern),
                    Product.description.ilike(pattern),
                    Product.medium.ilike(pattern),
                )
            )
        if min_price is not None:
            filters.append(Product.mrp_price >= min_price)
        if max_price is not None:
            filters.append(Product.mrp_price <= max_price)

        query = (
            select(Product)
            .options(selectinload(Product.category), selectinload(Product.author))
            .where(*filters)
            .order_by(PRODUCT_SORTS.get(sort, PRODUCT_SORTS["newest"]), Product.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        total = await self.db.scalar(select(func.count(Product.id)).where(*filters))
        return list(result.scalars().all()), total or 0

    async def get_product(self, slug_or_id: str, include_inactive: bool = False) -> Product:
        """Get product by slug, or by numeric id."""
        query = (
            select(Product)
            .options(selectinload(Product.category), selectinload(Product.author))
            .execution_options(populate_existing=True)
        )
        if slug_or_id.isdigit():
            query = query.where(or_(Product.id == int(slug_or_id), Product.slug == slug_or_id))
        else:
            query = query.where(Product.slug == slug_or_id)
        product = await self.db.scalar(query)

        if not product or (not include_inactive and not product.is_active):
            raise NotFoundError("Product not found")
        return product

    async def create_product(self, name: str, mrp_price: Decimal, **fields: Any) -> Product:
        """Create new artwork with generated slug and SKU."""
        product = Product(
            name=name,
            mrp_price=mrp_price,
            slug=await self._unique_slug(Product, name),
            sku=await self._unique_sku(),
            **fields,
        )
        self.db.add(product)
        await self.db.flush()
        return await self.get_product(str(product.id), include_inactive=True)

    async def update_product(self, product_id: int, **fields: Any) -> Product:
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        if "name" in fields and fields["name"] != product.name:
            product.slug = await self._unique_slug(Product, fields["name"], product.id)
        for key, value in fields.items():
            setattr(product, key, value)
        await self.db.flush()
        return await self.get_product(str(product.id), include_inactive=True)

    async def delete_product(self, product_id: int) -> None:
        """Archive an artwork; order history keeps referring to it."""
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        product.status = ProductStatus.ARCHIVED
        await self.db.flush()

    async def get_low_stock_products(self) -> list[Product]:
        query = select(Product).where(
            Product.status == ProductStatus.ACTIVE,
            Product.stock > 0,
            Product.stock <= Product.low_stock_threshold,
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== Price inquiries ====================

    async def create_price_inquiry(self, product_id: int, **fields: Any) -> PriceInquiry:
        product = await self.db.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found")
        if not product.ask_for_price:
            raise ValidationError("Price is listed for this artwork")

        inquiry = PriceInquiry(product_id=product_id, **fields)
        self.db.add(inquiry)
        await self.db.flush()
        return inquiry

    async def get_price_inquiries(
        self,
        status: InquiryStatus | None = None,
    ) -> list[PriceInquiry]:
        query = (
            select(PriceInquiry)
            .options(selectinload(PriceInquiry.product))
            .order_by(PriceInquiry.created_at.desc())
        )
        if status:
            query = query.where(PriceInquiry.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_price_inquiry(
        self,
        inquiry_id: int,
        status: InquiryStatus | None = None,
        admin_notes: str | None = None,
    ) -> PriceInquiry:
        inquiry = await self.db.get(PriceInquiry, inquiry_id)
        if not inquiry:
            raise NotFoundError("Price inquiry not found")
        if status is not None:
            inquiry.status = status
        if admin_notes is not None:
            inquiry.admin_notes = admin_notes
        await self.db.flush()
        return inquiry


def serialize_product(product: Product, detailed: bool = False) -> dict[str, Any]:
    """Artwork as returned by the API."""
    price = current_price(product)
    data = {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "slug": product.slug,
        "medium": product.medium,
        "dimensions": product.dimensions,
        "images": product.images or [],
        "mrp_price": float(product.mrp_price),
        "discount_price": float(product.discount_price)
        if product.discount_price is not None
        else None,
        "current_price": float(price),
        "ask_for_price": product.ask_for_price,
        "offer_active": offer_is_live(product),
        "in_stock": product.in_stock,
        "is_featured": product.is_featured,
        "status": product.status.value,
        "category": {"name": product.category.name, "slug": product.category.slug}
        if product.category
        else None,
        "author": {"name": product.author.name, "slug": product.author.slug}
        if product.author
        else None,
    }
    if not detailed:
        return data

    data.update(
        {
            "description": product.description,
            "stock": product.stock,
            "is_low_stock": product.is_low_stock,
            "offer_discount_percentage": product.offer_discount_percentage,
            "offer_valid_from": product.offer_valid_from.isoformat()
            if product.offer_valid_from
            else None,
            "offer_valid_until": product.offer_valid_until.isoformat()
            if product.offer_valid_until
            else None,
            "shipping": {
                "weight": product.weight,
                "weight_unit": product.weight_unit,
                "length": product.length,
                "width": product.width,
                "height": product.height,
                "dimension_unit": product.dimension_unit,
                "billable_weight": product.billable_weight,
                "is_fragile": product.is_fragile,
                "requires_signature": product.requires_signature,
            },
        }
    )
    return data

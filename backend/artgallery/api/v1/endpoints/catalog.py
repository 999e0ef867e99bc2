"""
Catalog API Endpoints.

Categories, authors, artworks and price inquiries.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.core.security import require_admin
from artgallery.models.shop import (
    Author,
    Category,
    InquiryPurpose,
    InquiryStatus,
    PriceInquiry,
    ProductStatus,
)
from artgallery.models.user import User
from artgallery.modules.shop.service import ShopService, serialize_product

router = APIRouter()


# ==================== Schemas ====================


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    image_url: str | None = None
    is_active: bool = True


class CategoryUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class AuthorRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    bio: str | None = None
    image_url: str | None = None
    is_active: bool = True


class AuthorUpdateRequest(BaseModel):
    name: str | None = None
    bio: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class ProductRequest(BaseModel):
    """Create artwork."""

    name: str = Field(..., min_length=1, max_length=255)
    mrp_price: Decimal = Field(..., ge=0)
    description: str | None = None
    medium: str | None = None
    dimensions: str | None = None
    images: list[str] = []
    discount_price: Decimal | None = Field(None, ge=0)
    ask_for_price: bool = False
    offer_active: bool = False
    offer_discount_percentage: int | None = Field(None, ge=0, le=100)
    offer_valid_from: datetime | None = None
    offer_valid_until: datetime | None = None
    stock: int = Field(1, ge=0)
    low_stock_threshold: int = Field(2, ge=0)
    weight: float = Field(5.0, gt=0)
    weight_unit: str = Field("lb", pattern="^(lb|oz|kg|g)$")
    length: float = Field(12.0, gt=0)
    width: float = Field(12.0, gt=0)
    height: float = Field(6.0, gt=0)
    dimension_unit: str = Field("in", pattern="^(in|cm)$")
    is_fragile: bool = True
    requires_signature: bool = False
    status: ProductStatus = ProductStatus.ACTIVE
    is_featured: bool = False
    category_id: int | None = None
    author_id: int | None = None


class ProductUpdateRequest(BaseModel):
    """Partial artwork update."""

    name: str | None = None
    mrp_price: Decimal | None = Field(None, ge=0)
    description: str | None = None
    medium: str | None = None
    dimensions: str | None = None
    images: list[str] | None = None
    discount_price: Decimal | None = Field(None, ge=0)
    ask_for_price: bool | None = None
    offer_active: bool | None = None
    offer_discount_percentage: int | None = Field(None, ge=0, le=100)
    offer_valid_from: datetime | None = None
    offer_valid_until: datetime | None = None
    stock: int | None = Field(None, ge=0)
    low_stock_threshold: int | None = Field(None, ge=0)
    weight: float | None = Field(None, gt=0)
    weight_unit: str | None = Field(None, pattern="^(lb|oz|kg|g)$")
    length: float | None = Field(None, gt=0)
    width: float | None = Field(None, gt=0)
    height: float | None = Field(None, gt=0)
    dimension_unit: str | None = Field(None, pattern="^(in|cm)$")
    is_fragile: bool | None = None
    requires_signature: bool | None = None
    status: ProductStatus | None = None
    is_featured: bool | None = None
    category_id: int | None = None
    author_id: int | None = None


class PriceInquiryRequest(BaseModel):
    product_id: int
    full_name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    mobile: str = Field(..., min_length=10, max_length=20)
    message: str | None = None
    budget: str | None = None
    purpose: InquiryPurpose = InquiryPurpose.PERSONAL_COLLECTION


class PriceInquiryUpdateRequest(BaseModel):
    status: InquiryStatus | None = None
    admin_notes: str | None = None


def _category_dict(category: Category) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image_url": category.image_url,
        "is_active": category.is_active,
    }


def _author_dict(author: Author) -> dict[str, Any]:
    return {
        "id": author.id,
        "name": author.name,
        "slug": author.slug,
        "bio": author.bio,
        "image_url": author.image_url,
        "is_active": author.is_active,
    }


def _inquiry_dict(inquiry: PriceInquiry) -> dict[str, Any]:
    return {
        "id": inquiry.id,
        "product_id": inquiry.product_id,
        "full_name": inquiry.full_name,
        "email": inquiry.email,
        "mobile": inquiry.mobile,
        "message": inquiry.message,
        "budget": inquiry.budget,
        "purpose": inquiry.purpose.value,
        "status": inquiry.status.value,
        "admin_notes": inquiry.admin_notes,
        "created_at": inquiry.created_at.isoformat() if inquiry.created_at else None,
    }


# ==================== Categories ====================


@router.get("/categories")
async def get_categories(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get all active categories."""
    categories = await ShopService(db).get_categories()
    return {"success": True, "categories": [_category_dict(c) for c in categories]}


@router.get("/categories/{slug}")
async def get_category(
    slug: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    category = await ShopService(db).get_category(slug)
    return {"success": True, "category": _category_dict(category)}


@router.post("/categories", status_code=201)
async def create_category(
    request: CategoryRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    fields = request.model_dump()
    category = await ShopService(db).create_category(fields.pop("name"), **fields)
    return {"success": True, "category": _category_dict(category)}


@router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    request: CategoryUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    category = await ShopService(db).update_category(
        category_id, **request.model_dump(exclude_unset=True)
    )
    return {"success": True, "category": _category_dict(category)}


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await ShopService(db).delete_category(category_id)
    return {"success": True, "message": "Category deleted successfully"}


# ==================== Authors ====================


@router.get("/authors")
async def get_authors(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    authors = await ShopService(db).get_authors()
    return {"success": True, "authors": [_author_dict(a) for a in authors]}


@router.get("/authors/{slug}")
async def get_author(
    slug: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    author = await ShopService(db).get_author(slug)
    return {"success": True, "author": _author_dict(author)}


@router.post("/authors", status_code=201)
async def create_author(
    request: AuthorRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    fields = request.model_dump()
    author = await ShopService(db).create_author(fields.pop("name"), **fields)
    return {"success": True, "author": _author_dict(author)}


@router.put("/authors/{author_id}")
async def update_author(
    author_id: int,
    request: AuthorUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    author = await ShopService(db).update_author(
        author_id, **request.model_dump(exclude_unset=True)
    )
    return {"success": True, "author": _author_dict(author)}


@router.delete("/authors/{author_id}")
async def delete_author(
    author_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await ShopService(db).delete_author(author_id)
    return {"success": True, "message": "Author deleted successfully"}


# ==================== Products ====================


@router.get("/products")
async def get_products(
    category: str | None = Query(None, description="Filter by category slug"),
    author: str | None = Query(None, description="Filter by author slug"),
    search: str | None = Query(None, description="Search query"),
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    featured: bool = Query(False, description="Only featured artworks"),
    sort: str = Query("newest"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Get artworks with filtering and pagination.

    Only active artworks are listed.
    """
    products, total = await ShopService(db).get_products(
        category_slug=category,
        author_slug=author,
        search=search,
        min_price=min_price,
        max_price=max_price,
        featured_only=featured,
        sort=sort,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "success": True,
        "products": [serialize_product(p) for p in products],
        "total": total,
        "page": page,
        "total_pages": (total + limit - 1) // limit,
    }


@router.get("/products/{slug_or_id}")
async def get_product(
    slug_or_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get artwork details by slug or id."""
    product = await ShopService(db).get_product(slug_or_id)
    return {"success": True, "product": serialize_product(product, detailed=True)}


@router.post("/products", status_code=201)
async def create_product(
    request: ProductRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    fields = request.model_dump()
    product = await ShopService(db).create_product(
        fields.pop("name"), fields.pop("mrp_price"), **fields
    )
    return {"success": True, "product": serialize_product(product, detailed=True)}


@router.put("/products/{product_id}")
async def update_product(
    product_id: int,
    request: ProductUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    product = await ShopService(db).update_product(
        product_id, **request.model_dump(exclude_unset=True)
    )
    return {"success": True, "product": serialize_product(product, detailed=True)}


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await ShopService(db).delete_product(product_id)
    return {"success": True, "message": "Product archived successfully"}


@router.get("/admin/products")
async def admin_products(
    status: ProductStatus | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """All artworks regardless of status."""
    products, total = await ShopService(db).get_products(
        search=search,
        status=status,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "success": True,
        "products": [serialize_product(p, detailed=True) for p in products],
        "total": total,
        "page": page,
    }


# ==================== Price inquiries ====================


@router.post("/price-inquiries", status_code=201)
async def create_price_inquiry(
    request: PriceInquiryRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    fields = request.model_dump()
    inquiry = await ShopService(db).create_price_inquiry(fields.pop("product_id"), **fields)
    return {
        "success": True,
        "message": "Price inquiry submitted successfully",
        "inquiry": _inquiry_dict(inquiry),
    }


@router.get("/price-inquiries")
async def get_price_inquiries(
    status: InquiryStatus | None = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    inquiries = await ShopService(db).get_price_inquiries(status=status)
    return {"success": True, "inquiries": [_inquiry_dict(i) for i in inquiries]}


@router.put("/price-inquiries/{inquiry_id}")
async def update_price_inquiry(
    inquiry_id: int,
    request: PriceInquiryUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    inquiry = await ShopService(db).update_price_inquiry(
        inquiry_id, status=request.status, admin_notes=request.admin_notes
    )
    return {"success": True, "inquiry": _inquiry_dict(inquiry)}

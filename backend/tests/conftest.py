"""Shared fixtures.

Services run against an in-memory SQLite database and a fake Redis so the
suite needs neither PostgreSQL nor a Redis server.
"""

import os

os.environ.setdefault("MAIL_ENABLED", "false")
os.environ.setdefault("INVOICE_PDF_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta
from decimal import Decimal

import fakeredis.aioredis
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from artgallery.core.database import Base
from artgallery.core.security import hash_password
from artgallery.models import shop, user  # noqa: F401
from artgallery.models.shop import (
    Author,
    Category,
    Coupon,
    DiscountType,
    Product,
    ProductStatus,
)
from artgallery.models.user import Address, User, UserRole
from artgallery.modules.shop.cart import CartService

PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with factory() as session:
        yield session


@pytest.fixture
async def fake_redis():
    """Create a fake Redis client for testing."""
    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
def cart(fake_redis):
    return CartService(redis_client=fake_redis)


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
def make_user(session, password_hash):
    async def _make(
        email: str = "buyer@example.com",
        name: str = "Ada Buyer",
        role: UserRole = UserRole.USER,
        verified: bool = True,
        **fields,
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            is_verified=verified,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        session.add(user)
        await session.flush()
        return user

    return _make


@pytest.fixture
def make_product(session):
    counter = {"n": 0}

    async def _make(**fields) -> Product:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "name": f"Artwork {n}",
            "slug": f"artwork-{n}",
            "sku": f"ART-TEST{n:04d}",
            "mrp_price": Decimal("100.00"),
            "stock": 5,
            "status": ProductStatus.ACTIVE,
            "images": [f"https://cdn.example.com/{n}.jpg"],
            "medium": "Oil on canvas",
        }
        values.update(fields)
        product = Product(**values)
        session.add(product)
        await session.flush()
        return product

    return _make


@pytest.fixture
def make_coupon(session):
    async def _make(code: str = "SAVE10", **fields) -> Coupon:
        values = {
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10"),
            "min_order_amount": Decimal("0"),
            "expiry_date": datetime.utcnow() + timedelta(days=30),
            "used_count": 0,
            "is_active": True,
        }
        values.update(fields)
        coupon = Coupon(code=code, **values)
        session.add(coupon)
        await session.flush()
        return coupon

    return _make


@pytest.fixture
async def author(session):
    author = Author(name="Frida Painter", slug="frida-painter", is_active=True)
    session.add(author)
    await session.flush()
    return author


@pytest.fixture
async def category(session):
    category = Category(name="Paintings", slug="paintings", is_active=True)
    session.add(category)
    await session.flush()
    return category


@pytest.fixture
def make_address(session):
    async def _make(user: User, **fields) -> Address:
        values = {
            "label": "Home",
            "street_line1": "350 5th Ave",
            "city": "New York",
            "state_code": "NY",
            "zip_code": "10118",
            "phone_number": "2125550100",
            "is_residential": True,
            "is_default": True,
        }
        values.update(fields)
        address = Address(user_id=user.id, **values)
        session.add(address)
        await session.flush()
        return address

    return _make

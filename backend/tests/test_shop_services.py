"""Tests for catalog, coupon, wishlist, subscriber and dashboard services."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from artgallery.core.errors import ConflictError, CouponError, NotFoundError, ValidationError
from artgallery.models.shop import (
    DiscountType,
    InquiryStatus,
    OrderStatus,
    ProductStatus,
)
from artgallery.modules.shop.coupons import CouponService, serialize_coupon
from artgallery.modules.shop.dashboard import get_dashboard_stats
from artgallery.modules.shop.orders import OrderService
from artgallery.modules.shop.service import ShopService, serialize_product
from artgallery.modules.shop.subscribers import SubscriberService
from artgallery.modules.shop.wishlist import WishlistService


class TestCatalog:
    @pytest.fixture
    def shop(self, session):
        return ShopService(session)

    async def test_create_product_generates_slug_and_sku(self, shop, category, author):
        product = await shop.create_product(
            "Blue Horizon", Decimal("850.00"), category_id=category.id, author_id=author.id
        )

        assert product.slug == "blue-horizon"
        assert product.sku.startswith("ART-")
        data = serialize_product(product, detailed=True)
        assert data["category"] == {"name": "Paintings", "slug": "paintings"}
        assert data["author"]["name"] == "Frida Painter"
        assert data["current_price"] == 850.0

    async def test_duplicate_names_get_distinct_slugs(self, shop):
        first = await shop.create_product("Still Life", Decimal("100"))
        second = await shop.create_product("Still Life", Decimal("120"))

        assert first.slug == "still-life"
        assert second.slug == "still-life-1"

    async def test_get_product_by_slug_or_id(self, shop, make_product):
        product = await make_product()

        assert (await shop.get_product(product.slug)).id == product.id
        assert (await shop.get_product(str(product.id))).id == product.id

    async def test_inactive_product_hidden(self, shop, make_product):
        product = await make_product(status=ProductStatus.DRAFT)

        with pytest.raises(NotFoundError):
            await shop.get_product(product.slug)
        assert (await shop.get_product(product.slug, include_inactive=True)).id == product.id

    async def test_filters(self, shop, make_product, category, author):
        await make_product(name="Sunset Oil", mrp_price=Decimal("300"), category_id=category.id)
        await make_product(name="Charcoal Study", mrp_price=Decimal("90"), author_id=author.id)
        await make_product(name="Hidden", status=ProductStatus.ARCHIVED)

        by_category, total = await shop.get_products(category_slug="paintings")
        assert [p.name for p in by_category] == ["Sunset Oil"]
        assert total == 1

        by_author, _ = await shop.get_products(author_slug="frida-painter")
        assert [p.name for p in by_author] == ["Charcoal Study"]

        cheap, _ = await shop.get_products(max_price=Decimal("100"))
        assert [p.name for p in cheap] == ["Charcoal Study"]

        found, _ = await shop.get_products(search="sunset")
        assert [p.name for p in found] == ["Sunset Oil"]

        by_price, total = await shop.get_products(sort="price_desc")
        assert [p.name for p in by_price] == ["Sunset Oil", "Charcoal Study"]
        assert total == 2

    async def test_update_product_renames_slug(self, shop, make_product):
        product = await make_product(name="Old Name")
        updated = await shop.update_product(product.id, name="New Name", stock=9)

        assert updated.slug == "new-name"
        assert updated.stock == 9

    async def test_delete_archives(self, shop, make_product):
        product = await make_product()
        await shop.delete_product(product.id)
        assert product.status == ProductStatus.ARCHIVED

    async def test_category_in_use(self, shop, make_product, category):
        await make_product(category_id=category.id)
        with pytest.raises(ValidationError):
            await shop.delete_category(category.id)

    async def test_duplicate_category(self, shop, category):
        with pytest.raises(ConflictError):
            await shop.create_category("Paintings")

    async def test_author_crud(self, shop):
        author = await shop.create_author("Claude Monet", bio="Impressionist")
        assert author.slug == "claude-monet"

        renamed = await shop.update_author(author.id, name="Oscar-Claude Monet")
        assert renamed.slug == "oscar-claude-monet"

        await shop.delete_author(author.id)
        with pytest.raises(NotFoundError):
            await shop.get_author("oscar-claude-monet")

    async def test_price_inquiry(self, shop, make_product):
        product = await make_product(ask_for_price=True)
        inquiry = await shop.create_price_inquiry(
            product.id, full_name="Grace Collector", email="grace@example.com", mobile="5550100"
        )
        assert inquiry.status == InquiryStatus.PENDING

        updated = await shop.update_price_inquiry(
            inquiry.id, status=InquiryStatus.CONTACTED, admin_notes="Called"
        )
        assert updated.status == InquiryStatus.CONTACTED

        pending = await shop.get_price_inquiries(status=InquiryStatus.PENDING)
        assert pending == []

    async def test_price_inquiry_for_listed_price(self, shop, make_product):
        product = await make_product(ask_for_price=False)
        with pytest.raises(ValidationError):
            await shop.create_price_inquiry(
                product.id, full_name="A", email="a@example.com", mobile="1"
            )


class TestCoupons:
    @pytest.fixture
    def coupons(self, session):
        return CouponService(session)

    async def test_apply_preview(self, coupons, make_coupon):
        coupon = await make_coupon("WELCOME", discount_type=DiscountType.FIXED, discount_value=Decimal("20"))

        result = await coupons.apply("welcome", Decimal("120"))

        assert result == {
            "code": "WELCOME",
            "discount_type": "fixed",
            "discount_value": 20.0,
            "discount": 20.0,
            "final_amount": 100.0,
        }
        assert coupon.used_count == 0

    async def test_apply_unknown(self, coupons):
        with pytest.raises(CouponError) as exc_info:
            await coupons.apply("NOPE", Decimal("50"))
        assert exc_info.value.status_code == 404

    async def test_apply_expired(self, coupons, make_coupon):
        await make_coupon("OLD", expiry_date=datetime.utcnow() - timedelta(days=1))
        with pytest.raises(CouponError):
            await coupons.apply("OLD", Decimal("50"))

    async def test_create_duplicate(self, coupons, make_coupon):
        await make_coupon("SPRING")
        with pytest.raises(ConflictError):
            await coupons.create(
                "spring",
                discount_type=DiscountType.PERCENTAGE,
                discount_value=Decimal("5"),
                expiry_date=datetime.utcnow() + timedelta(days=5),
            )

    async def test_update_and_delete(self, coupons, make_coupon):
        coupon = await make_coupon("SUMMER")

        updated = await coupons.update(coupon.id, usage_limit=10, is_active=False)
        assert serialize_coupon(updated)["usage_limit"] == 10
        assert updated.is_active is False

        await coupons.delete(coupon.id)
        assert await coupons.get_by_code("SUMMER") is None

        with pytest.raises(NotFoundError):
            await coupons.delete(coupon.id)


class TestWishlist:
    @pytest.fixture
    def wishlist(self, session):
        return WishlistService(session)

    async def test_add_and_list(self, wishlist, make_user, make_product, category):
        user = await make_user()
        product = await make_product(name="Night Market", category_id=category.id)

        await wishlist.add(user.id, product.id)

        items = await wishlist.get_items(user.id)
        assert [p.id for p in items] == [product.id]
        assert serialize_product(items[0])["category"]["slug"] == "paintings"
        assert await wishlist.contains(user.id, product.id)

    async def test_duplicate(self, wishlist, make_user, make_product):
        user = await make_user()
        product = await make_product()
        await wishlist.add(user.id, product.id)

        with pytest.raises(ConflictError):
            await wishlist.add(user.id, product.id)

    async def test_inactive_products_not_listed(self, wishlist, make_user, make_product, session):
        user = await make_user()
        product = await make_product()
        await wishlist.add(user.id, product.id)
        product.status = ProductStatus.ARCHIVED
        await session.flush()

        assert await wishlist.get_items(user.id) == []

    async def test_remove(self, wishlist, make_user, make_product):
        user = await make_user()
        product = await make_product()
        await wishlist.add(user.id, product.id)

        await wishlist.remove(user.id, product.id)

        assert not await wishlist.contains(user.id, product.id)
        with pytest.raises(NotFoundError):
            await wishlist.remove(user.id, product.id)


class TestSubscribers:
    @pytest.fixture
    def subscribers(self, session):
        return SubscriberService(session)

    async def test_subscribe(self, subscribers):
        subscriber, reactivated = await subscribers.subscribe(" Reader@Example.com ", name="Reader")

        assert subscriber.email == "reader@example.com"
        assert reactivated is False

    async def test_already_subscribed(self, subscribers):
        await subscribers.subscribe("reader@example.com")
        with pytest.raises(ConflictError):
            await subscribers.subscribe("reader@example.com")

    async def test_resubscribe_reactivates(self, subscribers):
        await subscribers.subscribe("reader@example.com")
        await subscribers.unsubscribe("READER@example.com")

        subscriber, reactivated = await subscribers.subscribe("reader@example.com")

        assert reactivated is True
        assert subscriber.is_active is True

    async def test_unsubscribe_unknown(self, subscribers):
        with pytest.raises(NotFoundError):
            await subscribers.unsubscribe("ghost@example.com")

    async def test_list_active_only(self, subscribers):
        await subscribers.subscribe("a@example.com")
        await subscribers.subscribe("b@example.com")
        await subscribers.unsubscribe("b@example.com")

        active = await subscribers.list_subscribers(active_only=True)
        assert [s.email for s in active] == ["a@example.com"]
        assert len(await subscribers.list_subscribers()) == 2


class TestDashboard:
    async def test_stats(self, session, cart, make_user, make_address, make_product):
        user = await make_user()
        await make_address(user)
        product = await make_product(stock=3, low_stock_threshold=2)
        await cart.add_item(session, user.id, product.id, 2)
        orders = OrderService(session, cart)
        order = await orders.create_order(user)
        await orders.mark_paid(order)

        stats = await get_dashboard_stats(session)

        assert stats["counts"]["users"] == 1
        assert stats["counts"]["orders"] == 1
        assert stats["revenue"] == float(order.total_amount)
        assert stats["orders_by_status"][OrderStatus.CONFIRMED.value] == 1
        assert stats["orders_by_status"][OrderStatus.PENDING.value] == 0
        assert [p["id"] for p in stats["low_stock_products"]] == [product.id]
        assert stats["recent_orders"][0]["customer"] == "Ada Buyer"

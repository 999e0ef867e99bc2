"""Tests for the Redis-backed cart.

Uses fakeredis and an in-memory SQLite catalog.
"""

import json
from decimal import Decimal

import pytest

from artgallery.core.errors import NotFoundError, ValidationError
from artgallery.models.shop import ProductStatus

USER_ID = 42


class TestAddItem:
    async def test_add_item_returns_priced_cart(self, cart, session, make_product, author):
        product = await make_product(author_id=author.id, mrp_price=Decimal("120.00"))

        summary = await cart.add_item(session, USER_ID, product.id, 2)

        assert summary["items_count"] == 2
        assert summary["total"] == 240.0
        line = summary["items"][0]
        assert line["product"]["id"] == product.id
        assert line["product"]["author"] == "Frida Painter"
        assert line["price"] == 120.0
        assert line["line_total"] == 240.0

    async def test_add_same_product_merges_lines(self, cart, session, make_product):
        product = await make_product(stock=5)

        await cart.add_item(session, USER_ID, product.id, 1)
        summary = await cart.add_item(session, USER_ID, product.id, 2)

        assert len(summary["items"]) == 1
        assert summary["items"][0]["quantity"] == 3

    async def test_add_beyond_stock(self, cart, session, make_product):
        product = await make_product(stock=2)
        await cart.add_item(session, USER_ID, product.id, 2)

        with pytest.raises(ValidationError, match="Only 2 items available in stock"):
            await cart.add_item(session, USER_ID, product.id, 1)

    async def test_add_inactive_product(self, cart, session, make_product):
        product = await make_product(status=ProductStatus.DRAFT)
        with pytest.raises(NotFoundError):
            await cart.add_item(session, USER_ID, product.id, 1)

    async def test_add_unknown_product(self, cart, session):
        with pytest.raises(NotFoundError):
            await cart.add_item(session, USER_ID, 9999, 1)

    async def test_quantity_must_be_positive(self, cart, session, make_product):
        product = await make_product()
        with pytest.raises(ValidationError):
            await cart.add_item(session, USER_ID, product.id, 0)

    async def test_stored_as_ids_and_quantities(self, cart, session, make_product, fake_redis):
        product = await make_product()
        await cart.add_item(session, USER_ID, product.id, 1)

        stored = json.loads(await fake_redis.get(f"cart:{USER_ID}"))
        assert stored == [{"product_id": product.id, "quantity": 1}]
        assert await fake_redis.ttl(f"cart:{USER_ID}") > 0


class TestGetCart:
    async def test_empty_cart(self, cart, session):
        summary = await cart.get_cart(session, USER_ID)
        assert summary == {"items": [], "total": 0.0, "items_count": 0}

    async def test_prices_resolved_on_read(self, cart, session, make_product):
        product = await make_product(mrp_price=Decimal("100.00"))
        await cart.add_item(session, USER_ID, product.id, 1)

        product.discount_price = Decimal("80.00")
        product.offer_active = True
        await session.flush()

        summary = await cart.get_cart(session, USER_ID)
        assert summary["total"] == 80.0

    async def test_prunes_unavailable_products(self, cart, session, make_product, fake_redis):
        kept = await make_product()
        archived = await make_product()
        sold_out = await make_product()
        for product in (kept, archived, sold_out):
            await cart.add_item(session, USER_ID, product.id, 1)

        archived.status = ProductStatus.ARCHIVED
        sold_out.stock = 0
        await session.flush()

        summary = await cart.get_cart(session, USER_ID)

        assert [line["product"]["id"] for line in summary["items"]] == [kept.id]
        stored = json.loads(await fake_redis.get(f"cart:{USER_ID}"))
        assert stored == [{"product_id": kept.id, "quantity": 1}]

    async def test_quantity_clamped_to_stock(self, cart, session, make_product):
        product = await make_product(stock=4)
        await cart.add_item(session, USER_ID, product.id, 4)

        product.stock = 1
        await session.flush()

        summary = await cart.get_cart(session, USER_ID)
        assert summary["items"][0]["quantity"] == 1

    async def test_invalid_stored_data(self, cart, session, fake_redis):
        await fake_redis.set(f"cart:{USER_ID}", "not-json")
        assert await cart.get_items(USER_ID) == []


class TestUpdateAndRemove:
    async def test_update_quantity(self, cart, session, make_product):
        product = await make_product(stock=5)
        await cart.add_item(session, USER_ID, product.id, 1)

        summary = await cart.update_quantity(session, USER_ID, product.id, 4)
        assert summary["items_count"] == 4

    async def test_update_missing_line(self, cart, session, make_product):
        product = await make_product()
        with pytest.raises(NotFoundError, match="Item not found in cart"):
            await cart.update_quantity(session, USER_ID, product.id, 1)

    async def test_update_beyond_stock(self, cart, session, make_product):
        product = await make_product(stock=2)
        await cart.add_item(session, USER_ID, product.id, 1)
        with pytest.raises(ValidationError):
            await cart.update_quantity(session, USER_ID, product.id, 3)

    async def test_remove_item(self, cart, session, make_product):
        first = await make_product()
        second = await make_product()
        await cart.add_item(session, USER_ID, first.id, 1)
        await cart.add_item(session, USER_ID, second.id, 1)

        summary = await cart.remove_item(session, USER_ID, first.id)
        assert [line["product"]["id"] for line in summary["items"]] == [second.id]

    async def test_clear_deletes_key(self, cart, session, make_product, fake_redis):
        product = await make_product()
        await cart.add_item(session, USER_ID, product.id, 1)

        await cart.clear(USER_ID)

        assert await fake_redis.exists(f"cart:{USER_ID}") == 0

    async def test_carts_are_per_user(self, cart, session, make_product):
        product = await make_product()
        await cart.add_item(session, USER_ID, product.id, 1)

        other = await cart.get_cart(session, USER_ID + 1)
        assert other["items"] == []

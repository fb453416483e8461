"""
Tests for the wishlist aggregate.
"""
from datetime import datetime, timedelta, timezone

import pytest

from storefront.core.storage import storage_key
from storefront.services.wishlist_service import Wishlist


@pytest.fixture
async def wishlist(store):
    return await Wishlist(store, "buyer@example.com").load()


class TestToggle:

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_state_with_one_notification_each(
        self, wishlist, sample_products, notifications
    ):
        product = sample_products[0]

        assert await wishlist.toggle_wishlist_item(product) is True
        assert wishlist.is_in_wishlist("p1")
        assert await wishlist.toggle_wishlist_item(product) is False
        assert not wishlist.is_in_wishlist("p1")

        assert [n.title for n in notifications] == [
            "Wireless Headphones added to wishlist",
            "Wireless Headphones removed from wishlist",
        ]
        assert notifications[1].variant == "destructive"

    @pytest.mark.asyncio
    async def test_added_at_is_utc(self, wishlist, store, sample_products):
        await wishlist.toggle_wishlist_item(sample_products[0])

        line = wishlist.lines[0]
        assert line.added_at.tzinfo is not None
        stored = await store.get(storage_key("wishlist", "buyer@example.com"))
        assert stored[0]["productId"] == "p1"
        assert "addedAt" in stored[0]


class TestRemove:

    @pytest.mark.asyncio
    async def test_remove_with_name_notifies(self, wishlist, sample_products, notifications):
        await wishlist.toggle_wishlist_item(sample_products[1])
        notifications.clear()

        assert await wishlist.remove_from_wishlist("p2", "Coffee Mug") is True
        assert notifications[0].title == "Coffee Mug removed from wishlist"

    @pytest.mark.asyncio
    async def test_remove_without_name_is_silent(self, wishlist, sample_products, notifications):
        await wishlist.toggle_wishlist_item(sample_products[1])
        notifications.clear()

        assert await wishlist.remove_from_wishlist("p2") is True
        assert notifications == []

    @pytest.mark.asyncio
    async def test_remove_absent(self, wishlist, notifications):
        assert await wishlist.remove_from_wishlist("p9", "Ghost") is False
        assert notifications == []


@pytest.mark.asyncio
async def test_display_order_newest_first(store):
    now = datetime.now(timezone.utc)
    await store.set(storage_key("wishlist", "u"), [
        {"productId": "old", "addedAt": (now - timedelta(days=2)).isoformat()},
        {"productId": "new", "addedAt": now.isoformat()},
        {"productId": "mid", "addedAt": (now - timedelta(days=1)).isoformat()},
    ])

    wishlist = await Wishlist(store, "u").load()

    assert [l.product_id for l in wishlist.display_order()] == ["new", "mid", "old"]
    assert wishlist.get_wishlist_item_count() == 3

"""
Tests for product line resolution.
"""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from storefront.schemas.cart import CartDisplayItem, CartLine
from storefront.schemas.product import Product
from storefront.schemas.wishlist import WishlistDisplayItem, WishlistLine
from storefront.services.resolver import LineResolver


class TestResolve:

    @pytest.mark.asyncio
    async def test_cart_lines_become_display_items(self, catalog):
        resolver = LineResolver(catalog)

        resolved = await resolver.resolve([
            CartLine(product_id="p2", quantity=3),
            CartLine(product_id="p1", quantity=1),
        ])

        assert [i.id for i in resolved.items] == ["p2", "p1"]
        assert isinstance(resolved.items[0], CartDisplayItem)
        assert resolved.items[0].quantity == 3
        assert resolved.items[0].price == Decimal("15.50")
        assert resolver.current is resolved

    @pytest.mark.asyncio
    async def test_wishlist_lines_keep_added_at(self, catalog):
        added = datetime(2024, 5, 1, tzinfo=timezone.utc)

        resolved = await LineResolver(catalog).resolve([WishlistLine(product_id="p3", added_at=added)])

        assert isinstance(resolved.items[0], WishlistDisplayItem)
        assert resolved.items[0].added_at == added

    @pytest.mark.asyncio
    async def test_missing_products_dropped_silently(self, catalog, notifications):
        resolved = await LineResolver(catalog, catalog.bus).resolve([
            CartLine(product_id="p1", quantity=1),
            CartLine(product_id="gone", quantity=2),
        ])

        assert [i.id for i in resolved.items] == ["p1"]
        assert resolved.missing_ids == ["gone"]
        assert notifications == []

    @pytest.mark.asyncio
    async def test_lookup_failure_reported(self, bus, notifications):
        catalog = AsyncMock()
        catalog.fetch_product_by_id = AsyncMock(side_effect=ConnectionError("catalog down"))

        resolved = await LineResolver(catalog, bus, user_key="u").resolve([CartLine(product_id="p1", quantity=1)])

        assert resolved.items == []
        assert resolved.unresolved_ids == ["p1"]
        assert notifications[0].variant == "destructive"
        assert notifications[0].user_key == "u"

    @pytest.mark.asyncio
    async def test_empty_lines(self, catalog):
        resolved = await LineResolver(catalog).resolve([])
        assert resolved.items == []
        assert resolved.generation == 1

    @pytest.mark.asyncio
    async def test_stale_batch_discarded(self):
        slow_started = asyncio.Event()
        release_slow = asyncio.Event()

        async def fetch(product_id):
            if product_id == "slow":
                slow_started.set()
                await release_slow.wait()
            return Product(id=product_id, name=product_id, price=Decimal("1"))

        catalog = AsyncMock()
        catalog.fetch_product_by_id = fetch
        resolver = LineResolver(catalog)

        first = asyncio.create_task(resolver.resolve([CartLine(product_id="slow", quantity=1)]))
        await slow_started.wait()

        second = await resolver.resolve([CartLine(product_id="fast", quantity=1)])
        release_slow.set()
        stale = await first

        assert stale is None
        assert second.generation == 2
        assert [i.id for i in resolver.current.items] == ["fast"]

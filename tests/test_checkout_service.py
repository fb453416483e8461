"""
Tests for the checkout session, payment flow and order history.
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from storefront.core.exceptions import (
    CheckoutError,
    CouponAlreadyAppliedError,
    CouponValidationError,
    PaymentDeclinedError,
    PaymentError,
)
from storefront.schemas.checkout import PaymentResult
from storefront.services.checkout_service import CheckoutSession, CheckoutSessionRegistry
from storefront.services.payment import MockPaymentGateway
from storefront.services.resolver import LineResolver

USER = "buyer@example.com"


@pytest.fixture
async def cart(storefront):
    return await storefront.cart(USER)


@pytest.fixture
async def book(storefront):
    return await storefront.address_book(USER)


@pytest.fixture
async def orders(storefront):
    return await storefront.orders(USER)


@pytest.fixture
def session(storefront):
    return storefront.sessions.get(USER)


@pytest.fixture
async def ready(cart, book, session, sample_products, address_data):
    """Cart with 2 x p1 (100 each) and a selected address."""
    await cart.add_to_cart(sample_products[0], 2)
    address = await book.add_address(address_data)
    await book.select_checkout_address(address.id)
    await session.refresh_items(cart)
    return address


class TestRegistry:

    def test_one_session_per_user(self, storefront):
        assert storefront.sessions.get("a") is storefront.sessions.get("a")
        assert storefront.sessions.get("a") is not storefront.sessions.get("b")

    def test_discard(self, storefront):
        first = storefront.sessions.get("a")
        storefront.sessions.discard("a")
        assert storefront.sessions.get("a") is not first

    def test_least_recently_used_session_is_dropped(self, storefront):
        registry = CheckoutSessionRegistry(storefront.coupon_service, storefront.catalog, storefront.bus, max_sessions=2)
        first = registry.get("a")
        registry.get("b")
        registry.get("a")
        registry.get("c")

        assert len(registry) == 2
        assert "b" not in registry
        assert registry.get("a") is first

    def test_max_sessions_must_be_positive(self, storefront):
        with pytest.raises(ValueError):
            CheckoutSessionRegistry(storefront.coupon_service, storefront.catalog, storefront.bus, max_sessions=0)


class TestApplyCoupon:

    @pytest.mark.asyncio
    async def test_fixed_coupon_totals(self, session, ready, notifications):
        applied = await session.apply_coupon("fixed5")

        assert applied.code == "FIXED5"
        assert applied.discount_amount == Decimal("5")
        totals = session.totals()
        assert (totals.subtotal, totals.discount, totals.total) == (Decimal("200"), Decimal("5"), Decimal("195"))
        assert notifications[-1].title == "Coupon Applied"
        assert notifications[-1].description == "Discount of ₹5.00 applied."

    @pytest.mark.asyncio
    async def test_blank_code(self, session, ready, notifications):
        with pytest.raises(CouponValidationError) as exc_info:
            await session.apply_coupon("   ")

        assert exc_info.value.code == "EMPTY"
        assert exc_info.value.message == "Please enter a coupon code."
        assert notifications[-1].title == "Coupon Error"

    @pytest.mark.asyncio
    async def test_invalid_code_leaves_no_coupon(self, session, ready, notifications):
        with pytest.raises(CouponValidationError) as exc_info:
            await session.apply_coupon("EXPIRED")

        assert exc_info.value.code == "EXPIRED"
        assert session.applied_coupon is None
        assert notifications[-1].description == "This coupon has expired."

    @pytest.mark.asyncio
    async def test_minimum_purchase_against_subtotal(self, session, cart, storefront, sample_products, notifications):
        # 40 < SAVE10 minimum of 50
        await storefront.catalog.update_product_in_store("p2", {"price": "40"})
        await cart.add_to_cart(sample_products[1], 1)
        await session.refresh_items(cart)

        with pytest.raises(CouponValidationError) as exc_info:
            await session.apply_coupon("SAVE10")

        assert exc_info.value.message == "Minimum purchase of ₹50.00 required for this coupon."
        assert session.totals().total == Decimal("40")

    @pytest.mark.asyncio
    async def test_only_one_coupon(self, session, ready):
        await session.apply_coupon("FIXED5")

        with pytest.raises(CouponAlreadyAppliedError):
            await session.apply_coupon("SAVE10")

        assert session.applied_coupon.code == "FIXED5"

    @pytest.mark.asyncio
    async def test_discount_follows_current_subtotal(self, session, cart, ready):
        await session.apply_coupon("SAVE10")
        assert session.totals().discount == Decimal("20")

        await cart.update_quantity("p1", 1)
        await session.refresh_items(cart)

        assert session.totals().discount == Decimal("10")
        assert session.applied_coupon.discount_amount == Decimal("10")

    @pytest.mark.asyncio
    async def test_remove_coupon(self, session, ready, notifications):
        await session.apply_coupon("FIXED5")

        assert await session.remove_coupon() is True
        assert session.applied_coupon is None
        assert session.totals().total == Decimal("200")
        assert notifications[-1].title == "Coupon Removed"
        assert await session.remove_coupon() is False

    @pytest.mark.asyncio
    async def test_empty_cart_clears_coupon(self, session, cart, ready):
        await session.apply_coupon("FIXED5")

        await cart.remove_from_cart("p1")
        await session.refresh_items(cart)

        assert session.applied_coupon is None
        assert session.items == []


class TestPlaceOrder:

    @pytest.mark.asyncio
    async def test_success(self, session, cart, book, orders, ready, notifications):
        await session.apply_coupon("FIXED5")

        order = await session.place_order(cart, book, MockPaymentGateway(delay_seconds=0), orders)

        assert order.total == Decimal("195")
        assert order.coupon_code == "FIXED5"
        assert order.transaction_id.startswith("TXN_")
        assert order.address.id == ready.id
        assert [(i.product_id, i.quantity) for i in order.items] == [("p1", 2)]
        assert not cart.has_items_in_cart()
        assert session.applied_coupon is None
        assert orders.list_orders() == [order]
        assert notifications[-1].title == "Payment Successful!"

    @pytest.mark.asyncio
    async def test_phonepe_method(self, session, cart, book, orders, ready):
        order = await session.place_order(cart, book, MockPaymentGateway(delay_seconds=0), orders, method="phonepe")

        assert order.transaction_id.startswith("PHNPE_")
        assert order.payment_method == "phonepe"

    @pytest.mark.asyncio
    async def test_gateway_receives_total(self, session, cart, book, orders, ready):
        gateway = AsyncMock()
        gateway.process_payment = AsyncMock(return_value=PaymentResult(success=True, transaction_id="T1"))

        await session.place_order(cart, book, gateway, orders)

        amount, info = gateway.process_payment.await_args.args
        assert amount == Decimal("200")
        assert info.user_key == USER

    @pytest.mark.asyncio
    async def test_requires_selected_address(self, session, cart, book, orders, sample_products):
        await cart.add_to_cart(sample_products[0])

        with pytest.raises(CheckoutError) as exc_info:
            await session.place_order(cart, book, MockPaymentGateway(0), orders)

        assert exc_info.value.code == "NO_ADDRESS"

    @pytest.mark.asyncio
    async def test_requires_items(self, session, cart, book, orders, address_data):
        address = await book.add_address(address_data)
        await book.select_checkout_address(address.id)

        with pytest.raises(CheckoutError) as exc_info:
            await session.place_order(cart, book, MockPaymentGateway(0), orders)

        assert exc_info.value.code == "EMPTY_CART"

    @pytest.mark.asyncio
    async def test_requires_positive_total(self, session, cart, book, orders, ready, storefront):
        await storefront.coupon_store.add_coupon_to_store({"code": "ALLFREE", "type": "percentage", "discountValue": 100})
        await session.apply_coupon("ALLFREE")

        with pytest.raises(CheckoutError) as exc_info:
            await session.place_order(cart, book, MockPaymentGateway(0), orders)

        assert exc_info.value.code == "ZERO_TOTAL"

    @pytest.mark.asyncio
    async def test_declined_payment_changes_nothing(self, session, cart, book, orders, ready, notifications):
        await session.apply_coupon("FIXED5")
        gateway = AsyncMock()
        gateway.process_payment = AsyncMock(return_value=PaymentResult(success=False, message="Card declined"))

        with pytest.raises(PaymentDeclinedError) as exc_info:
            await session.place_order(cart, book, gateway, orders)

        assert exc_info.value.message == "Card declined"
        assert cart.get_item_quantity("p1") == 2
        assert session.applied_coupon.code == "FIXED5"
        assert book.get_selected_checkout_address().id == ready.id
        assert orders.list_orders() == []
        assert notifications[-1].title == "Payment Failed"

    @pytest.mark.asyncio
    async def test_gateway_exception_becomes_payment_error(self, session, cart, book, orders, ready, caplog):
        gateway = AsyncMock()
        gateway.process_payment = AsyncMock(side_effect=TimeoutError("gateway timeout"))

        with pytest.raises(PaymentError) as exc_info:
            await session.place_order(cart, book, gateway, orders)

        assert not isinstance(exc_info.value, PaymentDeclinedError)
        assert cart.get_item_quantity("p1") == 2
        assert "payment gateway error" in caplog.text


class TestOrderHistory:

    @pytest.mark.asyncio
    async def test_newest_first_and_persisted(self, session, cart, book, orders, ready, storefront, sample_products):
        gateway = MockPaymentGateway(0)
        first = await session.place_order(cart, book, gateway, orders)
        await cart.add_to_cart(sample_products[2], 1)
        second = await session.place_order(cart, book, gateway, orders)

        reloaded = await storefront.orders(USER)

        assert [o.order_id for o in reloaded.list_orders()] == [second.order_id, first.order_id]
        assert reloaded.list_orders()[1].total == Decimal("200")


class GatedCatalog:
    """Catalog whose lookups wait until the gate is opened."""

    def __init__(self, catalog):
        self.catalog = catalog
        self.gate = asyncio.Event()

    async def fetch_product_by_id(self, product_id):
        await self.gate.wait()
        return await self.catalog.fetch_product_by_id(product_id)


class TestConcurrentRefresh:

    @pytest.mark.asyncio
    async def test_payment_charges_current_cart_during_refresh(
        self, storefront, cart, book, orders, sample_products, address_data
    ):
        gated = GatedCatalog(storefront.catalog)
        session = CheckoutSession(
            USER, storefront.coupon_service, LineResolver(gated, storefront.bus, user_key=USER), storefront.bus
        )
        address = await book.add_address(address_data)
        await book.select_checkout_address(address.id)

        # summary viewed while the cart held the 100 item
        await cart.add_to_cart(sample_products[0], 1)
        gated.gate.set()
        await session.refresh_items(cart)
        gated.gate.clear()

        await cart.remove_from_cart("p1")
        await cart.add_to_cart(sample_products[1], 1)

        pay = asyncio.create_task(session.place_order(cart, book, MockPaymentGateway(0), orders))
        await asyncio.sleep(0)
        poll = asyncio.create_task(session.refresh_items(cart))
        await asyncio.sleep(0)
        gated.gate.set()
        order = await pay
        await poll

        assert [i.product_id for i in order.items] == ["p2"]
        assert order.total == Decimal("15.50")

    @pytest.mark.asyncio
    async def test_stale_cached_rows_are_not_charged(self, session, cart, book, orders, ready, sample_products):
        # cached rows still show 2 x p1; the stored cart now holds 1 x p3
        await cart.remove_from_cart("p1")
        await cart.add_to_cart(sample_products[2], 1)
        assert [i.id for i in session.items] == ["p1"]

        order = await session.place_order(cart, book, MockPaymentGateway(0), orders)

        assert [(i.product_id, i.quantity) for i in order.items] == [("p3", 1)]
        assert order.total == Decimal("60")

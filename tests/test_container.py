"""
Tests for service wiring.
"""
import pytest

from storefront.core.config import Settings
from storefront.core.storage import InMemoryKeyValueStore
from storefront.services.container import build_storefront
from storefront.services.payment import MockPaymentGateway, StripePaymentGateway
from storefront.services.product_service import StoredProductCatalog


def dev_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "development",
        "STORAGE_BACKEND": "memory",
        "PRODUCT_BACKEND": "storage",
        "STORAGE_KEY_PREFIX": "shop",
        "PAYMENT_SIMULATED_DELAY_SECONDS": 0.25,
        **overrides,
    }
    return Settings(_env_file=None, **values)


@pytest.mark.asyncio
async def test_memory_build(subscriber_count):
    storefront = await build_storefront(dev_settings())

    assert isinstance(storefront.store, InMemoryKeyValueStore)
    assert isinstance(storefront.catalog, StoredProductCatalog)
    assert isinstance(storefront.gateway, MockPaymentGateway)
    assert storefront.gateway.delay_seconds == 0.25
    assert storefront.coupon_store.key == "shop-coupons"
    assert subscriber_count(storefront.bus, "storage") == 2

    await storefront.close()

    assert subscriber_count(storefront.bus, "storage") == 0


@pytest.mark.asyncio
async def test_stripe_gateway_selected():
    storefront = await build_storefront(dev_settings(PAYMENT_PROVIDER="stripe", STRIPE_SECRET_KEY="sk_test_abc"))

    assert isinstance(storefront.gateway, StripePaymentGateway)
    assert storefront.gateway.api_key == "sk_test_abc"
    await storefront.close()


@pytest.mark.asyncio
async def test_aggregates_use_prefix():
    storefront = await build_storefront(dev_settings())

    cart = await storefront.cart("buyer@example.com")

    assert cart.key == "shop-cart-buyer@example.com"
    await storefront.close()

"""
Pytest configuration and fixtures for storefront tests.
"""
import os
from decimal import Decimal
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = ""
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["PRODUCT_BACKEND"] = "storage"
os.environ["SELLER_API_KEY"] = "test-seller-key-for-unit-tests"
os.environ["PAYMENT_PROVIDER"] = "mock"
os.environ["PAYMENT_SIMULATED_DELAY_SECONDS"] = "0"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CURRENCY_SYMBOL"] = "₹"

from storefront.core.events import NOTIFICATION_TOPIC, EventBus  # noqa: E402
from storefront.core.storage import InMemoryKeyValueStore, storage_key  # noqa: E402
from storefront.schemas.product import Product  # noqa: E402
from storefront.services.container import assemble  # noqa: E402
from storefront.services.product_service import StoredProductCatalog  # noqa: E402


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(bus) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(bus)


@pytest.fixture
def notifications(bus) -> list:
    """Collects every notification published on the bus."""
    received = []
    bus.subscribe(NOTIFICATION_TOPIC, received.append)
    return received


@pytest.fixture
def sample_products() -> List[Product]:
    return [
        Product(
            id="p1",
            name="Wireless Headphones",
            description="Noise cancelling over-ear headphones",
            price=Decimal("100"),
            original_price=Decimal("129.99"),
            category="Electronics",
            rating=4.5,
            stock=10,
        ),
        Product(
            id="p2",
            name="Coffee Mug",
            description="Ceramic mug, 350 ml",
            price=Decimal("15.50"),
            category="Kitchen",
            rating=4.0,
            stock=50,
        ),
        Product(
            id="p3",
            name="Running Shoes",
            description="Lightweight shoes for daily running",
            price=Decimal("60"),
            category="Sports",
            rating=4.8,
            stock=5,
        ),
    ]


@pytest.fixture
async def catalog(store, sample_products) -> StoredProductCatalog:
    await store.set(storage_key("products"), [p.to_storage() for p in sample_products])
    return await StoredProductCatalog(store).load()


@pytest.fixture
def storefront(store, catalog):
    """Fully wired services over the in-memory store."""
    return assemble(store, catalog=catalog, currency_symbol="₹")


@pytest.fixture
def address_data() -> dict:
    return {
        "fullName": "Asha Verma",
        "streetAddress": "12 MG Road",
        "apartmentSuite": "Flat 4B",
        "city": "Bengaluru",
        "state": "Karnataka",
        "zipCode": "560001",
        "country": "India",
        "phoneNumber": "+91 98765 43210",
    }


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.close = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def session_factory(mock_db) -> MagicMock:
    """Callable returning an async context manager that yields mock_db."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=mock_db)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


@pytest.fixture
def put_raw():
    """Write text straight into an in-memory store, skipping serialization and events."""
    def _put(store, key, raw):
        store._data[key] = raw
    return _put


@pytest.fixture
def subscriber_count():
    return lambda bus, topic: len(bus._handlers.get(topic, []))

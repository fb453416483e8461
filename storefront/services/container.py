"""
Service container

Builds the process-wide services from settings. Shared objects (event bus,
key-value store, coupon store, catalog, payment gateway, checkout sessions)
are created once; per-user aggregates are loaded from storage on demand.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from storefront.core.config import Settings
from storefront.core.events import EventBus
from storefront.core.storage import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    SqlKeyValueStore,
)
from storefront.services.address_service import AddressBook
from storefront.services.cart_service import Cart
from storefront.services.checkout_service import CheckoutSessionRegistry, OrderHistory
from storefront.services.content_service import HomeContentService
from storefront.services.coupon_service import CouponService, CouponStore
from storefront.services.payment import MockPaymentGateway, PaymentGateway, StripePaymentGateway
from storefront.services.product_service import ProductCatalog, SqlProductCatalog, StoredProductCatalog
from storefront.services.resolver import LineResolver
from storefront.services.wishlist_service import Wishlist

logger = logging.getLogger(__name__)


@dataclass
class Storefront:
    bus: EventBus
    store: KeyValueStore
    catalog: ProductCatalog
    coupon_store: CouponStore
    coupon_service: CouponService
    gateway: PaymentGateway
    content: HomeContentService
    sessions: CheckoutSessionRegistry
    key_prefix: Optional[str] = None
    uses_database: bool = False
    uses_redis: bool = False
    _closed: bool = field(default=False, repr=False)

    async def cart(self, user_key: str) -> Cart:
        return await Cart(self.store, user_key, key_prefix=self.key_prefix).load()

    async def wishlist(self, user_key: str) -> Wishlist:
        return await Wishlist(self.store, user_key, key_prefix=self.key_prefix).load()

    async def address_book(self, user_key: str) -> AddressBook:
        return await AddressBook(self.store, user_key, key_prefix=self.key_prefix).load()

    async def orders(self, user_key: str) -> OrderHistory:
        return await OrderHistory(self.store, user_key, key_prefix=self.key_prefix).load()

    def resolver(self, user_key: Optional[str] = None) -> LineResolver:
        return LineResolver(self.catalog, self.bus, user_key=user_key)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.coupon_store.unwatch()
        if isinstance(self.catalog, StoredProductCatalog):
            self.catalog.unwatch()
        await self.store.close()
        if self.uses_redis:
            from storefront.core.redis_client import close_redis
            await close_redis()
        if self.uses_database:
            from storefront.core.database import dispose_engine
            await dispose_engine()
        logger.info("Storefront services closed")


def assemble(
    store: KeyValueStore,
    catalog: Optional[ProductCatalog] = None,
    gateway: Optional[PaymentGateway] = None,
    currency_symbol: str = "",
    seed_coupons: bool = True,
    key_prefix: Optional[str] = None,
    max_sessions: int = 10000,
) -> Storefront:
    """Wire services around an existing store. Used by build_storefront and tests."""
    bus = store.bus
    if catalog is None:
        catalog = StoredProductCatalog(store, key_prefix=key_prefix)
    if isinstance(catalog, StoredProductCatalog):
        catalog.watch()

    coupon_store = CouponStore(store, seed_defaults=seed_coupons, key_prefix=key_prefix)
    coupon_store.watch()
    coupon_service = CouponService(coupon_store, currency_symbol=currency_symbol)

    return Storefront(
        bus=bus,
        store=store,
        catalog=catalog,
        coupon_store=coupon_store,
        coupon_service=coupon_service,
        gateway=gateway or MockPaymentGateway(delay_seconds=0),
        content=HomeContentService(store, key_prefix=key_prefix),
        sessions=CheckoutSessionRegistry(coupon_service, catalog, bus, max_sessions=max_sessions),
        key_prefix=key_prefix,
    )


async def build_storefront(settings: Settings) -> Storefront:
    bus = EventBus()

    if settings.STORAGE_BACKEND == "memory":
        store: KeyValueStore = InMemoryKeyValueStore(bus)
    elif settings.STORAGE_BACKEND == "redis":
        from storefront.core.redis_client import get_redis
        store = RedisKeyValueStore(await get_redis(settings.REDIS_URL), bus)
    else:
        store = SqlKeyValueStore(bus=bus)

    uses_database = settings.STORAGE_BACKEND == "database" or settings.PRODUCT_BACKEND == "database"
    if uses_database:
        from storefront.core.database import create_tables
        await create_tables()

    catalog = SqlProductCatalog() if settings.PRODUCT_BACKEND == "database" else None

    if settings.PAYMENT_PROVIDER == "stripe":
        gateway: PaymentGateway = StripePaymentGateway(settings.STRIPE_SECRET_KEY, currency=settings.STRIPE_CURRENCY)
    else:
        gateway = MockPaymentGateway(delay_seconds=settings.PAYMENT_SIMULATED_DELAY_SECONDS)

    storefront = assemble(
        store,
        catalog=catalog,
        gateway=gateway,
        currency_symbol=settings.CURRENCY_SYMBOL,
        seed_coupons=settings.SEED_DEFAULT_COUPONS,
        key_prefix=settings.STORAGE_KEY_PREFIX,
        max_sessions=settings.CHECKOUT_MAX_SESSIONS,
    )
    storefront.uses_database = uses_database
    storefront.uses_redis = settings.STORAGE_BACKEND == "redis"

    logger.info(
        f"Storefront services ready: storage={settings.STORAGE_BACKEND}, "
        f"products={settings.PRODUCT_BACKEND}, payments={settings.PAYMENT_PROVIDER}"
    )
    return storefront

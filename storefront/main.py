"""
Storefront API
FastAPI application entry point

- Service container built in lifespan and closed on shutdown
- Rate limiting with SlowAPI
- Error sanitization middleware and StorefrontError handler
- Security headers
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from storefront import __version__
from storefront.api.routes import addresses, cart, checkout, content, coupons, orders, products, wishlist
from storefront.core.config import settings
from storefront.core.error_handler import ErrorSanitizationMiddleware, storefront_error_handler
from storefront.core.events import NOTIFICATION_TOPIC
from storefront.core.exceptions import StorefrontError
from storefront.core.rate_limit import limiter, rate_limit_exceeded_handler
from storefront.core.security_headers import SecurityHeadersMiddleware
from storefront.services.container import Storefront, build_storefront

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _log_notification(notification) -> None:
    logger.debug(
        f"Notification for {notification.user_key or 'all'}: "
        f"[{notification.variant}] {notification.title} {notification.description or ''}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services on startup unless one was injected; close what we built."""
    owned = getattr(app.state, "storefront", None) is None
    if owned:
        app.state.storefront = await build_storefront(settings)
    storefront: Storefront = app.state.storefront
    storefront.bus.subscribe(NOTIFICATION_TOPIC, _log_notification)
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")

    yield

    storefront.bus.unsubscribe(NOTIFICATION_TOPIC, _log_notification)
    if owned:
        await storefront.close()
        app.state.storefront = None
    logger.info(f"{settings.APP_NAME} stopped")


def create_app(storefront: Optional[Storefront] = None) -> FastAPI:
    app = FastAPI(
        lifespan=lifespan,
        title=f"{settings.APP_NAME} API",
        description="Catalog, cart, wishlist, coupons, addresses and checkout.",
        version=__version__,
    )
    app.state.storefront = storefront

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StorefrontError, storefront_error_handler)

    # Error sanitization (catches unhandled exceptions)
    app.add_middleware(ErrorSanitizationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(products.router, prefix="/api/products", tags=["Products"])
    app.include_router(cart.router, prefix="/api/cart", tags=["Cart"])
    app.include_router(wishlist.router, prefix="/api/wishlist", tags=["Wishlist"])
    app.include_router(coupons.router, prefix="/api/coupons", tags=["Coupons"])
    app.include_router(addresses.router, prefix="/api/addresses", tags=["Addresses"])
    app.include_router(checkout.router, prefix="/api/checkout", tags=["Checkout"])
    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
    app.include_router(content.router, prefix="/api/content", tags=["Content"])

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": f"{settings.APP_NAME} API",
            "version": __version__,
            "status": "operational",
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Storage round-trip check. Returns 503 if the backend is unreachable."""
        health_status = {
            "status": "healthy",
            "storage": settings.STORAGE_BACKEND,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        current: Optional[Storefront] = app.state.storefront
        if current is None:
            health_status["status"] = "starting"
            return JSONResponse(status_code=503, content=health_status)
        try:
            await current.store.list_keys("__health__")
        except Exception as e:
            health_status["status"] = "unhealthy"
            health_status["error"] = type(e).__name__
            return JSONResponse(status_code=503, content=health_status)
        return health_status

    return app


app = create_app()

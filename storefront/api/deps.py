"""
API dependencies

Identity is established in front of this service. The caller's user key
arrives in the X-User-Email header; seller endpoints additionally require
X-Seller-Key to match SELLER_API_KEY.
"""
import secrets

from fastapi import Depends, Header, Request

from storefront.core.config import settings
from storefront.core.exceptions import AuthenticationError, SellerAccessError, StorageError
from storefront.services.address_service import AddressBook
from storefront.services.cart_service import Cart
from storefront.services.checkout_service import CheckoutSession, OrderHistory
from storefront.services.container import Storefront
from storefront.services.wishlist_service import Wishlist


def get_storefront(request: Request) -> Storefront:
    storefront = getattr(request.app.state, "storefront", None)
    if storefront is None:
        raise StorageError("Storefront services are not initialized")
    return storefront


async def get_user_key(x_user_email: str | None = Header(None)) -> str:
    """Require the caller's user key."""
    if not x_user_email or not x_user_email.strip():
        raise AuthenticationError("Please log in to continue.")
    return x_user_email.strip().lower()


async def require_seller(x_seller_key: str | None = Header(None)) -> None:
    """Require a valid seller key"""
    if not settings.SELLER_API_KEY or not x_seller_key:
        raise SellerAccessError("Seller access required")
    if not secrets.compare_digest(x_seller_key, settings.SELLER_API_KEY):
        raise SellerAccessError("Seller access required")


async def get_cart(
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
) -> Cart:
    return await storefront.cart(user_key)


async def get_wishlist(
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
) -> Wishlist:
    return await storefront.wishlist(user_key)


async def get_address_book(
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
) -> AddressBook:
    return await storefront.address_book(user_key)


async def get_order_history(
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
) -> OrderHistory:
    return await storefront.orders(user_key)


async def get_checkout_session(
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
) -> CheckoutSession:
    return storefront.sessions.get(user_key)

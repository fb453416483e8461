"""
Checkout routes

The applied coupon lives in the caller's in-process checkout session; cart,
addresses and orders are loaded from storage on every request.
"""
from fastapi import APIRouter, Depends, Request, status

from storefront.api.deps import (
    get_address_book,
    get_cart,
    get_checkout_session,
    get_order_history,
    get_storefront,
)
from storefront.core.config import settings
from storefront.core.rate_limit import limiter
from storefront.schemas.checkout import ApplyCouponRequest, CheckoutSummary, OrderRecord, PayRequest
from storefront.services.address_service import AddressBook
from storefront.services.cart_service import Cart
from storefront.services.checkout_service import CheckoutSession, OrderHistory
from storefront.services.container import Storefront

router = APIRouter()


@router.get("/summary", response_model=CheckoutSummary)
async def get_summary(
    cart: Cart = Depends(get_cart),
    book: AddressBook = Depends(get_address_book),
    session: CheckoutSession = Depends(get_checkout_session),
):
    await session.refresh_items(cart)
    return session.summary(book)


@router.post("/coupon", response_model=CheckoutSummary)
async def apply_coupon(
    body: ApplyCouponRequest,
    cart: Cart = Depends(get_cart),
    book: AddressBook = Depends(get_address_book),
    session: CheckoutSession = Depends(get_checkout_session),
):
    await session.refresh_items(cart)
    await session.apply_coupon(body.code)
    return session.summary(book)


@router.delete("/coupon", response_model=CheckoutSummary)
async def remove_coupon(
    cart: Cart = Depends(get_cart),
    book: AddressBook = Depends(get_address_book),
    session: CheckoutSession = Depends(get_checkout_session),
):
    await session.remove_coupon()
    await session.refresh_items(cart)
    return session.summary(book)


@router.post("/pay", response_model=OrderRecord, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_CHECKOUT)
async def pay(
    request: Request,
    body: PayRequest,
    cart: Cart = Depends(get_cart),
    book: AddressBook = Depends(get_address_book),
    orders: OrderHistory = Depends(get_order_history),
    session: CheckoutSession = Depends(get_checkout_session),
    storefront: Storefront = Depends(get_storefront),
):
    """Charge the order total through the configured gateway."""
    order = await session.place_order(cart, book, storefront.gateway, orders, method=body.method)
    storefront.sessions.discard(session.user_key)
    return order

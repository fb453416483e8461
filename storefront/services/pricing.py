"""
Checkout totals

Pure functions; no I/O.
"""
from decimal import Decimal
from typing import Iterable, Optional

from storefront.core.utils import to_decimal
from storefront.schemas.cart import CartDisplayItem
from storefront.schemas.checkout import CheckoutTotals
from storefront.schemas.coupon import Coupon
from storefront.services.coupon_service import calculate_discount

ZERO = Decimal("0")


def calculate_subtotal(items: Iterable[CartDisplayItem]) -> Decimal:
    return sum((to_decimal(item.price) * item.quantity for item in items), ZERO)


def calculate_total(subtotal, discount) -> Decimal:
    """Never negative."""
    return max(ZERO, to_decimal(subtotal) - to_decimal(discount))


def calculate_totals(items: Iterable[CartDisplayItem], coupon: Optional[Coupon] = None) -> CheckoutTotals:
    items = list(items)
    subtotal = calculate_subtotal(items)
    discount = calculate_discount(coupon, subtotal) if coupon else ZERO
    return CheckoutTotals(
        subtotal=subtotal,
        discount=discount,
        total=calculate_total(subtotal, discount),
        item_count=sum(item.quantity for item in items),
    )

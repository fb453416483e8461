"""
Checkout Service

CheckoutSession holds what only lives for the duration of one buyer's
checkout: the resolved cart rows and the applied coupon. Sessions are kept
per user in a process-local registry and are never persisted.

OrderHistory is the persisted record of completed payments.
"""
import logging
import uuid
from collections import OrderedDict
from typing import List, Optional

from storefront.core.events import EventBus
from storefront.core.exceptions import (
    CheckoutError,
    CouponAlreadyAppliedError,
    CouponValidationError,
    PaymentDeclinedError,
    PaymentError,
)
from storefront.core.storage import KeyValueStore, StoredAggregate, storage_key
from storefront.core.utils import format_money, utcnow
from storefront.schemas.cart import CartDisplayItem
from storefront.schemas.checkout import (
    AppliedCouponDisplay,
    CheckoutSummary,
    CheckoutTotals,
    OrderItem,
    OrderRecord,
    PaymentInfo,
)
from storefront.services.address_service import AddressBook
from storefront.services.cart_service import Cart
from storefront.services.coupon_service import CouponService, calculate_discount
from storefront.services.payment import PaymentGateway
from storefront.services.pricing import calculate_totals
from storefront.services.resolver import LineResolver

logger = logging.getLogger(__name__)


class OrderHistory(StoredAggregate[OrderRecord]):
    item_model = OrderRecord

    def __init__(self, store: KeyValueStore, user_key: str, key_prefix: Optional[str] = None):
        super().__init__(store, storage_key("orders", user_key, prefix=key_prefix), user_key=user_key)

    async def record(self, order: OrderRecord) -> OrderRecord:
        self._items.append(order)
        await self._persist()
        logger.info(f"Order {order.order_id} recorded for {self.user_key}: total {order.total}")
        return order

    def list_orders(self) -> List[OrderRecord]:
        """Newest first; ties keep the later-recorded order first."""
        return sorted(reversed(self._items), key=lambda o: o.placed_at, reverse=True)


class CheckoutSession:
    def __init__(
        self,
        user_key: str,
        coupon_service: CouponService,
        resolver: LineResolver,
        bus: EventBus,
    ):
        self.user_key = user_key
        self.coupon_service = coupon_service
        self.resolver = resolver
        self.bus = bus
        self.items: List[CartDisplayItem] = []
        self.unresolved_ids: List[str] = []
        self.applied_coupon: Optional[AppliedCouponDisplay] = None

    @property
    def currency_symbol(self) -> str:
        return self.coupon_service.currency_symbol

    async def refresh_items(self, cart: Cart) -> List[CartDisplayItem]:
        """Re-resolve cart lines. An empty cart drops the applied coupon."""
        resolved = await self.resolver.resolve(cart.lines)
        if resolved is not None:
            self.items = list(resolved.items)
            self.unresolved_ids = list(resolved.unresolved_ids)

        if not cart.has_items_in_cart():
            self.items = []
            if self.applied_coupon is not None:
                logger.info(f"Checkout {self.user_key}: cart empty, dropping coupon {self.applied_coupon.code}")
            self.applied_coupon = None

        return self.items

    def _totals_for(self, items: List[CartDisplayItem]) -> CheckoutTotals:
        coupon = self.applied_coupon.original_coupon if self.applied_coupon else None
        totals = calculate_totals(items, coupon)
        if self.applied_coupon is not None:
            self.applied_coupon.discount_amount = totals.discount
        return totals

    def totals(self) -> CheckoutTotals:
        return self._totals_for(self.items)

    async def apply_coupon(self, code: str) -> AppliedCouponDisplay:
        if not code or not code.strip():
            await self.bus.notify(
                "Coupon Error", "Please enter a coupon code.", variant="destructive", user_key=self.user_key
            )
            raise CouponValidationError("EMPTY", "Please enter a coupon code.")

        if self.applied_coupon is not None:
            raise CouponAlreadyAppliedError(
                f'Coupon "{self.applied_coupon.code}" is already applied. Remove it first.',
                details={"applied": self.applied_coupon.code},
            )

        subtotal = self.totals().subtotal
        result = await self.coupon_service.validate_coupon(code, subtotal)
        if not result.is_valid:
            logger.info(f"Checkout {self.user_key}: coupon {code.strip().upper()} rejected ({result.code})")
            await self.bus.notify("Coupon Error", result.message, variant="destructive", user_key=self.user_key)
            raise CouponValidationError(result.code, result.message)

        discount = calculate_discount(result.coupon, subtotal)
        self.applied_coupon = AppliedCouponDisplay(
            code=result.coupon.code,
            discount_amount=discount,
            original_coupon=result.coupon,
        )
        logger.info(f"Checkout {self.user_key}: coupon {result.coupon.code} applied, discount {discount}")
        await self.bus.notify(
            "Coupon Applied",
            f"Discount of {format_money(discount, self.currency_symbol)} applied.",
            user_key=self.user_key,
        )
        return self.applied_coupon

    async def remove_coupon(self) -> bool:
        if self.applied_coupon is None:
            return False
        logger.info(f"Checkout {self.user_key}: coupon {self.applied_coupon.code} removed")
        self.applied_coupon = None
        await self.bus.notify(
            "Coupon Removed", "The coupon discount has been removed.", user_key=self.user_key
        )
        return True

    def summary(self, address_book: Optional[AddressBook] = None) -> CheckoutSummary:
        totals = self.totals()
        return CheckoutSummary(
            items=self.items,
            unresolved_ids=self.unresolved_ids,
            applied_coupon=self.applied_coupon,
            totals=totals,
            selected_address=address_book.get_selected_checkout_address() if address_book else None,
        )

    async def place_order(
        self,
        cart: Cart,
        address_book: AddressBook,
        gateway: PaymentGateway,
        orders: OrderHistory,
        method: str = "card",
    ) -> OrderRecord:
        """
        Charge the current total and record the order.

        Nothing is mutated unless the gateway reports success. The charged
        rows come from a resolve owned by this call, never from the rows
        shared with concurrent summary refreshes.
        """
        address = address_book.get_selected_checkout_address()
        if address is None:
            raise CheckoutError("Please select a shipping address.", code="NO_ADDRESS")

        if not cart.has_items_in_cart():
            raise CheckoutError("Your cart is empty.", code="EMPTY_CART")

        resolver = LineResolver(self.resolver.catalog, self.bus, user_key=self.user_key)
        resolved = await resolver.resolve(cart.lines)
        if resolved is None:
            raise CheckoutError("Your cart changed. Please review it and try again.", code="CART_CHANGED")
        if resolved.unresolved_ids:
            raise CheckoutError(
                "Some items could not be loaded. Please try again.",
                code="ITEMS_UNAVAILABLE",
                details={"product_ids": resolved.unresolved_ids},
            )
        items = list(resolved.items)
        if not items:
            raise CheckoutError("Your cart is empty.", code="EMPTY_CART")

        totals = self._totals_for(items)
        if totals.total <= 0:
            raise CheckoutError("Order total must be greater than zero.", code="ZERO_TOTAL")

        coupon_code = self.applied_coupon.code if self.applied_coupon else None
        info = PaymentInfo(
            method=method,
            user_key=self.user_key,
            order_details={
                "items": [{"product_id": i.id, "quantity": i.quantity} for i in items],
                "coupon": coupon_code,
            },
        )

        try:
            result = await gateway.process_payment(totals.total, info)
        except Exception as e:
            logger.exception(f"Checkout {self.user_key}: payment gateway error")
            await self.bus.notify(
                "Payment Error",
                "An unexpected error occurred while processing your payment.",
                variant="destructive",
                user_key=self.user_key,
            )
            raise PaymentError("An unexpected error occurred while processing your payment.") from e

        if not result.success:
            message = result.message or "Payment failed. Please try again."
            logger.warning(f"Checkout {self.user_key}: payment declined: {message}")
            await self.bus.notify("Payment Failed", message, variant="destructive", user_key=self.user_key)
            raise PaymentDeclinedError(message, details={"transaction_id": result.transaction_id})

        order = OrderRecord(
            order_id=str(uuid.uuid4()),
            transaction_id=result.transaction_id,
            items=[
                OrderItem(product_id=i.id, name=i.name, price=i.price, quantity=i.quantity)
                for i in items
            ],
            subtotal=totals.subtotal,
            discount=totals.discount,
            total=totals.total,
            coupon_code=coupon_code,
            address=address,
            payment_method=method,
            placed_at=utcnow(),
        )
        await orders.record(order)
        await cart.clear_cart(notify=False)
        self.applied_coupon = None
        self.items = []

        await self.bus.notify(
            "Payment Successful!",
            f"Transaction ID: {result.transaction_id}",
            user_key=self.user_key,
        )
        return order


class CheckoutSessionRegistry:
    """
    Process-local checkout sessions keyed by user.

    Bounded: once max_sessions is reached the least recently used session is
    dropped. A dropped session only loses its applied coupon.
    """

    def __init__(self, coupon_service: CouponService, catalog, bus: EventBus, max_sessions: int = 10000):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.coupon_service = coupon_service
        self.catalog = catalog
        self.bus = bus
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, CheckoutSession]" = OrderedDict()

    def get(self, user_key: str) -> CheckoutSession:
        session = self._sessions.get(user_key)
        if session is not None:
            self._sessions.move_to_end(user_key)
            return session

        session = CheckoutSession(
            user_key,
            self.coupon_service,
            LineResolver(self.catalog, self.bus, user_key=user_key),
            self.bus,
        )
        self._sessions[user_key] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug(f"Checkout session for {evicted} evicted (limit {self.max_sessions})")
        return session

    def discard(self, user_key: str) -> None:
        self._sessions.pop(user_key, None)

    def __contains__(self, user_key: str) -> bool:
        return user_key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

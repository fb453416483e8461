"""
Coupon Service

Seller-managed coupon list, buyer-facing validation and discount math.

CouponStore is created once per process and shared by every buyer session.
It is hydrated from storage on first use and seeded with a default set when
nothing usable is stored.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from storefront.core.exceptions import DuplicateCouponCodeError, StorefrontValidationError
from storefront.core.storage import KeyValueStore, StoredAggregate, storage_key
from storefront.core.utils import ensure_utc, format_money, to_decimal, utcnow
from storefront.schemas.coupon import Coupon, CouponCreate, CouponUpdate

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def default_coupons(now: Optional[datetime] = None) -> List[Coupon]:
    now = now or utcnow()
    return [
        Coupon(id="c1", code="SAVE10", type="percentage", discount_value=Decimal("10"),
               min_purchase_amount=Decimal("50"), is_active=True),
        Coupon(id="c2", code="FIXED5", type="fixed", discount_value=Decimal("5"),
               min_purchase_amount=Decimal("20"), is_active=True),
        Coupon(id="c3", code="EXPIRED", type="percentage", discount_value=Decimal("15"),
               is_active=True, valid_until=now - timedelta(days=1)),
        Coupon(id="c4", code="FUTURE", type="fixed", discount_value=Decimal("10"),
               is_active=True, valid_from=now + timedelta(days=2)),
    ]


def _invalid(e: ValidationError) -> StorefrontValidationError:
    first = e.errors()[0] if e.errors() else {}
    message = first.get("msg", "Invalid coupon")
    return StorefrontValidationError(message.removeprefix("Value error, "), code="COUPON_INVALID_DATA")


class CouponStore(StoredAggregate[Coupon]):
    """The shared coupon list."""

    item_model = Coupon

    def __init__(self, store: KeyValueStore, seed_defaults: bool = True, key_prefix: Optional[str] = None):
        super().__init__(store, storage_key("coupons", prefix=key_prefix))
        self.seed_defaults = seed_defaults

    async def load(self):
        raw = await self.store.get(self.key)
        coupons = self._decode(raw)
        if coupons is None and self.seed_defaults:
            logger.info(f"Seeding default coupons under '{self.key}'")
            self._items = default_coupons()
            self._loaded = True
            await self._persist()
            return self
        self._items = coupons or []
        self._loaded = True
        return self

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    def _by_code(self, code: str, exclude_id: Optional[str] = None) -> Optional[Coupon]:
        wanted = code.strip().upper()
        for coupon in self._items:
            if coupon.code.upper() == wanted and coupon.id != exclude_id:
                return coupon
        return None

    async def fetch_all_coupons(self) -> List[Coupon]:
        await self._ensure_loaded()
        return self.items

    def get_current_coupons(self) -> List[Coupon]:
        """Synchronous snapshot of what is already loaded."""
        return self.items

    async def add_coupon_to_store(self, data: Union[CouponCreate, Dict[str, Any]]) -> Coupon:
        await self._ensure_loaded()
        try:
            if not isinstance(data, CouponCreate):
                data = CouponCreate.model_validate(data)
        except ValidationError as e:
            raise _invalid(e) from e

        if self._by_code(data.code):
            raise DuplicateCouponCodeError(data.code)

        coupon = Coupon(id=str(uuid.uuid4()), **data.model_dump())
        self._items.append(coupon)
        await self._persist()
        logger.info(f"Coupon {coupon.code} created ({coupon.id})")
        return coupon

    async def update_coupon_in_store(
        self,
        coupon_id: str,
        updates: Union[CouponUpdate, Dict[str, Any]],
    ) -> Optional[Coupon]:
        await self._ensure_loaded()
        try:
            if not isinstance(updates, CouponUpdate):
                updates = CouponUpdate.model_validate(updates)
        except ValidationError as e:
            raise _invalid(e) from e

        index = next((i for i, c in enumerate(self._items) if c.id == coupon_id), None)
        if index is None:
            return None

        changes = updates.model_dump(exclude_unset=True)
        if changes.get("code") and self._by_code(changes["code"], exclude_id=coupon_id):
            raise DuplicateCouponCodeError(changes["code"])

        merged = {**self._items[index].model_dump(), **changes}
        try:
            coupon = Coupon.model_validate(merged)
        except ValidationError as e:
            raise _invalid(e) from e

        self._items[index] = coupon
        await self._persist()
        logger.info(f"Coupon {coupon.code} updated ({coupon.id}): {sorted(changes)}")
        return coupon

    async def remove_coupon_from_store(self, coupon_id: str) -> bool:
        await self._ensure_loaded()
        remaining = [c for c in self._items if c.id != coupon_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        await self._persist()
        logger.info(f"Coupon {coupon_id} removed")
        return True

    async def find_coupon_by_code(self, code: str) -> Optional[Coupon]:
        await self._ensure_loaded()
        if not code or not code.strip():
            return None
        return self._by_code(code)


@dataclass
class CouponValidationResult:
    is_valid: bool
    message: str
    coupon: Optional[Coupon] = None
    code: Optional[str] = None


def calculate_discount(coupon: Coupon, subtotal) -> Decimal:
    """Percentage of subtotal, or the fixed amount capped at the subtotal."""
    subtotal = to_decimal(subtotal)
    if coupon.type == "percentage":
        return subtotal * (coupon.discount_value / HUNDRED)
    return min(coupon.discount_value, subtotal)


class CouponService:
    """
    Coupon validation against a cart subtotal.

    Checks run in order and the first failure wins:
    unknown code, inactive, not started, expired, minimum purchase.
    """

    def __init__(self, coupon_store: CouponStore, currency_symbol: str = ""):
        self.coupon_store = coupon_store
        self.currency_symbol = currency_symbol

    async def validate_coupon(
        self,
        code: str,
        subtotal,
        now: Optional[datetime] = None,
    ) -> CouponValidationResult:
        subtotal = to_decimal(subtotal)
        now = ensure_utc(now) if now else utcnow()

        coupon = await self.coupon_store.find_coupon_by_code(code)
        if not coupon:
            return CouponValidationResult(False, "Invalid coupon code.", code="INVALID")

        if not coupon.is_active:
            return CouponValidationResult(False, "This coupon is currently inactive.", code="INACTIVE")

        if coupon.valid_from and now < coupon.valid_from:
            return CouponValidationResult(False, "This coupon is not yet active.", code="NOT_STARTED")

        if coupon.valid_until and now > coupon.valid_until:
            return CouponValidationResult(False, "This coupon has expired.", code="EXPIRED")

        if coupon.min_purchase_amount and subtotal < coupon.min_purchase_amount:
            minimum = format_money(coupon.min_purchase_amount, self.currency_symbol)
            return CouponValidationResult(
                False,
                f"Minimum purchase of {minimum} required for this coupon.",
                code="MIN_PURCHASE",
            )

        return CouponValidationResult(True, "Coupon applied successfully!", coupon=coupon)

    def calculate_discount(self, coupon: Coupon, subtotal) -> Decimal:
        return calculate_discount(coupon, subtotal)

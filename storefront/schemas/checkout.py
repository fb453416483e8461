"""
Checkout, Payment and Order Schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from storefront.schemas.address import Address
from storefront.schemas.cart import CartDisplayItem
from storefront.schemas.common import CamelModel
from storefront.schemas.coupon import Coupon


class AppliedCouponDisplay(CamelModel):
    code: str
    discount_amount: Decimal
    original_coupon: Coupon


class CheckoutTotals(CamelModel):
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    item_count: int


class PaymentInfo(CamelModel):
    method: str = "card"
    user_key: Optional[str] = None
    order_details: Dict[str, Any] = {}


class PaymentResult(CamelModel):
    success: bool
    message: Optional[str] = None
    transaction_id: Optional[str] = None


class OrderItem(CamelModel):
    product_id: str
    name: str
    price: Decimal
    quantity: int


class OrderRecord(CamelModel):
    order_id: str
    transaction_id: Optional[str] = None
    items: List[OrderItem]
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None
    address: Address
    payment_method: str = "card"
    placed_at: datetime
    status: str = "paid"


class CheckoutSummary(CamelModel):
    items: List[CartDisplayItem]
    unresolved_ids: List[str] = []
    applied_coupon: Optional[AppliedCouponDisplay] = None
    totals: CheckoutTotals
    selected_address: Optional[Address] = None


class ApplyCouponRequest(CamelModel):
    code: str = ""


class PayRequest(CamelModel):
    method: str = Field("card", max_length=50)

"""
Cart Schemas
"""
from decimal import Decimal
from typing import List

from pydantic import Field

from storefront.schemas.common import CamelModel
from storefront.schemas.product import Product


class CartLine(CamelModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class CartDisplayItem(Product):
    quantity: int


class CartItemAdd(CamelModel):
    product_id: str
    quantity: int = 1


class CartItemUpdate(CamelModel):
    quantity: int


class CartResponse(CamelModel):
    items: List[CartDisplayItem]
    unresolved_ids: List[str] = []
    item_count: int
    subtotal: Decimal

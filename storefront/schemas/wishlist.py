"""
Wishlist Schemas
"""
from datetime import datetime
from typing import List

from pydantic import field_validator

from storefront.core.utils import ensure_utc
from storefront.schemas.common import CamelModel
from storefront.schemas.product import Product


class WishlistLine(CamelModel):
    product_id: str
    added_at: datetime

    @field_validator("added_at")
    @classmethod
    def utc_timestamp(cls, v):
        return ensure_utc(v)


class WishlistDisplayItem(Product):
    added_at: datetime


class WishlistResponse(CamelModel):
    items: List[WishlistDisplayItem]
    unresolved_ids: List[str] = []
    item_count: int


class WishlistToggleResponse(CamelModel):
    product_id: str
    in_wishlist: bool
    item_count: int

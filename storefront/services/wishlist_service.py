"""
Wishlist Service
"""
import logging
from typing import List, Optional

from storefront.core.storage import KeyValueStore, StoredAggregate, storage_key
from storefront.core.utils import utcnow
from storefront.schemas.product import Product
from storefront.schemas.wishlist import WishlistLine

logger = logging.getLogger(__name__)


class Wishlist(StoredAggregate[WishlistLine]):
    item_model = WishlistLine

    def __init__(self, store: KeyValueStore, user_key: str, key_prefix: Optional[str] = None):
        super().__init__(store, storage_key("wishlist", user_key, prefix=key_prefix), user_key=user_key)

    @property
    def lines(self) -> List[WishlistLine]:
        return self.items

    async def toggle_wishlist_item(self, product: Product) -> bool:
        """Add the product if absent, remove it if present. Returns the new presence."""
        if self.is_in_wishlist(product.id):
            self._items = [l for l in self._items if l.product_id != product.id]
            await self._persist()
            logger.info(f"Wishlist {self.user_key}: removed {product.id}")
            await self.bus.notify(
                f"{product.name} removed from wishlist",
                variant="destructive",
                user_key=self.user_key,
            )
            return False

        self._items.append(WishlistLine(product_id=product.id, added_at=utcnow()))
        await self._persist()
        logger.info(f"Wishlist {self.user_key}: added {product.id}")
        await self.bus.notify(f"{product.name} added to wishlist", user_key=self.user_key)
        return True

    async def remove_from_wishlist(self, product_id: str, product_name: Optional[str] = None) -> bool:
        if not self.is_in_wishlist(product_id):
            return False

        self._items = [l for l in self._items if l.product_id != product_id]
        await self._persist()
        logger.info(f"Wishlist {self.user_key}: removed {product_id}")
        if product_name:
            await self.bus.notify(
                f"{product_name} removed from wishlist",
                variant="destructive",
                user_key=self.user_key,
            )
        return True

    def is_in_wishlist(self, product_id: str) -> bool:
        return any(line.product_id == product_id for line in self._items)

    def get_wishlist_item_count(self) -> int:
        return len(self._items)

    def display_order(self) -> List[WishlistLine]:
        """Newest first."""
        return sorted(self._items, key=lambda l: l.added_at, reverse=True)

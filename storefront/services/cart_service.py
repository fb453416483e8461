"""
Cart Service

A buyer's cart: product id -> quantity, persisted under the user's cart key.
Every mutation is an in-memory transform followed by one store write.
"""
import logging
from typing import List, Optional

from storefront.core.exceptions import InvalidQuantityError
from storefront.core.storage import KeyValueStore, StoredAggregate, storage_key
from storefront.schemas.cart import CartLine
from storefront.schemas.product import Product

logger = logging.getLogger(__name__)


class Cart(StoredAggregate[CartLine]):
    item_model = CartLine

    def __init__(self, store: KeyValueStore, user_key: str, key_prefix: Optional[str] = None):
        super().__init__(store, storage_key("cart", user_key, prefix=key_prefix), user_key=user_key)

    @property
    def lines(self) -> List[CartLine]:
        return self.items

    def _find(self, product_id: str) -> Optional[CartLine]:
        for line in self._items:
            if line.product_id == product_id:
                return line
        return None

    async def add_to_cart(self, product: Product, quantity: int = 1) -> CartLine:
        """Add quantity of product, merging with an existing line."""
        if quantity < 1:
            raise InvalidQuantityError(
                "Quantity must be at least 1",
                product_id=product.id,
                quantity=quantity,
            )

        line = self._find(product.id)
        if line:
            line.quantity += quantity
        else:
            line = CartLine(product_id=product.id, quantity=quantity)
            self._items.append(line)

        await self._persist()
        logger.info(f"Cart {self.user_key}: added {quantity} x {product.id} (now {line.quantity})")
        await self.bus.notify(
            f"{product.name} added to cart",
            f"Quantity: {quantity}",
            user_key=self.user_key,
        )
        return line

    async def update_quantity(self, product_id: str, new_quantity: int) -> Optional[CartLine]:
        """
        Set the quantity of an existing line.

        Values below zero are clamped to zero; zero drops the line. Unknown
        product ids are ignored.
        """
        line = self._find(product_id)
        if line is None:
            return None

        quantity = max(0, new_quantity)
        if quantity == 0:
            self._items = [l for l in self._items if l.product_id != product_id]
            result = None
        else:
            line.quantity = quantity
            result = line

        await self._persist()
        logger.info(f"Cart {self.user_key}: {product_id} quantity set to {quantity}")
        return result

    async def remove_from_cart(self, product_id: str) -> bool:
        if self._find(product_id) is None:
            return False

        self._items = [l for l in self._items if l.product_id != product_id]
        await self._persist()
        logger.info(f"Cart {self.user_key}: removed {product_id}")
        await self.bus.notify(
            "Item removed from cart",
            variant="destructive",
            user_key=self.user_key,
        )
        return True

    def get_cart_item_count(self) -> int:
        return sum(line.quantity for line in self._items)

    def get_item_quantity(self, product_id: str) -> int:
        line = self._find(product_id)
        return line.quantity if line else 0

    def has_items_in_cart(self) -> bool:
        return len(self._items) > 0

    async def clear_cart(self, notify: bool = True) -> None:
        self._items = []
        await self._persist()
        logger.info(f"Cart {self.user_key}: cleared")
        if notify:
            await self.bus.notify("Cart cleared", user_key=self.user_key)

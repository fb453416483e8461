"""
Line Resolver

Turns stored cart/wishlist lines into display rows by fetching each product
from the catalog. Lookups run concurrently. Each call to ``resolve`` starts a
new batch with a higher generation number; a batch that finishes after a
newer one started is discarded so stale product data never overwrites fresh
data.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from storefront.core.events import EventBus
from storefront.schemas.cart import CartDisplayItem, CartLine
from storefront.schemas.product import Product
from storefront.schemas.wishlist import WishlistDisplayItem, WishlistLine

logger = logging.getLogger(__name__)

Line = Union[CartLine, WishlistLine]
DisplayItem = Union[CartDisplayItem, WishlistDisplayItem]


@dataclass
class ResolvedLines:
    items: List[DisplayItem] = field(default_factory=list)
    # lookups that raised; rendered as loading placeholders
    unresolved_ids: List[str] = field(default_factory=list)
    # products that no longer exist
    missing_ids: List[str] = field(default_factory=list)
    generation: int = 0


def build_display_item(product: Product, line: Line) -> DisplayItem:
    if isinstance(line, WishlistLine):
        return WishlistDisplayItem(**product.model_dump(), added_at=line.added_at)
    return CartDisplayItem(**product.model_dump(), quantity=line.quantity)


class LineResolver:
    def __init__(self, catalog, bus: Optional[EventBus] = None, user_key: Optional[str] = None):
        self.catalog = catalog
        self.bus = bus
        self.user_key = user_key
        self._generation = 0
        self.current: Optional[ResolvedLines] = None

    @property
    def generation(self) -> int:
        return self._generation

    async def _lookup(self, line: Line):
        try:
            return line, await self.catalog.fetch_product_by_id(line.product_id), None
        except Exception as e:
            return line, None, e

    async def resolve(self, lines: Sequence[Line]) -> Optional[ResolvedLines]:
        """Resolve lines in order. Returns None if a newer batch superseded this one."""
        self._generation += 1
        generation = self._generation

        results = await asyncio.gather(*(self._lookup(line) for line in lines))

        if generation != self._generation:
            logger.debug(f"Discarding stale resolver batch {generation} (current {self._generation})")
            return None

        resolved = ResolvedLines(generation=generation)
        for line, product, error in results:
            if error is not None:
                logger.error(f"Product lookup failed for {line.product_id}: {error}")
                resolved.unresolved_ids.append(line.product_id)
            elif product is None:
                logger.warning(f"Product {line.product_id} no longer exists; dropping line")
                resolved.missing_ids.append(line.product_id)
            else:
                resolved.items.append(build_display_item(product, line))

        if resolved.unresolved_ids and self.bus is not None:
            await self.bus.notify(
                "Error loading items",
                "Some product details could not be loaded. Please try again.",
                variant="destructive",
                user_key=self.user_key,
            )

        self.current = resolved
        return resolved

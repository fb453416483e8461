"""
Product Catalog

Lookup, search and seller maintenance of products.

Two implementations share the ProductCatalog interface:
- SqlProductCatalog: the ``products`` table
- StoredProductCatalog: a JSON list under the shared ``products`` storage key
"""
import logging
import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import IntegrityError

from storefront.core.database import get_db_session
from storefront.core.exceptions import ProductLookupError, StorefrontValidationError
from storefront.core.storage import KeyValueStore, StoredAggregate, storage_key
from storefront.models.product import Product as ProductRow
from storefront.schemas.product import (
    Product,
    ProductCreate,
    ProductFilterOptions,
    ProductPage,
    ProductUpdate,
)

logger = logging.getLogger(__name__)

ProductInput = Union[ProductCreate, Dict[str, Any]]
ProductChanges = Union[ProductUpdate, Dict[str, Any]]


def _parse(model, data):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise StorefrontValidationError(
            "Invalid product data",
            code="PRODUCT_INVALID",
            details={"fields": fields},
        ) from e


def _duplicate_id(product_id: str) -> StorefrontValidationError:
    return StorefrontValidationError(
        "Product id already exists",
        code="DUPLICATE_PRODUCT_ID",
        details={"product_id": product_id},
    )


def _matches(product: Product, options: ProductFilterOptions) -> bool:
    if options.query:
        needle = options.query.lower()
        haystack = f"{product.name}\n{product.description or ''}".lower()
        if needle not in haystack:
            return False
    if options.categories:
        wanted = {c.lower() for c in options.categories}
        if (product.category or "").lower() not in wanted:
            return False
    if options.min_price is not None and product.price < options.min_price:
        return False
    if options.max_price is not None and product.price > options.max_price:
        return False
    return True


def filter_and_sort(products: Iterable[Product], options: ProductFilterOptions) -> ProductPage:
    """In-memory search used by StoredProductCatalog."""
    matched = [p for p in products if _matches(p, options)]

    if options.sort_by == "price_asc":
        matched.sort(key=lambda p: p.price)
    elif options.sort_by == "price_desc":
        matched.sort(key=lambda p: p.price, reverse=True)
    elif options.sort_by == "rating":
        matched.sort(key=lambda p: p.rating or 0, reverse=True)
    elif options.sort_by == "name":
        matched.sort(key=lambda p: p.name.lower())
    elif options.query:
        # relevance: name hits before description-only hits, stable otherwise
        needle = options.query.lower()
        matched.sort(key=lambda p: needle not in p.name.lower())

    page = matched[options.offset:options.offset + options.limit]
    return ProductPage(items=page, total=len(matched), limit=options.limit, offset=options.offset)


class ProductCatalog(ABC):
    @abstractmethod
    async def fetch_product_by_id(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    async def fetch_products(self) -> List[Product]:
        ...

    @abstractmethod
    async def fetch_all_categories(self) -> List[str]:
        ...

    @abstractmethod
    async def search_products(self, options: ProductFilterOptions) -> ProductPage:
        ...

    @abstractmethod
    async def add_product_to_store(self, data: ProductInput) -> Product:
        ...

    @abstractmethod
    async def update_product_in_store(self, product_id: str, updates: ProductChanges) -> Optional[Product]:
        ...

    @abstractmethod
    async def remove_product_from_store(self, product_id: str) -> bool:
        ...


class StoredProductCatalog(StoredAggregate[Product], ProductCatalog):
    """Products kept as one JSON list in the key-value store."""

    item_model = Product

    def __init__(self, store: KeyValueStore, key_prefix: Optional[str] = None):
        super().__init__(store, storage_key("products", prefix=key_prefix))

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    async def fetch_product_by_id(self, product_id: str) -> Optional[Product]:
        await self._ensure_loaded()
        return next((p for p in self._items if p.id == product_id), None)

    async def fetch_products(self) -> List[Product]:
        await self._ensure_loaded()
        return self.items

    async def fetch_all_categories(self) -> List[str]:
        await self._ensure_loaded()
        return sorted({p.category for p in self._items if p.category})

    async def search_products(self, options: ProductFilterOptions) -> ProductPage:
        await self._ensure_loaded()
        return filter_and_sort(self._items, options)

    async def add_product_to_store(self, data: ProductInput) -> Product:
        await self._ensure_loaded()
        fields = _parse(ProductCreate, data)
        product_id = fields.id or str(uuid.uuid4())
        if any(p.id == product_id for p in self._items):
            raise _duplicate_id(product_id)
        product = Product(**{**fields.model_dump(), "id": product_id})
        self._items.append(product)
        await self._persist()
        logger.info(f"Product {product.id} created: {product.name}")
        return product

    async def update_product_in_store(self, product_id: str, updates: ProductChanges) -> Optional[Product]:
        await self._ensure_loaded()
        changes = _parse(ProductUpdate, updates).model_dump(exclude_unset=True)
        index = next((i for i, p in enumerate(self._items) if p.id == product_id), None)
        if index is None:
            return None
        product = _parse(Product, {**self._items[index].model_dump(), **changes})
        self._items[index] = product
        await self._persist()
        logger.info(f"Product {product_id} updated: {sorted(changes)}")
        return product

    async def remove_product_from_store(self, product_id: str) -> bool:
        await self._ensure_loaded()
        remaining = [p for p in self._items if p.id != product_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        await self._persist()
        logger.info(f"Product {product_id} removed")
        return True


def _to_schema(row: ProductRow) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        description=row.description,
        price=Decimal(str(row.price)),
        original_price=Decimal(str(row.original_price)) if row.original_price is not None else None,
        image_urls=row.image_urls or [],
        video_urls=row.video_urls or [],
        category=row.category,
        rating=row.rating,
        stock=row.stock,
        reviews=row.reviews or [],
    )


class SqlProductCatalog(ProductCatalog):
    """Products in the ``products`` table."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    async def fetch_product_by_id(self, product_id: str) -> Optional[Product]:
        try:
            async with get_db_session(self.session_factory) as db:
                row = await db.get(ProductRow, product_id)
                return _to_schema(row) if row else None
        except Exception as e:
            logger.error(f"Product lookup failed for {product_id}: {e}")
            raise ProductLookupError("Could not load product", details={"product_id": product_id}) from e

    async def fetch_products(self) -> List[Product]:
        try:
            async with get_db_session(self.session_factory) as db:
                result = await db.execute(select(ProductRow).order_by(ProductRow.name))
                return [_to_schema(row) for row in result.scalars().all()]
        except Exception as e:
            logger.error(f"Product listing failed: {e}")
            raise ProductLookupError("Could not load products") from e

    async def fetch_all_categories(self) -> List[str]:
        try:
            async with get_db_session(self.session_factory) as db:
                result = await db.execute(
                    select(ProductRow.category)
                    .where(ProductRow.category.isnot(None))
                    .distinct()
                    .order_by(ProductRow.category)
                )
                return [c for c in result.scalars().all() if c]
        except Exception as e:
            logger.error(f"Category listing failed: {e}")
            raise ProductLookupError("Could not load categories") from e

    async def search_products(self, options: ProductFilterOptions) -> ProductPage:
        query = select(ProductRow)

        if options.query:
            pattern = f"%{options.query}%"
            query = query.where(or_(ProductRow.name.ilike(pattern), ProductRow.description.ilike(pattern)))
        if options.categories:
            query = query.where(func.lower(ProductRow.category).in_([c.lower() for c in options.categories]))
        if options.min_price is not None:
            query = query.where(ProductRow.price >= options.min_price)
        if options.max_price is not None:
            query = query.where(ProductRow.price <= options.max_price)

        count_query = select(func.count()).select_from(query.subquery())

        if options.sort_by == "price_asc":
            query = query.order_by(ProductRow.price.asc())
        elif options.sort_by == "price_desc":
            query = query.order_by(ProductRow.price.desc())
        elif options.sort_by == "rating":
            query = query.order_by(ProductRow.rating.desc().nullslast())
        elif options.sort_by == "name":
            query = query.order_by(func.lower(ProductRow.name))
        elif options.query:
            name_hit = case((ProductRow.name.ilike(f"%{options.query}%"), 0), else_=1)
            query = query.order_by(name_hit, ProductRow.created_at)
        else:
            query = query.order_by(ProductRow.created_at)

        query = query.offset(options.offset).limit(options.limit)

        try:
            async with get_db_session(self.session_factory) as db:
                total = await db.scalar(count_query) or 0
                result = await db.execute(query)
                items = [_to_schema(row) for row in result.scalars().all()]
        except Exception as e:
            logger.error(f"Product search failed: {e}")
            raise ProductLookupError("Could not search products") from e

        return ProductPage(items=items, total=total, limit=options.limit, offset=options.offset)

    async def add_product_to_store(self, data: ProductInput) -> Product:
        fields = _parse(ProductCreate, data)
        values = fields.model_dump(mode="json", exclude={"id"})
        values["price"] = fields.price
        values["original_price"] = fields.original_price
        row = ProductRow(id=fields.id or str(uuid.uuid4()), **values)
        try:
            async with get_db_session(self.session_factory) as db:
                if await db.get(ProductRow, row.id) is not None:
                    raise _duplicate_id(row.id)
                db.add(row)
                await db.flush()
                product = _to_schema(row)
        except IntegrityError as e:
            # concurrent insert of the same id
            raise _duplicate_id(row.id) from e
        logger.info(f"Product {product.id} created: {product.name}")
        return product

    async def update_product_in_store(self, product_id: str, updates: ProductChanges) -> Optional[Product]:
        fields = _parse(ProductUpdate, updates)
        changes = fields.model_dump(mode="json", exclude_unset=True)
        for money_field in ("price", "original_price"):
            if money_field in changes:
                changes[money_field] = getattr(fields, money_field)

        async with get_db_session(self.session_factory) as db:
            row = await db.get(ProductRow, product_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, field, value)
            await db.flush()
            product = _to_schema(row)

        logger.info(f"Product {product_id} updated: {sorted(changes)}")
        return product

    async def remove_product_from_store(self, product_id: str) -> bool:
        async with get_db_session(self.session_factory) as db:
            row = await db.get(ProductRow, product_id)
            if row is None:
                return False
            await db.delete(row)
        logger.info(f"Product {product_id} removed")
        return True

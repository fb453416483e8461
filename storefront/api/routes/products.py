"""
Product routes
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from storefront.api.deps import get_storefront, require_seller
from storefront.core.exceptions import ProductNotFoundError
from storefront.schemas.product import (
    Product,
    ProductCreate,
    ProductFilterOptions,
    ProductPage,
    ProductUpdate,
    SortOption,
)
from storefront.services.container import Storefront

router = APIRouter()


@router.get("", response_model=ProductPage)
async def list_products(
    query: Optional[str] = Query(None, max_length=200),
    category: List[str] = Query([]),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    sort_by: SortOption = Query("relevance", alias="sortBy"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    storefront: Storefront = Depends(get_storefront),
):
    """Search, filter and sort the catalog."""
    options = ProductFilterOptions(
        query=query,
        categories=category,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
    )
    return await storefront.catalog.search_products(options)


@router.get("/categories", response_model=List[str])
async def list_categories(storefront: Storefront = Depends(get_storefront)):
    return await storefront.catalog.fetch_all_categories()


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, storefront: Storefront = Depends(get_storefront)):
    product = await storefront.catalog.fetch_product_by_id(product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return product


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_seller)])
async def create_product(data: ProductCreate, storefront: Storefront = Depends(get_storefront)):
    return await storefront.catalog.add_product_to_store(data)


@router.patch("/{product_id}", response_model=Product, dependencies=[Depends(require_seller)])
async def update_product(
    product_id: str,
    updates: ProductUpdate,
    storefront: Storefront = Depends(get_storefront),
):
    product = await storefront.catalog.update_product_in_store(product_id, updates)
    if not product:
        raise ProductNotFoundError(product_id)
    return product


@router.delete("/{product_id}", dependencies=[Depends(require_seller)])
async def delete_product(product_id: str, storefront: Storefront = Depends(get_storefront)):
    if not await storefront.catalog.remove_product_from_store(product_id):
        raise ProductNotFoundError(product_id)
    return {"message": "Product deleted", "productId": product_id}

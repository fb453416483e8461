"""
Wishlist routes
"""
from fastapi import APIRouter, Depends

from storefront.api.deps import get_storefront, get_user_key, get_wishlist
from storefront.core.exceptions import ProductNotFoundError
from storefront.schemas.wishlist import WishlistResponse, WishlistToggleResponse
from storefront.services.container import Storefront
from storefront.services.wishlist_service import Wishlist

router = APIRouter()


@router.get("", response_model=WishlistResponse)
async def get_wishlist_contents(
    wishlist: Wishlist = Depends(get_wishlist),
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
):
    """Wishlist rows, newest first."""
    resolved = await storefront.resolver(user_key).resolve(wishlist.display_order())
    return WishlistResponse(
        items=resolved.items,
        unresolved_ids=resolved.unresolved_ids,
        item_count=wishlist.get_wishlist_item_count(),
    )


@router.post("/{product_id}/toggle", response_model=WishlistToggleResponse)
async def toggle_item(
    product_id: str,
    wishlist: Wishlist = Depends(get_wishlist),
    storefront: Storefront = Depends(get_storefront),
):
    product = await storefront.catalog.fetch_product_by_id(product_id)
    if not product:
        raise ProductNotFoundError(product_id)

    in_wishlist = await wishlist.toggle_wishlist_item(product)
    return WishlistToggleResponse(
        product_id=product_id,
        in_wishlist=in_wishlist,
        item_count=wishlist.get_wishlist_item_count(),
    )


@router.delete("/{product_id}", response_model=WishlistToggleResponse)
async def remove_item(
    product_id: str,
    wishlist: Wishlist = Depends(get_wishlist),
    storefront: Storefront = Depends(get_storefront),
):
    # The product may already be gone from the catalog
    product = await storefront.catalog.fetch_product_by_id(product_id)
    await wishlist.remove_from_wishlist(product_id, product.name if product else None)
    return WishlistToggleResponse(
        product_id=product_id,
        in_wishlist=False,
        item_count=wishlist.get_wishlist_item_count(),
    )

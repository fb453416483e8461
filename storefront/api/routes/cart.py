"""
Cart routes
"""
from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_cart, get_storefront, get_user_key
from storefront.core.exceptions import ProductNotFoundError
from storefront.schemas.cart import CartItemAdd, CartItemUpdate, CartResponse
from storefront.services.cart_service import Cart
from storefront.services.container import Storefront
from storefront.services.pricing import calculate_subtotal

router = APIRouter()


async def build_cart_response(cart: Cart, storefront: Storefront, user_key: str) -> CartResponse:
    resolved = await storefront.resolver(user_key).resolve(cart.lines)
    return CartResponse(
        items=resolved.items,
        unresolved_ids=resolved.unresolved_ids,
        item_count=cart.get_cart_item_count(),
        subtotal=calculate_subtotal(resolved.items),
    )


@router.get("", response_model=CartResponse)
async def get_cart_contents(
    cart: Cart = Depends(get_cart),
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
):
    """Get current user's cart."""
    return await build_cart_response(cart, storefront, user_key)


@router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_item(
    item: CartItemAdd,
    cart: Cart = Depends(get_cart),
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
):
    product = await storefront.catalog.fetch_product_by_id(item.product_id)
    if not product:
        raise ProductNotFoundError(item.product_id)

    await cart.add_to_cart(product, item.quantity)
    return await build_cart_response(cart, storefront, user_key)


@router.patch("/items/{product_id}", response_model=CartResponse)
async def update_item(
    product_id: str,
    update: CartItemUpdate,
    cart: Cart = Depends(get_cart),
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
):
    """Set quantity; 0 or less removes the line."""
    await cart.update_quantity(product_id, update.quantity)
    return await build_cart_response(cart, storefront, user_key)


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: str,
    cart: Cart = Depends(get_cart),
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
):
    await cart.remove_from_cart(product_id)
    return await build_cart_response(cart, storefront, user_key)


@router.delete("", response_model=CartResponse)
async def clear(
    cart: Cart = Depends(get_cart),
    user_key: str = Depends(get_user_key),
    storefront: Storefront = Depends(get_storefront),
):
    await cart.clear_cart()
    return await build_cart_response(cart, storefront, user_key)

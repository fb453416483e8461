"""
Coupon routes

Buyers validate codes; sellers manage the coupon list.
"""
from typing import List

from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_storefront, require_seller
from storefront.core.exceptions import CouponNotFoundError
from storefront.schemas.coupon import (
    Coupon,
    CouponCreate,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidationResponse,
)
from storefront.services.container import Storefront

router = APIRouter()


@router.post("/validate", response_model=CouponValidationResponse)
async def validate_coupon(
    request: CouponValidateRequest,
    storefront: Storefront = Depends(get_storefront),
):
    """Check a code against a subtotal without applying it."""
    service = storefront.coupon_service
    result = await service.validate_coupon(request.code, request.subtotal)
    return CouponValidationResponse(
        is_valid=result.is_valid,
        message=result.message,
        code=result.code,
        coupon=result.coupon,
        discount_amount=service.calculate_discount(result.coupon, request.subtotal) if result.is_valid else None,
    )


@router.get("", response_model=List[Coupon], dependencies=[Depends(require_seller)])
async def list_coupons(storefront: Storefront = Depends(get_storefront)):
    return await storefront.coupon_store.fetch_all_coupons()


@router.post("", response_model=Coupon, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_seller)])
async def create_coupon(data: CouponCreate, storefront: Storefront = Depends(get_storefront)):
    return await storefront.coupon_store.add_coupon_to_store(data)


@router.patch("/{coupon_id}", response_model=Coupon, dependencies=[Depends(require_seller)])
async def update_coupon(
    coupon_id: str,
    updates: CouponUpdate,
    storefront: Storefront = Depends(get_storefront),
):
    coupon = await storefront.coupon_store.update_coupon_in_store(coupon_id, updates)
    if not coupon:
        raise CouponNotFoundError(coupon_id)
    return coupon


@router.patch("/{coupon_id}/toggle", response_model=Coupon, dependencies=[Depends(require_seller)])
async def toggle_coupon(coupon_id: str, storefront: Storefront = Depends(get_storefront)):
    """Flip isActive."""
    coupons = await storefront.coupon_store.fetch_all_coupons()
    current = next((c for c in coupons if c.id == coupon_id), None)
    if not current:
        raise CouponNotFoundError(coupon_id)
    return await storefront.coupon_store.update_coupon_in_store(
        coupon_id, {"is_active": not current.is_active}
    )


@router.delete("/{coupon_id}", dependencies=[Depends(require_seller)])
async def delete_coupon(coupon_id: str, storefront: Storefront = Depends(get_storefront)):
    if not await storefront.coupon_store.remove_coupon_from_store(coupon_id):
        raise CouponNotFoundError(coupon_id)
    return {"message": "Coupon deleted", "couponId": coupon_id}

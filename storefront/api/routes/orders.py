"""
Order history routes
"""
from typing import List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_order_history
from storefront.schemas.checkout import OrderRecord
from storefront.services.checkout_service import OrderHistory

router = APIRouter()


@router.get("", response_model=List[OrderRecord])
async def list_orders(orders: OrderHistory = Depends(get_order_history)):
    """Caller's orders, newest first."""
    return orders.list_orders()

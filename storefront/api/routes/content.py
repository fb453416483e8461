"""
Home content routes
"""
from fastapi import APIRouter, Depends

from storefront.api.deps import get_storefront, require_seller
from storefront.schemas.content import HomeContent, HomeContentUpdate
from storefront.services.container import Storefront

router = APIRouter()


@router.get("/home", response_model=HomeContent)
async def get_home_content(storefront: Storefront = Depends(get_storefront)):
    return await storefront.content.get_content()


@router.put("/home", response_model=HomeContent, dependencies=[Depends(require_seller)])
async def update_home_content(data: HomeContentUpdate, storefront: Storefront = Depends(get_storefront)):
    return await storefront.content.update_content(data)


@router.delete("/home", response_model=HomeContent, dependencies=[Depends(require_seller)])
async def reset_home_content(storefront: Storefront = Depends(get_storefront)):
    return await storefront.content.reset_content()

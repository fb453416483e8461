"""
Address routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_address_book
from storefront.core.exceptions import AddressNotFoundError
from storefront.schemas.address import Address, AddressCreate, SelectedAddressRequest
from storefront.services.address_service import AddressBook

router = APIRouter()


@router.get("", response_model=List[Address])
async def list_addresses(book: AddressBook = Depends(get_address_book)):
    return book.get_addresses()


@router.post("", response_model=Address, status_code=status.HTTP_201_CREATED)
async def create_address(data: AddressCreate, book: AddressBook = Depends(get_address_book)):
    return await book.add_address(data)


# /selected is registered before /{address_id} so it is not captured as an id
@router.get("/selected", response_model=Optional[Address])
async def get_selected_address(book: AddressBook = Depends(get_address_book)):
    return book.get_selected_checkout_address()


@router.put("/selected", response_model=Address)
async def select_address(request: SelectedAddressRequest, book: AddressBook = Depends(get_address_book)):
    return await book.select_checkout_address(request.address_id)


@router.delete("/selected")
async def clear_selected_address(book: AddressBook = Depends(get_address_book)):
    await book.clear_selected_checkout_address()
    return {"message": "Selected address cleared"}


@router.put("/{address_id}", response_model=Address)
async def replace_address(
    address_id: str,
    data: AddressCreate,
    book: AddressBook = Depends(get_address_book),
):
    return await book.update_address(address_id, data)


@router.post("/{address_id}/default", response_model=Address)
async def make_default(address_id: str, book: AddressBook = Depends(get_address_book)):
    return await book.set_default(address_id)


@router.delete("/{address_id}")
async def delete_address(address_id: str, book: AddressBook = Depends(get_address_book)):
    if not await book.remove_and_reassign_default(address_id):
        raise AddressNotFoundError(address_id)
    return {"message": "Address deleted", "addressId": address_id}

"""
Address Book

A buyer's saved addresses plus the address selected for the current checkout.

Invariant: a non-empty address set has exactly one default. Every mutation
goes through ``_normalize`` before it is persisted.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from storefront.core.exceptions import AddressNotFoundError, AddressValidationError
from storefront.core.storage import KeyValueStore, StoredAggregate, storage_key
from storefront.schemas.address import Address, AddressCreate

logger = logging.getLogger(__name__)

AddressInput = Union[AddressCreate, Dict[str, Any]]


def _parse(data: AddressInput) -> AddressCreate:
    if isinstance(data, AddressCreate):
        return data
    try:
        return AddressCreate.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise AddressValidationError(
            "Please correct the highlighted address fields.",
            details={"fields": fields},
        ) from e


class AddressBook(StoredAggregate[Address]):
    item_model = Address

    def __init__(self, store: KeyValueStore, user_key: str, key_prefix: Optional[str] = None):
        super().__init__(store, storage_key("addresses", user_key, prefix=key_prefix), user_key=user_key)
        self.selected_key = storage_key("selected-checkout-address-id", user_key, prefix=key_prefix)
        self._selected_id: Optional[str] = None

    async def load(self):
        await super().load()
        raw = await self.store.get(self.selected_key)
        selected = raw.get("addressId") if isinstance(raw, dict) else None
        # Pointer to an address that no longer exists is ignored
        self._selected_id = selected if self._find(selected) else None
        return self

    def _find(self, address_id: Optional[str]) -> Optional[Address]:
        if not address_id:
            return None
        for address in self._items:
            if address.id == address_id:
                return address
        return None

    def _require(self, address_id: str) -> Address:
        address = self._find(address_id)
        if address is None:
            raise AddressNotFoundError(address_id)
        return address

    def _normalize(self, preferred_id: Optional[str] = None, avoid_id: Optional[str] = None) -> None:
        """
        Leave exactly one default in a non-empty set.

        preferred_id wins outright. Otherwise the first flagged address keeps
        the flag, and with none flagged the first address not equal to
        avoid_id becomes default.
        """
        if not self._items:
            return

        default_id = preferred_id
        if default_id is None:
            flagged = [a for a in self._items if a.is_default]
            if flagged:
                default_id = flagged[0].id
            else:
                candidates = [a for a in self._items if a.id != avoid_id] or self._items
                default_id = candidates[0].id

        for address in self._items:
            address.is_default = address.id == default_id

    def get_addresses(self) -> List[Address]:
        return self.items

    def get_default_address(self) -> Optional[Address]:
        return next((a for a in self._items if a.is_default), None)

    async def add_address(self, data: AddressInput) -> Address:
        fields = _parse(data)
        is_default = fields.is_default if fields.is_default is not None else not self._items
        address = Address(
            id=str(uuid.uuid4()),
            **fields.model_dump(exclude={"is_default"}),
            is_default=is_default,
        )

        if address.is_default:
            self._items.insert(0, address)
            self._normalize(preferred_id=address.id)
        else:
            self._items.append(address)
            self._normalize()

        await self._persist()
        logger.info(f"Address book {self.user_key}: added {address.id} (default={address.is_default})")
        await self.bus.notify("Address Added", "New address has been saved.", user_key=self.user_key)
        return address

    async def update_address(self, address_id: str, data: AddressInput) -> Address:
        existing = self._require(address_id)
        fields = _parse(data)
        is_default = existing.is_default if fields.is_default is None else fields.is_default
        updated = Address(
            id=address_id,
            **fields.model_dump(exclude={"is_default"}),
            is_default=is_default,
        )
        self._items = [updated if a.id == address_id else a for a in self._items]

        if updated.is_default:
            self._normalize(preferred_id=address_id)
        else:
            self._normalize(avoid_id=address_id)

        await self._persist()
        logger.info(f"Address book {self.user_key}: updated {address_id}")
        await self.bus.notify("Address Updated", user_key=self.user_key)
        return self._require(address_id)

    async def set_default(self, address_id: str) -> Address:
        address = self._require(address_id)
        self._normalize(preferred_id=address_id)
        await self._persist()
        logger.info(f"Address book {self.user_key}: default is now {address_id}")
        await self.bus.notify("Default address updated.", user_key=self.user_key)
        return address

    async def remove_and_reassign_default(self, address_id: str) -> bool:
        """Remove an address; the first remaining address inherits the default flag."""
        if self._find(address_id) is None:
            return False

        self._items = [a for a in self._items if a.id != address_id]
        self._normalize()
        await self._persist()
        logger.info(f"Address book {self.user_key}: removed {address_id}")

        if self._selected_id == address_id:
            await self.clear_selected_checkout_address()

        await self.bus.notify("Address Removed", variant="destructive", user_key=self.user_key)
        return True

    async def select_checkout_address(self, address_id: str) -> Address:
        address = self._require(address_id)
        self._selected_id = address_id
        await self.store.set(self.selected_key, {"addressId": address_id}, origin=self.origin)
        return address

    def get_selected_checkout_address(self) -> Optional[Address]:
        return self._find(self._selected_id)

    async def clear_selected_checkout_address(self) -> None:
        self._selected_id = None
        await self.store.delete(self.selected_key, origin=self.origin)

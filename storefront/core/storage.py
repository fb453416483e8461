"""
Persistent key-value storage

Every piece of buyer state (cart, wishlist, addresses, selected checkout
address, order history) and the seller-owned shared lists (coupons,
products, home content) lives under a single key as a JSON document.

Backends:
- InMemoryKeyValueStore: tests and local development
- SqlKeyValueStore: one row per key in ``storage_entries``
- RedisKeyValueStore: one Redis string per key

Every write publishes a StorageEvent on the ``storage`` topic so watchers
can reload state written by someone else.
"""
import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import select

from storefront.core.config import settings
from storefront.core.database import get_db_session
from storefront.core.events import STORAGE_TOPIC, EventBus, StorageEvent
from storefront.core.exceptions import StorageError
from storefront.models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)

STORAGE_PURPOSES = (
    "cart",
    "wishlist",
    "addresses",
    "selected-checkout-address-id",
    "orders",
    "coupons",
    "products",
    "home-content",
)


def storage_key(purpose: str, user_key: Optional[str] = None, prefix: Optional[str] = None) -> str:
    """
    Build the storage key for a purpose.

    ``<prefix>-<purpose>`` for shared data, ``<prefix>-<purpose>-<user_key>``
    for data owned by one user.
    """
    if purpose not in STORAGE_PURPOSES:
        raise ValueError(f"Unknown storage purpose: {purpose}")
    prefix = prefix if prefix is not None else settings.STORAGE_KEY_PREFIX
    key = f"{prefix}-{purpose}"
    if user_key:
        key = f"{key}-{user_key}"
    return key


class KeyValueStore(ABC):
    """Async key-value store with change notification."""

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus or EventBus()

    @abstractmethod
    async def _read(self, key: str) -> Any:
        ...

    @abstractmethod
    async def _write(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def _remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> List[str]:
        ...

    async def get(self, key: str) -> Any:
        return await self._read(key)

    async def set(self, key: str, value: Any, origin: Optional[str] = None) -> None:
        old_value = await self._read(key)
        await self._write(key, value)
        await self.bus.publish(
            STORAGE_TOPIC,
            StorageEvent(key=key, new_value=value, old_value=old_value, origin=origin),
        )

    async def delete(self, key: str, origin: Optional[str] = None) -> None:
        old_value = await self._read(key)
        await self._remove(key)
        await self.bus.publish(
            STORAGE_TOPIC,
            StorageEvent(key=key, new_value=None, old_value=old_value, origin=origin),
        )

    async def close(self) -> None:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed store. Values are held as JSON text so callers never share
    mutable state with the store.
    """

    def __init__(self, bus: Optional[EventBus] = None, initial: Optional[Dict[str, Any]] = None):
        super().__init__(bus)
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def _read(self, key: str) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Corrupt value under '{key}' ignored")
            return None

    async def _write(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON serializable", details={"key": key}) from e

    async def _remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the ``storage_entries`` table."""

    def __init__(self, session_factory=None, bus: Optional[EventBus] = None):
        super().__init__(bus)
        self.session_factory = session_factory

    async def _read(self, key: str) -> Any:
        try:
            async with get_db_session(self.session_factory) as db:
                entry = await db.get(StorageEntry, key)
                return copy.deepcopy(entry.value) if entry is not None else None
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Storage read failed for '{key}': {e}")
            raise StorageError("Storage is temporarily unavailable", details={"key": key}) from e

    async def _write(self, key: str, value: Any) -> None:
        try:
            async with get_db_session(self.session_factory) as db:
                await db.merge(StorageEntry(key=key, value=value))
        except Exception as e:
            logger.error(f"Storage write failed for '{key}': {e}")
            raise StorageError("Storage is temporarily unavailable", details={"key": key}) from e

    async def _remove(self, key: str) -> None:
        try:
            async with get_db_session(self.session_factory) as db:
                entry = await db.get(StorageEntry, key)
                if entry is not None:
                    await db.delete(entry)
        except Exception as e:
            logger.error(f"Storage delete failed for '{key}': {e}")
            raise StorageError("Storage is temporarily unavailable", details={"key": key}) from e

    async def list_keys(self, prefix: str = "") -> List[str]:
        async with get_db_session(self.session_factory) as db:
            result = await db.execute(
                select(StorageEntry.key).where(StorageEntry.key.startswith(prefix)).order_by(StorageEntry.key)
            )
            return list(result.scalars().all())


class RedisKeyValueStore(KeyValueStore):
    """Store backed by Redis strings holding JSON. Expects decode_responses=True."""

    def __init__(self, client, bus: Optional[EventBus] = None):
        super().__init__(bus)
        self.client = client

    async def _read(self, key: str) -> Any:
        try:
            raw = await self.client.get(key)
        except Exception as e:
            logger.error(f"Redis read failed for '{key}': {e}")
            raise StorageError("Storage is temporarily unavailable", details={"key": key}) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Corrupt value under '{key}' ignored")
            return None

    async def _write(self, key: str, value: Any) -> None:
        try:
            await self.client.set(key, json.dumps(value))
        except Exception as e:
            logger.error(f"Redis write failed for '{key}': {e}")
            raise StorageError("Storage is temporarily unavailable", details={"key": key}) from e

    async def _remove(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except Exception as e:
            logger.error(f"Redis delete failed for '{key}': {e}")
            raise StorageError("Storage is temporarily unavailable", details={"key": key}) from e

    async def list_keys(self, prefix: str = "") -> List[str]:
        keys = []
        async for key in self.client.scan_iter(match=f"{prefix}*"):
            keys.append(key)
        return sorted(keys)


ItemT = TypeVar("ItemT", bound=BaseModel)


class StoredAggregate(Generic[ItemT]):
    """
    A list of records persisted under one storage key.

    The whole list is rewritten on every mutation. ``watch()`` subscribes to
    storage events so a write to the same key by another origin replaces the
    in-memory list (no merge).
    """

    item_model: Type[ItemT]

    def __init__(self, store: KeyValueStore, key: str, user_key: Optional[str] = None):
        self.store = store
        self.key = key
        self.user_key = user_key
        self.origin = f"{type(self).__name__}-{uuid.uuid4().hex[:8]}"
        self._items: List[ItemT] = []
        self._loaded = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def bus(self) -> EventBus:
        return self.store.bus

    @property
    def items(self) -> List[ItemT]:
        return list(self._items)

    def _decode(self, raw: Any) -> Optional[List[ItemT]]:
        """Parse a stored list. Returns None when the stored value is unusable."""
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning(f"Stored value under '{self.key}' is not a list; ignoring it")
            return None
        try:
            return [self.item_model.model_validate(entry) for entry in raw]
        except ValidationError as e:
            logger.warning(f"Stored value under '{self.key}' failed validation; ignoring it: {e.error_count()} errors")
            return None

    async def load(self):
        raw = await self.store.get(self.key)
        self._items = self._decode(raw) or []
        self._loaded = True
        return self

    async def _persist(self) -> None:
        payload = [item.model_dump(by_alias=True, mode="json") for item in self._items]
        await self.store.set(self.key, payload, origin=self.origin)

    async def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key != self.key or event.origin == self.origin:
            return
        logger.info(f"Reloading '{self.key}' after write by {event.origin or 'unknown origin'}")
        await self.load()

    def watch(self) -> Callable[[], None]:
        if self._unsubscribe is None:
            self._unsubscribe = self.bus.subscribe(STORAGE_TOPIC, self._on_storage_event)
        return self.unwatch

    def unwatch(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

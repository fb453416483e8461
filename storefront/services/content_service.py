"""
Home Content Service

Seller-editable banner shown on the storefront home page.
"""
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from storefront.core.exceptions import StorefrontValidationError
from storefront.core.storage import KeyValueStore, storage_key
from storefront.core.utils import utcnow
from storefront.schemas.content import HomeContent, HomeContentUpdate

logger = logging.getLogger(__name__)


class HomeContentService:
    def __init__(self, store: KeyValueStore, key_prefix: Optional[str] = None):
        self.store = store
        self.key = storage_key("home-content", prefix=key_prefix)

    async def get_content(self) -> HomeContent:
        raw = await self.store.get(self.key)
        if raw is None:
            return HomeContent()
        try:
            return HomeContent.model_validate(raw)
        except ValidationError:
            logger.warning(f"Stored home content under '{self.key}' is invalid; using defaults")
            return HomeContent()

    async def update_content(self, data: Union[HomeContentUpdate, Dict[str, Any]]) -> HomeContent:
        try:
            if not isinstance(data, HomeContentUpdate):
                data = HomeContentUpdate.model_validate(data)
        except ValidationError as e:
            raise StorefrontValidationError("Invalid home content", code="CONTENT_INVALID") from e

        current = await self.get_content()
        changes = data.model_dump(exclude_unset=True)
        content = current.model_copy(update={**changes, "updated_at": utcnow()})
        await self.store.set(self.key, content.to_storage())
        logger.info(f"Home content updated: {sorted(changes)}")
        return content

    async def reset_content(self) -> HomeContent:
        await self.store.delete(self.key)
        logger.info("Home content reset to defaults")
        return HomeContent()

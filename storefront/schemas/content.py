"""
Home Content Schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from storefront.schemas.common import CamelModel

DEFAULT_TITLE = "Welcome to our store"
DEFAULT_SUBTITLE = "Discover products picked for you"
DEFAULT_BANNER_IMAGE_URL = "https://picsum.photos/seed/storebanner/1200/240"


class HomeContent(CamelModel):
    title: str = DEFAULT_TITLE
    subtitle: str = DEFAULT_SUBTITLE
    banner_image_url: Optional[str] = DEFAULT_BANNER_IMAGE_URL
    updated_at: Optional[datetime] = None


class HomeContentUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    subtitle: Optional[str] = Field(None, max_length=500)
    banner_image_url: Optional[str] = Field(None, max_length=2048)

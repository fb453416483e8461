"""
Key-value storage entry

One row per storage key. Holds carts, wishlists, address books, coupons,
order histories and home content as JSON documents.
"""
from sqlalchemy import Column, String, DateTime, JSON

from storefront.core.database import Base
from storefront.core.utils import utcnow


class StorageEntry(Base):
    __tablename__ = "storage_entries"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

"""
SQLAlchemy models
"""
from storefront.models.product import Product
from storefront.models.storage_entry import StorageEntry

__all__ = ["Product", "StorageEntry"]

"""
Product model
"""
import uuid

from sqlalchemy import Column, String, Numeric, Float, Integer, DateTime, Text, JSON

from storefront.core.database import Base
from storefront.core.utils import utcnow


def _new_product_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, default=_new_product_id)
    name = Column(String, nullable=False, index=True)
    description = Column(Text)

    category = Column(String, index=True)

    # Pricing
    price = Column(Numeric(12, 2), nullable=False)
    original_price = Column(Numeric(12, 2))  # For sales

    stock = Column(Integer)
    rating = Column(Float)

    # Media
    image_urls = Column(JSON, default=list)
    video_urls = Column(JSON, default=list)

    # [{author, rating, comment, date}]
    reviews = Column(JSON, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

"""
Product Schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from storefront.schemas.common import CamelModel

SortOption = Literal["relevance", "price_asc", "price_desc", "rating", "name"]


class Review(CamelModel):
    id: str
    author: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    date: Optional[datetime] = None


class Product(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    original_price: Optional[Decimal] = Field(None, ge=0)
    image_urls: List[str] = []
    video_urls: List[str] = []
    category: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    stock: Optional[int] = Field(None, ge=0)
    reviews: List[Review] = []


class ProductCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    original_price: Optional[Decimal] = Field(None, ge=0)
    image_urls: List[str] = []
    video_urls: List[str] = []
    category: Optional[str] = Field(None, max_length=100)
    rating: Optional[float] = Field(None, ge=0, le=5)
    stock: Optional[int] = Field(None, ge=0)
    reviews: List[Review] = []

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Product name is required")
        return v


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    original_price: Optional[Decimal] = Field(None, ge=0)
    image_urls: Optional[List[str]] = None
    video_urls: Optional[List[str]] = None
    category: Optional[str] = Field(None, max_length=100)
    rating: Optional[float] = Field(None, ge=0, le=5)
    stock: Optional[int] = Field(None, ge=0)
    reviews: Optional[List[Review]] = None


class ProductFilterOptions(CamelModel):
    query: Optional[str] = None
    categories: List[str] = []
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    sort_by: SortOption = "relevance"
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)

    @field_validator("query")
    @classmethod
    def blank_query_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class ProductPage(CamelModel):
    items: List[Product]
    total: int
    limit: int
    offset: int

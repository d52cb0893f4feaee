"""
Catalog Models
Products, catalog products and categories, with their filter parameters.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import FilterSpec


class CatalogProduct(BaseModel):
    """Product as shown in the public catalog."""

    id: UUID
    name: str
    slug: str = ""
    description: str = ""
    long_description: str = ""
    category_id: Optional[UUID] = None
    category_name: str = Field(default="", description="Joined category name")
    image_url: str = ""
    images: List[str] = Field(default_factory=list, description="Gallery filenames")
    price: float = 0.0
    unit: Optional[str] = None
    available: bool = True
    quantity: int = 0
    created_at: Optional[datetime] = None
    search_rank: Optional[float] = Field(None, description="Full-text relevance")


class Product(BaseModel):
    """Product row as managed from the dashboard."""

    id: UUID
    name: str
    slug: str
    description: str = ""
    long_description: str = ""
    price: float = 0.0
    unit: Optional[str] = None
    quantity: int = 0
    category_id: Optional[UUID] = None
    category_name: Optional[str] = None
    main_img_id: Optional[UUID] = None
    available: bool = True
    qr_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    search_rank: Optional[float] = None


class CategorySummary(BaseModel):
    """Category with the number of products filed under it."""

    id: UUID
    name: str
    slug: str
    description: str = ""
    long_description: Optional[str] = None
    product_count: int = 0
    search_rank: Optional[float] = None


class CatalogProductFilter(FilterSpec):
    """
    Catalog filter parameters.

    When only_ids is given every other predicate (search included) is ignored,
    except exclude_ids.
    """

    only_ids: List[UUID] = Field(default_factory=list)
    exclude_ids: List[UUID] = Field(default_factory=list)
    categories: List[UUID] = Field(default_factory=list, description="Category ids (any of)")
    available: Optional[bool] = Field(None, description="None = all")
    min_quantity: Optional[int] = Field(None, ge=0)
    max_quantity: Optional[int] = Field(None, ge=0)


class ProductFilter(FilterSpec):
    """Dashboard product filter parameters."""

    ids: List[UUID] = Field(default_factory=list)
    category_id: Optional[UUID] = None
    available: Optional[bool] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_quantity: Optional[int] = Field(None, ge=0)
    max_quantity: Optional[int] = Field(None, ge=0)
    with_qr_code: Optional[bool] = None


class CategoryFilter(FilterSpec):
    min_products: Optional[int] = Field(None, ge=0)
    max_products: Optional[int] = Field(None, ge=0)

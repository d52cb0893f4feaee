"""
Section Models
Content section aggregate: section -> paragraphs, services -> service items.

A node without an id is new. A node with an id refers to a persisted row.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import FilterSpec


class Paragraph(BaseModel):
    id: Optional[UUID] = None
    order_idx: int = Field(0, description="Position within the section")
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ServiceItem(BaseModel):
    id: Optional[UUID] = None
    order_idx: int = 0
    price: int = Field(0, description="Price in cents")
    content: str
    content_as_list: bool = Field(False, description="Render content as a bullet list")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Service(BaseModel):
    id: Optional[UUID] = None
    title: str
    price: Optional[int] = Field(None, description="Price in cents")
    description: Optional[str] = None
    items: List[ServiceItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Section(BaseModel):
    """
    Section aggregate root.

    version is optional: when sent back with an update it guards against
    overwriting a concurrent edit.
    """

    id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=64)
    title: Optional[str] = None
    image: Optional[str] = None
    bg_image: Optional[str] = None
    version: Optional[int] = None
    paragraphs: List[Paragraph] = Field(default_factory=list)
    services: List[Service] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SectionSummary(BaseModel):
    """Section row with child counts, as returned by section filtering."""

    id: UUID
    name: str
    title: Optional[str] = None
    image: Optional[str] = None
    bg_image: Optional[str] = None
    version: int = 1
    paragraph_count: int = 0
    service_count: int = 0
    item_count: int = 0
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    search_rank: Optional[float] = None


class SectionFilter(FilterSpec):
    ids: List[UUID] = Field(default_factory=list)
    has_image: Optional[bool] = None
    has_bg_image: Optional[bool] = None
    min_paragraphs: Optional[int] = Field(None, ge=0)
    max_paragraphs: Optional[int] = Field(None, ge=0)
    min_services: Optional[int] = Field(None, ge=0)
    max_services: Optional[int] = Field(None, ge=0)
    min_price: Optional[int] = Field(None, ge=0)
    max_price: Optional[int] = Field(None, ge=0)
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    updated_after: Optional[datetime] = None
    updated_before: Optional[datetime] = None

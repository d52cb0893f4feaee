"""
Quote and Image Models
Customer requests and media assets.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import FilterSpec


class Quote(BaseModel):
    id: UUID
    customer_name: str
    customer_phone: str
    customer_email: str
    cart_id: Optional[UUID] = None
    request_type: str = Field(..., description="contacto or cotización")
    status: str = "pendiente"
    event_kind: Optional[str] = None
    event_start: Optional[date] = None
    comments: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuoteFilter(FilterSpec):
    """Quote filters. Quotes are listed newest first unless sorted otherwise."""

    customer_name: Optional[str] = None
    phone: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    event_start_from: Optional[date] = None
    event_start_to: Optional[date] = None
    status: Optional[str] = None
    request_type: Optional[str] = None
    comments: Optional[str] = None


class ImageAsset(BaseModel):
    id: UUID
    filename: str
    name: str
    no_optimize: bool = False
    size: int = 0
    created_at: Optional[datetime] = None
    search_rank: Optional[float] = None


class ImageFilter(FilterSpec):
    exact_date: Optional[date] = Field(None, description="Uploaded on this day")
    date_after: Optional[datetime] = None
    date_before: Optional[datetime] = None
    min_size: Optional[int] = Field(None, ge=0)
    max_size: Optional[int] = Field(None, ge=0)

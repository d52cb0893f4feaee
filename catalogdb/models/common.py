"""
Common Models
Filter parameters, search modes and the paginated result envelope.
"""

from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class SearchMode(str, Enum):
    """How the free-text term is matched."""

    FULL_TEXT = "fulltext"  # weighted index, ranked
    EXACT = "exact"  # case-insensitive equality
    FUZZY = "fuzzy"  # substring match

    @classmethod
    def parse(cls, value: Any) -> "SearchMode":
        """Empty values mean full-text search."""
        if value is None or value == "":
            return cls.FULL_TEXT
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class FilterSpec(BaseModel):
    """
    Normalized search, sort and pagination parameters for one query.

    Resources subclass this to add their own predicate fields. A field left
    at None (or an empty list/string) contributes no predicate.
    """

    search: str = Field(default="", description="Free-text search term")
    search_mode: SearchMode = Field(
        default=SearchMode.FULL_TEXT, description="fulltext, exact or fuzzy"
    )
    sort: str = Field(default="", description="Sort token from the resource allow-list")
    page: int = Field(default=1, description="1-based page number")
    limit: Optional[int] = Field(default=None, description="Page size (resource default if unset)")

    @field_validator("search", "sort", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("search_mode", mode="before")
    @classmethod
    def parse_search_mode(cls, v: Any) -> SearchMode:
        return SearchMode.parse(v)

    @field_validator("page", mode="before")
    @classmethod
    def default_page(cls, v: Any) -> Any:
        return 1 if v is None else v


class ResultPage(BaseModel, Generic[T]):
    """
    One page of filtered results.

    total counts every match ignoring pagination.
    """

    items: List[T] = Field(default_factory=list, description="Page items in order")
    total: int = Field(..., ge=0, description="Total matches")
    page: int = Field(..., ge=1, description="Current page")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="ceil(total / limit)")
    has_next: bool = Field(..., description="A later page exists")
    has_previous: bool = Field(..., description="An earlier page exists")

    class Config:
        json_schema_extra = {
            "example": {
                "items": [],
                "total": 5,
                "page": 1,
                "limit": 2,
                "total_pages": 3,
                "has_next": True,
                "has_previous": False,
            }
        }

"""
Query Engine
Predicate compilation, search ranking, ordering, pagination and
materialization shared by every filterable resource.
"""

from .filters import CompiledFilters, FilterField, FilterOperator, compile_filters
from .search import (
    ExactSearch,
    FullTextSearch,
    FuzzySearch,
    SearchClause,
    SearchStrategy,
    SearchTarget,
    get_strategy,
)
from .ordering import OrderResolver, SortOption
from .pagination import PageRequest, build_page, total_pages
from .materialize import Materializer
from .resources import RESOURCES, ResourceDescriptor, get_resource
from .engine import FilterEngine, FilterQuery, build_filter_query

__all__ = [
    "CompiledFilters",
    "FilterField",
    "FilterOperator",
    "compile_filters",
    "ExactSearch",
    "FullTextSearch",
    "FuzzySearch",
    "SearchClause",
    "SearchStrategy",
    "SearchTarget",
    "get_strategy",
    "OrderResolver",
    "SortOption",
    "PageRequest",
    "build_page",
    "total_pages",
    "Materializer",
    "RESOURCES",
    "ResourceDescriptor",
    "get_resource",
    "FilterEngine",
    "FilterQuery",
    "build_filter_query",
]

"""
Filter Engine
Run count and page queries for any registered resource.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel
from sqlalchemy import bindparam, func, select
from sqlalchemy.sql import Select

from ..config import Settings
from ..db.session import Database
from ..errors import NotFoundError
from ..models.common import FilterSpec, ResultPage
from .filters import CompiledFilters, compile_filters
from .pagination import PageRequest, build_page
from .resources import RESOURCES, ResourceDescriptor, get_resource

logger = logging.getLogger(__name__)

RANK_LABEL = "search_rank"


@dataclass
class FilterQuery:
    """Compiled statements for one filter request."""

    count: Select
    data: Select
    page: PageRequest
    compiled: CompiledFilters


def build_filter_query(
    descriptor: ResourceDescriptor,
    spec: FilterSpec,
    settings: Settings,
) -> FilterQuery:
    """
    Build the count and page statements for a filter spec.

    Both statements take their WHERE clause from the same compiled
    conditions.

    Args:
        descriptor: Resource descriptor
        spec: Filter parameters (already coerced to the resource's spec type)
        settings: Settings for paging defaults and search language

    Returns:
        FilterQuery
    """
    page = PageRequest.normalize(
        spec.page,
        spec.limit,
        default_limit=descriptor.default_limit or settings.default_page_size,
        max_limit=descriptor.max_limit or settings.max_page_size,
    )

    compiled = compile_filters(
        spec,
        descriptor.filters,
        search_target=descriptor.search,
        language=settings.search_language,
    )

    count_stmt = select(func.count()).select_from(descriptor.source).where(*compiled.conditions)

    columns = list(descriptor.columns)
    if compiled.rank is not None:
        columns.append(compiled.rank.label(RANK_LABEL))

    ordering = descriptor.order_resolver.resolve(spec.sort, compiled.rank)
    data_stmt = (
        select(*columns)
        .select_from(descriptor.source)
        .where(*compiled.conditions)
        .order_by(*ordering)
        .limit(page.limit)
        .offset(page.offset)
    )

    return FilterQuery(count=count_stmt, data=data_stmt, page=page, compiled=compiled)


class FilterEngine:
    """
    Generic filter / search / paginate engine.

    Example:
        engine = FilterEngine(database)
        page = engine.filter("catalog_products", {"search": "silla", "limit": 12})
    """

    def __init__(
        self,
        database: Database,
        resources: Optional[Dict[str, ResourceDescriptor]] = None,
    ):
        """
        Initialize filter engine.

        Args:
            database: Unit of work provider
            resources: Descriptor table (defaults to every built-in resource)
        """
        self.database = database
        self.settings = database.settings
        self.resources = resources if resources is not None else RESOURCES

    def descriptor(self, resource: Union[str, ResourceDescriptor]) -> ResourceDescriptor:
        if isinstance(resource, ResourceDescriptor):
            return resource
        if self.resources is RESOURCES:
            return get_resource(resource)
        return self.resources[resource]

    def filter(
        self,
        resource: Union[str, ResourceDescriptor],
        spec: Union[FilterSpec, Dict[str, Any], None] = None,
    ) -> ResultPage:
        """
        Filter, search, sort and paginate a resource.

        Args:
            resource: Resource name or descriptor
            spec: Filter parameters (dict or FilterSpec)

        Returns:
            ResultPage of the resource's model
        """
        descriptor = self.descriptor(resource)
        spec = descriptor.coerce_spec(spec)
        query = build_filter_query(descriptor, spec, self.settings)

        with self.database.filter(descriptor.name) as conn:
            total = conn.execute(query.count).scalar_one()

            # Past the last page there is nothing to fetch
            if query.page.offset < total:
                rows = conn.execute(query.data).mappings().all()
            else:
                rows = []

        items = descriptor.materializer.many(rows)

        logger.debug(
            f"Filtered {descriptor.name}: {len(items)} of {total} "
            f"(page {query.page.page}, limit {query.page.limit})",
            extra={"resource": descriptor.name, "bindings": list(query.compiled.bindings)},
        )

        return build_page(items, total, query.page)

    def get(self, resource: Union[str, ResourceDescriptor], resource_id: Any) -> BaseModel:
        """
        Fetch one item by identity.

        Raises:
            NotFoundError: If no row has the identity
        """
        descriptor = self.descriptor(resource)
        param = bindparam("id", resource_id, type_=descriptor.id_column.type)
        stmt = (
            select(*descriptor.columns)
            .select_from(descriptor.source)
            .where(descriptor.id_column == param)
        )

        with self.database.read(descriptor.name) as conn:
            row = conn.execute(stmt).mappings().first()

        if row is None:
            raise NotFoundError(descriptor.name, resource_id)
        return descriptor.materializer(row)

    def get_many(
        self,
        resource: Union[str, ResourceDescriptor],
        ids: Sequence[Any],
    ) -> List[BaseModel]:
        """Fetch items by identity, ordered by name; unknown ids are ignored."""
        descriptor = self.descriptor(resource)
        ids = list(ids)
        if not ids:
            return []

        param = bindparam("ids", ids, expanding=True, type_=descriptor.id_column.type)
        stmt = (
            select(*descriptor.columns)
            .select_from(descriptor.source)
            .where(descriptor.id_column.in_(param))
            .order_by(descriptor.name_column.asc(), descriptor.id_column.asc())
        )

        with self.database.read(descriptor.name, "get_many") as conn:
            rows = conn.execute(stmt).mappings().all()

        return descriptor.materializer.many(rows)

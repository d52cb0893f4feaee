"""
Catalog Service
Convenience entry points over the filter engine for catalog products.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import UUID

from ..db.session import Database
from ..models import CatalogProduct, CatalogProductFilter, ProductFilter, ResultPage
from ..query.engine import FilterEngine

logger = logging.getLogger(__name__)

SpecInput = Union[CatalogProductFilter, Dict[str, Any], None]


class CatalogService:
    """
    Service for browsing the product catalog.

    Catalog listings go through the catalog_products resource, so paging,
    searching and ordering behave the same as a direct engine call.
    """

    def __init__(self, database: Database, engine: Optional[FilterEngine] = None):
        self.database = database
        self.engine = engine or FilterEngine(database)

    def filter_products(
        self, spec: Union[ProductFilter, Dict[str, Any], None] = None
    ) -> ResultPage:
        """Filter the products table (admin listing)."""
        return self.engine.filter("products", spec)

    def filter_catalog(self, spec: SpecInput = None) -> ResultPage:
        """Filter the public catalog view."""
        return self.engine.filter("catalog_products", spec)

    def filter_by_categories(
        self,
        category_ids: Sequence[UUID],
        page: int = 1,
        limit: Optional[int] = None,
    ) -> ResultPage:
        spec = CatalogProductFilter(categories=list(category_ids), page=page, limit=limit)
        return self.filter_catalog(spec)

    def filter_available(self, page: int = 1, limit: Optional[int] = None) -> ResultPage:
        """List products that are available and in stock."""
        spec = CatalogProductFilter(available=True, page=page, limit=limit)
        return self.filter_catalog(spec)

    def filter_for_wizard(
        self,
        category_ids: Sequence[UUID],
        search: str = "",
        page: int = 1,
        limit: Optional[int] = None,
        exclude_ids: Optional[Sequence[UUID]] = None,
    ) -> ResultPage:
        """
        List in-stock products for a wizard step.

        Args:
            category_ids: Categories attached to the step
            search: Optional search term
            page: Page number (1-based)
            limit: Page size
            exclude_ids: Products already picked in the wizard

        Returns:
            ResultPage of CatalogProduct
        """
        spec = CatalogProductFilter(
            categories=list(category_ids),
            search=search,
            available=True,
            exclude_ids=list(exclude_ids or []),
            page=page,
            limit=limit,
        )
        return self.filter_catalog(spec)

    def get_catalog_products_by_ids(self, ids: Sequence[UUID]) -> List[CatalogProduct]:
        """Fetch catalog products ordered by name; unknown ids are ignored."""
        return self.engine.get_many("catalog_products", ids)

    def get_catalog_product(self, product_id: UUID) -> CatalogProduct:
        """
        Fetch one catalog product.

        Raises:
            NotFoundError: If the product does not exist
        """
        return self.engine.get("catalog_products", product_id)
